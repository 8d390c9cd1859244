from flask import Blueprint, jsonify, request
from sqlalchemy import and_, or_

from mimir import db
from mimir.models import QuizFile
from mimir.services.records import ordered_questions

quizzes = Blueprint('quizzes', __name__)


@quizzes.route('', methods=['GET'])
@quizzes.route('/', methods=['GET'])
def list_quizzes():
    league = request.args.get('league')
    topic = request.args.get('topic')
    author = request.args.get('author')
    search = request.args.get('search')

    conditions = []
    if league:
        conditions.append(QuizFile.league == league)
    if topic:
        conditions.append(QuizFile.topic == topic)
    if author:
        conditions.append(QuizFile.author == author)
    if search:
        pattern = f'%{search}%'
        conditions.append(or_(
            QuizFile.file_name.like(pattern),
            QuizFile.topic.like(pattern),
            QuizFile.author.like(pattern),
        ))

    query = QuizFile.query
    if conditions:
        query = query.filter(and_(*conditions))
    rows = query.order_by(QuizFile.created_at.desc(), QuizFile.id.desc()).all()
    return jsonify({'quizzes': [q.to_dict() for q in rows]})


@quizzes.route('/<int:quiz_id>/questions', methods=['GET'])
def get_questions(quiz_id):
    quiz = db.session.get(QuizFile, quiz_id)
    if not quiz:
        return jsonify({'error': 'Quiz file not found'}), 404
    return jsonify({
        'quiz': quiz.to_dict(),
        'questions': [q.to_dict() for q in ordered_questions(quiz.id)],
    })
