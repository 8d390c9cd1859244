from flask import Blueprint, current_app, jsonify, request

from mimir.errors import PayloadError
from mimir.schemas import AnswerIn, CompleteGameIn, CreateGameIn, OverruleIn, parse_body
from mimir.services import records

games = Blueprint('games', __name__)


def _invalid(exc: PayloadError):
    return jsonify({'error': 'Invalid input', 'details': exc.details}), 400


def _client_ip():
    forwarded = request.headers.get('X-Forwarded-For', '')
    if forwarded:
        return forwarded.split(',')[0].strip()[:45]
    return (request.remote_addr or '')[:45] or None


@games.route('/create', methods=['POST'])
def create_game():
    try:
        body = parse_body(CreateGameIn, request.get_json(silent=True))
    except PayloadError as exc:
        return _invalid(exc)

    try:
        session, questions = records.create_session(body.quiz_file_id, body.player_names)
    except records.RecordNotFound as exc:
        return jsonify({'error': exc.message}), 404
    except ValueError as exc:
        return jsonify({'error': str(exc)}), 400

    current_app.logger.info(f"[session-create] session={session.id} quiz={session.quiz_file_id} players={body.player_names}")
    return jsonify({
        'session': session.to_dict(),
        'questions': [q.to_dict() for q in questions],
    }), 201


@games.route('/<int:session_id>', methods=['GET'])
def get_game(session_id):
    try:
        session = records.get_session(session_id)
    except records.RecordNotFound as exc:
        return jsonify({'error': exc.message}), 404
    return jsonify({'session': session.to_dict()})


@games.route('/<int:session_id>/answer', methods=['POST'])
def submit_answer(session_id):
    try:
        body = parse_body(AnswerIn, request.get_json(silent=True))
    except PayloadError as exc:
        return _invalid(exc)

    try:
        answer = records.record_answer(
            session_id,
            body.question_id,
            body.player_id,
            body.player_name,
            body.spoken_answer,
            body.result.value,
            body.is_addressed,
            body.time_taken,
            body.attempt_order,
            body.points_awarded,
        )
    except records.RecordNotFound as exc:
        return jsonify({'error': exc.message}), 404

    current_app.logger.info(
        f"[answer] session={session_id} q={body.question_id} player={body.player_name} "
        f"result={body.result.value} points={body.points_awarded}"
    )
    return jsonify({'answer': answer.to_dict()}), 201


@games.route('/<int:session_id>/overrule', methods=['POST'])
def record_overrule(session_id):
    try:
        body = parse_body(OverruleIn, request.get_json(silent=True))
    except PayloadError as exc:
        return _invalid(exc)

    try:
        overrule = records.record_overrule(
            session_id,
            body.question_id,
            body.original_answer_id,
            body.challenger_id,
            body.challenger_name,
            body.claim_type.value,
            body.original_result.value,
            body.new_result.value,
            body.points_adjustment,
            ip_address=_client_ip(),
        )
    except records.RecordNotFound as exc:
        return jsonify({'error': exc.message}), 404

    current_app.logger.info(
        f"[overrule] session={session_id} answer={body.original_answer_id} "
        f"claim={body.claim_type.value} adjustment={body.points_adjustment}"
    )
    return jsonify({'overrule': overrule.to_dict()}), 201


@games.route('/<int:session_id>/complete', methods=['POST'])
def complete_game(session_id):
    try:
        body = parse_body(CompleteGameIn, request.get_json(silent=True))
    except PayloadError as exc:
        return _invalid(exc)

    try:
        session = records.complete_session(session_id, body.scores)
    except records.RecordNotFound as exc:
        return jsonify({'error': exc.message}), 404
    current_app.logger.info(f"[finish] session={session_id} scores={session.score_table}")
    return jsonify({'session': session.to_dict()})
