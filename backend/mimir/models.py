from datetime import datetime
import json

from mimir import db


def _utcnow():
    return datetime.utcnow()


def _iso(value):
    return value.isoformat() if value else None


class QuizFile(db.Model):
    __tablename__ = 'quiz_file'
    id = db.Column(db.Integer, primary_key=True)
    file_name = db.Column(db.String(255), nullable=False)
    author = db.Column(db.String(255), nullable=False)
    topic = db.Column(db.String(255), nullable=False)
    league = db.Column(db.String(255), nullable=False)
    description = db.Column(db.Text, nullable=True)
    total_questions = db.Column(db.Integer, nullable=False, default=0)
    total_rounds = db.Column(db.Integer, nullable=False, default=0)
    times_played = db.Column(db.Integer, nullable=False, default=0)
    created_at = db.Column(db.DateTime, nullable=False, default=_utcnow)
    questions = db.relationship(
        'QuizQuestion', back_populates='quiz_file', order_by='QuizQuestion.order_index',
        cascade='all, delete-orphan',
    )

    def to_dict(self):
        return {
            'id': self.id,
            'file_name': self.file_name,
            'author': self.author,
            'topic': self.topic,
            'league': self.league,
            'description': self.description,
            'total_questions': self.total_questions,
            'total_rounds': self.total_rounds,
            'times_played': self.times_played,
            'created_at': _iso(self.created_at),
        }


class QuizQuestion(db.Model):
    __tablename__ = 'quiz_question'
    id = db.Column(db.Integer, primary_key=True)
    quiz_file_id = db.Column(db.Integer, db.ForeignKey('quiz_file.id', ondelete='CASCADE'), nullable=False, index=True)
    round_number = db.Column(db.Integer, nullable=False)
    player_number = db.Column(db.Integer, nullable=False)
    question = db.Column(db.Text, nullable=False)
    question_image_url = db.Column(db.Text, nullable=True)
    answer = db.Column(db.Text, nullable=False)
    answer_image_url = db.Column(db.Text, nullable=True)
    order_index = db.Column(db.Integer, nullable=False)
    quiz_file = db.relationship('QuizFile', back_populates='questions')

    def to_dict(self):
        return {
            'id': self.id,
            'round_number': self.round_number,
            'player_number': self.player_number,
            'question': self.question,
            'question_image_url': self.question_image_url,
            'answer': self.answer,
            'answer_image_url': self.answer_image_url,
            'order_index': self.order_index,
        }


class GameSession(db.Model):
    __tablename__ = 'game_session'
    id = db.Column(db.Integer, primary_key=True)
    quiz_file_id = db.Column(db.Integer, db.ForeignKey('quiz_file.id'), nullable=False)
    league = db.Column(db.String(255), nullable=False)
    topic = db.Column(db.String(255), nullable=False)
    status = db.Column(db.String(32), nullable=False, default='setup')  # setup, ready, in_progress, completed
    current_question_id = db.Column(db.Integer, db.ForeignKey('quiz_question.id'), nullable=True)
    current_player_index = db.Column(db.Integer, default=0)
    player_names = db.Column(db.Text, nullable=False, default='[]')  # JSON-encoded list of names
    scores = db.Column(db.Text, nullable=False, default='{}')  # JSON-encoded {name: points}
    started_at = db.Column(db.DateTime, nullable=True)
    completed_at = db.Column(db.DateTime, nullable=True)
    created_at = db.Column(db.DateTime, nullable=False, default=_utcnow)
    answers = db.relationship('PlayerAnswer', backref='session', lazy='dynamic', cascade='all, delete-orphan')
    overrules = db.relationship('OverruleEvent', backref='session', lazy='dynamic', cascade='all, delete-orphan')

    @property
    def names(self):
        try:
            return json.loads(self.player_names or '[]')
        except ValueError:
            return []

    @property
    def score_table(self):
        try:
            return json.loads(self.scores or '{}')
        except ValueError:
            return {}

    def set_scores(self, table):
        self.scores = json.dumps(table)

    def to_dict(self):
        return {
            'id': self.id,
            'quiz_file_id': self.quiz_file_id,
            'league': self.league,
            'topic': self.topic,
            'status': self.status,
            'current_question_id': self.current_question_id,
            'current_player_index': self.current_player_index,
            'player_names': self.names,
            'scores': self.score_table,
            'started_at': _iso(self.started_at),
            'completed_at': _iso(self.completed_at),
            'created_at': _iso(self.created_at),
        }


class PlayerAnswer(db.Model):
    __tablename__ = 'player_answer'
    id = db.Column(db.Integer, primary_key=True)
    session_id = db.Column(db.Integer, db.ForeignKey('game_session.id', ondelete='CASCADE'), nullable=False, index=True)
    question_id = db.Column(db.Integer, db.ForeignKey('quiz_question.id'), nullable=False)
    player_id = db.Column(db.Integer, nullable=False)  # roster position id, not a user account
    player_name = db.Column(db.String(255), nullable=False)
    attempt_order = db.Column(db.Integer, nullable=False)
    spoken_answer = db.Column(db.Text, nullable=True)
    result = db.Column(db.String(16), nullable=False)  # correct, incorrect, passed, timeout
    is_addressed = db.Column(db.Boolean, nullable=False, default=False)
    time_taken = db.Column(db.Integer, nullable=True)
    points_awarded = db.Column(db.Integer, nullable=False, default=0)
    was_overruled = db.Column(db.Boolean, nullable=False, default=False)
    created_at = db.Column(db.DateTime, nullable=False, default=_utcnow)

    def to_dict(self):
        return {
            'id': self.id,
            'session_id': self.session_id,
            'question_id': self.question_id,
            'player_id': self.player_id,
            'player_name': self.player_name,
            'attempt_order': self.attempt_order,
            'spoken_answer': self.spoken_answer,
            'result': self.result,
            'is_addressed': self.is_addressed,
            'time_taken': self.time_taken,
            'points_awarded': self.points_awarded,
            'was_overruled': self.was_overruled,
            'created_at': _iso(self.created_at),
        }


class OverruleEvent(db.Model):
    __tablename__ = 'overrule_event'
    id = db.Column(db.Integer, primary_key=True)
    session_id = db.Column(db.Integer, db.ForeignKey('game_session.id', ondelete='CASCADE'), nullable=False, index=True)
    question_id = db.Column(db.Integer, db.ForeignKey('quiz_question.id'), nullable=False)
    original_answer_id = db.Column(db.Integer, db.ForeignKey('player_answer.id'), nullable=False)
    challenger_id = db.Column(db.Integer, nullable=False)
    challenger_name = db.Column(db.String(255), nullable=False)
    claim_type = db.Column(db.String(50), nullable=False)
    original_result = db.Column(db.String(16), nullable=False)
    new_result = db.Column(db.String(16), nullable=False)
    points_adjustment = db.Column(db.Integer, nullable=False)
    created_at = db.Column(db.DateTime, nullable=False, default=_utcnow)

    def to_dict(self):
        return {
            'id': self.id,
            'session_id': self.session_id,
            'question_id': self.question_id,
            'original_answer_id': self.original_answer_id,
            'challenger_id': self.challenger_id,
            'challenger_name': self.challenger_name,
            'claim_type': self.claim_type,
            'original_result': self.original_result,
            'new_result': self.new_result,
            'points_adjustment': self.points_adjustment,
            'created_at': _iso(self.created_at),
        }


class AuditLog(db.Model):
    __tablename__ = 'audit_log'
    id = db.Column(db.Integer, primary_key=True)
    session_id = db.Column(db.Integer, db.ForeignKey('game_session.id', ondelete='CASCADE'), nullable=True, index=True)
    action = db.Column(db.String(100), nullable=False)
    entity_type = db.Column(db.String(50), nullable=False)
    entity_id = db.Column(db.Integer, nullable=True)
    details = db.Column(db.Text, nullable=True)  # JSON-encoded
    ip_address = db.Column(db.String(45), nullable=True)
    created_at = db.Column(db.DateTime, nullable=False, default=_utcnow)
