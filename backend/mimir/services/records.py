"""Session history: game sessions, answer attempts, overrules and audit rows.

Shared by the HTTP endpoints and by ``SqlRecorder``, which plugs a
``SessionGameRuntime`` straight into the database.
"""

from datetime import datetime
import json
from typing import Dict, List, Optional

from mimir import db
from mimir.errors import RecordNotFound
from mimir.models import AuditLog, GameSession, OverruleEvent, PlayerAnswer, QuizFile, QuizQuestion


def audit(action: str, entity_type: str, entity_id: Optional[int], session_id: Optional[int] = None,
          details: Optional[dict] = None, ip_address: Optional[str] = None) -> None:
    db.session.add(AuditLog(
        session_id=session_id,
        action=action,
        entity_type=entity_type,
        entity_id=entity_id,
        details=json.dumps(details or {}),
        ip_address=ip_address,
    ))


def ordered_questions(quiz_file_id: int) -> List[QuizQuestion]:
    return (
        QuizQuestion.query
        .filter_by(quiz_file_id=quiz_file_id)
        .order_by(QuizQuestion.order_index.asc(), QuizQuestion.id.asc())
        .all()
    )


def get_session(session_id: int) -> GameSession:
    session = db.session.get(GameSession, session_id)
    if not session:
        raise RecordNotFound('Game session not found')
    return session


def create_session(quiz_file_id: int, player_names: List[str]):
    quiz = db.session.get(QuizFile, quiz_file_id)
    if not quiz:
        raise RecordNotFound('Quiz file not found')
    questions = ordered_questions(quiz.id)
    if not questions:
        raise ValueError('Quiz file has no questions')

    session = GameSession(
        quiz_file_id=quiz.id,
        league=quiz.league,
        topic=quiz.topic,
        status='setup',
        player_names=json.dumps(player_names),
        scores=json.dumps({name: 0 for name in player_names}),
        current_question_id=questions[0].id,
    )
    quiz.times_played = (quiz.times_played or 0) + 1
    db.session.add(session)
    db.session.flush()
    audit('create_game', 'game_session', session.id, session_id=session.id, details={
        'quiz_file_id': quiz.id,
        'player_count': len(player_names),
        'league': quiz.league,
        'topic': quiz.topic,
    })
    db.session.commit()
    return session, questions


def _adjust_score(session: GameSession, name: str, delta: int) -> None:
    table: Dict[str, int] = session.score_table
    table[name] = max(0, int(table.get(name, 0)) + delta)
    session.set_scores(table)


def record_answer(session_id: int, question_id: int, player_id: int, player_name: str,
                  spoken_answer: str, result: str, is_addressed: bool, time_taken: int,
                  attempt_order: int, points_awarded: int) -> PlayerAnswer:
    session = get_session(session_id)
    answer = PlayerAnswer(
        session_id=session.id,
        question_id=question_id,
        player_id=player_id,
        player_name=player_name,
        spoken_answer=spoken_answer,
        result=result,
        is_addressed=is_addressed,
        time_taken=time_taken,
        attempt_order=attempt_order,
        points_awarded=points_awarded,
    )
    db.session.add(answer)
    if session.status in ('setup', 'ready'):
        session.status = 'in_progress'
        session.started_at = session.started_at or datetime.utcnow()
    session.current_question_id = question_id
    if points_awarded:
        _adjust_score(session, player_name, points_awarded)
    db.session.flush()
    audit('submit_answer', 'player_answer', answer.id, session_id=session.id, details={
        'question_id': question_id,
        'player_name': player_name,
        'result': result,
        'points_awarded': points_awarded,
    })
    db.session.commit()
    return answer


def record_overrule(session_id: int, question_id: int, original_answer_id: int, challenger_id: int,
                    challenger_name: str, claim_type: str, original_result: str, new_result: str,
                    points_adjustment: int, ip_address: Optional[str] = None) -> OverruleEvent:
    session = get_session(session_id)
    original = PlayerAnswer.query.filter_by(id=original_answer_id, session_id=session.id).first()
    if not original:
        raise RecordNotFound('Original answer not found')

    overrule = OverruleEvent(
        session_id=session.id,
        question_id=question_id,
        original_answer_id=original.id,
        challenger_id=challenger_id,
        challenger_name=challenger_name,
        claim_type=claim_type,
        original_result=original_result,
        new_result=new_result,
        points_adjustment=points_adjustment,
    )
    original.was_overruled = True
    db.session.add(overrule)
    if points_adjustment:
        _adjust_score(session, original.player_name, points_adjustment)
    db.session.flush()
    audit('overrule', 'overrule_event', overrule.id, session_id=session.id, ip_address=ip_address, details={
        'question_id': question_id,
        'challenger_name': challenger_name,
        'claim_type': claim_type,
        'points_adjustment': points_adjustment,
    })
    db.session.commit()
    return overrule


def complete_session(session_id: int, scores: Optional[Dict[str, int]] = None) -> GameSession:
    session = get_session(session_id)
    if scores is not None:
        session.set_scores({name: max(0, int(points)) for name, points in scores.items()})
    session.status = 'completed'
    session.completed_at = datetime.utcnow()
    audit('complete_game', 'game_session', session.id, session_id=session.id, details={'scores': session.score_table})
    db.session.commit()
    return session


class SqlRecorder:
    """Recorder for ``SessionGameRuntime`` that writes through this module."""

    def record_answer(self, session_id, question_id, attempt):
        row = record_answer(
            session_id, question_id, attempt.player_id, attempt.player_name, attempt.spoken_answer,
            attempt.result.value, attempt.is_addressed, attempt.time_taken, attempt.attempt_order,
            attempt.points_awarded,
        )
        return row.id

    def record_overrule(self, session_id, question_id, original_answer_id, challenger,
                        claim_type, original_result, new_result, points_adjustment):
        if original_answer_id is None:
            return None
        row = record_overrule(
            session_id, question_id, original_answer_id, challenger.id, challenger.name,
            getattr(claim_type, 'value', claim_type),
            getattr(original_result, 'value', original_result) or 'incorrect',
            getattr(new_result, 'value', new_result),
            points_adjustment,
        )
        return row.id
