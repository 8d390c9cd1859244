"""Immutable game-state values and rule tables for a single quiz session."""

from dataclasses import dataclass, field, replace
from enum import Enum
from typing import Any, Dict, Mapping, Optional, Tuple


class GameStatus(str, Enum):
    SETUP = 'setup'
    READY = 'ready'
    IN_PROGRESS = 'in_progress'
    COMPLETED = 'completed'


class MicState(str, Enum):
    DISABLED = 'disabled'
    ACTIVE = 'active'
    LISTENING = 'listening'
    OVERRULE_WINDOW = 'overrule_window'


class AnswerResult(str, Enum):
    CORRECT = 'correct'
    INCORRECT = 'incorrect'
    PASSED = 'passed'
    TIMEOUT = 'timeout'


class ClaimType(str, Enum):
    CORRECT = 'correct'
    INCORRECT = 'incorrect'


class PassPolicy(str, Enum):
    CONSUME = 'consume'  # a pass uses up the attempt like an incorrect answer
    REVEAL = 'reveal'  # a pass ends the question and reveals the answer


@dataclass(frozen=True)
class ScoringTable:
    addressed: int
    bonus: int


SCORING_TABLES: Dict[str, ScoringTable] = {
    'tiered': ScoringTable(addressed=3, bonus=2),
    'flat': ScoringTable(addressed=1, bonus=1),
}


@dataclass(frozen=True)
class GameRules:
    """Timers and scoring policy. Built once from app config."""

    addressed_timer: int = 30
    bonus_timer: int = 5
    overrule_window: int = 5
    post_correct_pause: int = 3
    scoring: ScoringTable = SCORING_TABLES['tiered']
    pass_policy: PassPolicy = PassPolicy.CONSUME
    match_threshold: float = 0.6

    @classmethod
    def from_config(cls, cfg: Mapping[str, Any]) -> 'GameRules':
        policy = str(cfg.get('SCORING_POLICY', 'tiered')).lower()
        if policy not in SCORING_TABLES:
            raise ValueError(f"Unknown SCORING_POLICY {policy!r}; expected one of {sorted(SCORING_TABLES)}")
        return cls(
            addressed_timer=int(cfg.get('ADDRESSED_TIMER_SEC', 30)),
            bonus_timer=int(cfg.get('BONUS_TIMER_SEC', 5)),
            overrule_window=int(cfg.get('OVERRULE_WINDOW_SEC', 5)),
            post_correct_pause=int(cfg.get('POST_CORRECT_PAUSE_SEC', 3)),
            scoring=SCORING_TABLES[policy],
            pass_policy=PassPolicy(str(cfg.get('PASS_POLICY', 'consume')).lower()),
            match_threshold=float(cfg.get('MATCH_THRESHOLD', 0.6)),
        )


@dataclass(frozen=True)
class Player:
    id: int
    name: str
    score: int = 0
    bonus_attempts: int = 0

    def to_dict(self) -> Dict[str, Any]:
        return {
            'id': self.id,
            'name': self.name,
            'score': self.score,
            'bonusAttempts': self.bonus_attempts,
        }


@dataclass(frozen=True)
class Question:
    id: int
    round_number: int
    player_number: int  # 1-based addressed player
    question_text: str
    answer_text: str
    order_index: int
    question_image_url: Optional[str] = None
    answer_image_url: Optional[str] = None

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> 'Question':
        """Accepts both the REST (snake_case) and socket (camelCase) spellings."""

        def pick(*keys, default=None):
            for k in keys:
                if k in data and data[k] is not None:
                    return data[k]
            return default

        return cls(
            id=int(pick('id', default=0)),
            round_number=int(pick('round_number', 'roundNumber', default=1)),
            player_number=int(pick('player_number', 'playerNumber', default=1)),
            question_text=str(pick('question_text', 'questionText', 'question', default='')),
            answer_text=str(pick('answer_text', 'answerText', 'answer', default='')),
            order_index=int(pick('order_index', 'orderIndex', default=0)),
            question_image_url=pick('question_image_url', 'questionImageUrl'),
            answer_image_url=pick('answer_image_url', 'answerImageUrl'),
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            'id': self.id,
            'roundNumber': self.round_number,
            'playerNumber': self.player_number,
            'questionText': self.question_text,
            'questionImageUrl': self.question_image_url,
            'answerText': self.answer_text,
            'answerImageUrl': self.answer_image_url,
            'orderIndex': self.order_index,
        }


@dataclass(frozen=True)
class AnswerAttempt:
    player_id: int
    player_name: str
    spoken_answer: str
    result: AnswerResult
    is_addressed: bool
    time_taken: int
    attempt_order: int
    points_awarded: int

    def to_dict(self) -> Dict[str, Any]:
        return {
            'player_id': self.player_id,
            'player_name': self.player_name,
            'spoken_answer': self.spoken_answer,
            'result': self.result.value,
            'is_addressed': self.is_addressed,
            'time_taken': self.time_taken,
            'attempt_order': self.attempt_order,
            'points_awarded': self.points_awarded,
        }


@dataclass(frozen=True)
class GameState:
    status: GameStatus = GameStatus.SETUP
    players: Tuple[Player, ...] = ()
    questions: Tuple[Question, ...] = ()
    current_question_index: int = 0
    current_player_index: int = 0
    addressed_player_index: int = 0
    attempt_count: int = 0
    mic_state: MicState = MicState.DISABLED
    active_mic_player_index: Optional[int] = None
    timer_seconds: int = 0
    show_answer: bool = False
    overrule_in_progress: bool = False
    last_answer_id: Optional[int] = None
    last_answer_result: Optional[AnswerResult] = None
    last_answer_player_index: Optional[int] = None
    warnings: Tuple[str, ...] = ()
    session_id: Optional[int] = None
    # Bumped on every applied update; timer callbacks compare against it.
    version: int = 0

    @property
    def current_question(self) -> Question:
        return self.questions[self.current_question_index]

    @property
    def current_player(self) -> Player:
        return self.players[self.current_player_index]

    @property
    def is_addressed_turn(self) -> bool:
        return self.current_player_index == self.addressed_player_index

    def apply(self, update: Optional[Mapping[str, Any]]) -> 'GameState':
        """Return a new state with ``update`` merged in and the version bumped."""
        changes = dict(update or {})
        for key in ('players', 'questions', 'warnings'):
            if key in changes:
                changes[key] = tuple(changes[key])
        return replace(self, version=self.version + 1, **changes)

    def to_dict(self, include_answers: bool = True) -> Dict[str, Any]:
        questions = [q.to_dict() for q in self.questions]
        if not include_answers:
            for q in questions:
                q.pop('answerText', None)
                q.pop('answerImageUrl', None)
        return {
            'sessionId': self.session_id,
            'status': self.status.value,
            'players': [p.to_dict() for p in self.players],
            'questions': questions,
            'currentQuestionIndex': self.current_question_index,
            'currentPlayerIndex': self.current_player_index,
            'addressedPlayerIndex': self.addressed_player_index,
            'attemptCount': self.attempt_count,
            'micState': self.mic_state.value,
            'activeMicPlayerIndex': self.active_mic_player_index,
            'timerSeconds': self.timer_seconds,
            'showAnswer': self.show_answer,
            'overruleInProgress': self.overrule_in_progress,
            'lastAnswerId': self.last_answer_id,
            'lastAnswerResult': self.last_answer_result.value if self.last_answer_result else None,
            'lastAnswerPlayerIndex': self.last_answer_player_index,
            'warnings': list(self.warnings),
            'version': self.version,
        }


@dataclass(frozen=True)
class TimerToken:
    """Identifies the countdown armed for one specific state version."""

    version: int
    question_index: int
    attempt_count: int
    mic_state: MicState
    seconds: int = field(default=0, compare=False)
