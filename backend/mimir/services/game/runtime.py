"""Single-host session driver: one device runs every player's microphone.

Holds the current immutable ``GameState`` and feeds it through the engine as
speech transcripts, passes, overrule claims and timer expiries arrive.
Answer attempts and overrules are handed to a recorder so the backend keeps
a history of the session.

Timer expiries arrive on a background task while speech arrives on the
request thread, so every transition runs under one re-entrant lock and the
engine update is applied before the recorder is called. A countdown that
fires while an attempt is being written finds a newer version and is
ignored.
"""

from dataclasses import replace
import logging
import threading
import time
from typing import Callable, Iterable, List, Optional, Protocol, Union

from sqlalchemy.exc import SQLAlchemyError

from mimir.errors import InvariantViolation, RecordNotFound
from . import engine
from .matching import match
from .state import (
    AnswerAttempt,
    AnswerResult,
    ClaimType,
    GameRules,
    GameState,
    GameStatus,
    MicState,
    Player,
    Question,
    TimerToken,
)

logger = logging.getLogger(__name__)


class Recorder(Protocol):
    def record_answer(self, session_id: int, question_id: int, attempt: AnswerAttempt) -> Optional[int]:
        ...

    def record_overrule(
        self,
        session_id: int,
        question_id: int,
        original_answer_id: Optional[int],
        challenger: Player,
        claim_type: ClaimType,
        original_result: Optional[AnswerResult],
        new_result: AnswerResult,
        points_adjustment: int,
    ) -> Optional[int]:
        ...


class NullRecorder:
    """Keeps nothing. Used when no session has been created on the backend."""

    def record_answer(self, session_id, question_id, attempt):
        return None

    def record_overrule(self, session_id, question_id, original_answer_id, challenger,
                        claim_type, original_result, new_result, points_adjustment):
        return None


class SessionGameRuntime:
    def __init__(
        self,
        rules: Optional[GameRules] = None,
        recorder: Optional[Recorder] = None,
        matcher: Callable[..., AnswerResult] = match,
        clock: Callable[[], float] = time.monotonic,
        log: Optional[logging.Logger] = None,
    ):
        self.rules = rules or GameRules()
        self.recorder = recorder or NullRecorder()
        self.matcher = matcher
        self.clock = clock
        self.log = log or logger
        self._state = GameState()
        self._armed_at = clock()
        self._lock = threading.RLock()

    @property
    def state(self) -> GameState:
        return self._state

    @property
    def warnings(self) -> List[str]:
        return list(self._state.warnings)

    def _apply(self, update):
        if update is None:
            return self._state
        self._state = self._state.apply(update)
        if 'timer_seconds' in update:
            self._armed_at = self.clock()
        return self._state

    # ---- lifecycle ----

    def start(
        self,
        players: Iterable[Union[str, Player]],
        questions: Iterable[Union[Question, dict]],
        session_id: Optional[int] = None,
        host_gated: bool = False,
    ) -> GameState:
        roster = []
        for i, p in enumerate(players):
            roster.append(p if isinstance(p, Player) else Player(id=i + 1, name=str(p).strip()))
        qs = [q if isinstance(q, Question) else Question.from_dict(q) for q in questions]
        with self._lock:
            self._state = engine.initialize_game(
                roster, qs, self.rules, host_gated=host_gated, session_id=session_id,
            )
            self._armed_at = self.clock()
            for warning in self._state.warnings:
                self.log.warning(f"[data-quality] session={session_id} {warning}")
            return self._state

    def begin(self) -> GameState:
        with self._lock:
            return self._apply(engine.begin_game(self._state, self.rules))

    def open_mic(self) -> GameState:
        with self._lock:
            return self._apply(engine.open_mic(self._state))

    def next_question(self) -> GameState:
        with self._lock:
            before = len(self._state.warnings)
            state = self._apply(engine.move_to_next_question(self._state, self.rules))
            for warning in state.warnings[before:]:
                self.log.warning(f"[data-quality] session={state.session_id} {warning}")
            if state.status == GameStatus.COMPLETED:
                self.log.info(f"[finish] session={state.session_id} scores={[(p.name, p.score) for p in state.players]}")
            return state

    # ---- answers ----

    def answer(self, spoken: str) -> AnswerResult:
        with self._lock:
            question = self._state.current_question
            result = self.matcher(spoken, question.answer_text, self.rules.match_threshold)
            self._submit(spoken, result)
            return result

    def pass_turn(self) -> GameState:
        with self._lock:
            return self._submit('', AnswerResult.PASSED)

    def repeat(self) -> str:
        """Re-arm the current window without consuming an attempt."""
        with self._lock:
            self._apply(engine.rearm_timer(self._state, self.rules))
            return self._state.current_question.question_text

    def _submit(self, spoken: str, result: AnswerResult) -> GameState:
        with self._lock:
            before = self._state
            question = before.current_question
            player = before.current_player
            is_addressed = before.is_addressed_turn
            attempt = AnswerAttempt(
                player_id=player.id,
                player_name=player.name,
                spoken_answer=spoken,
                result=result,
                is_addressed=is_addressed,
                time_taken=max(0, int(round(self.clock() - self._armed_at))),
                attempt_order=before.attempt_count,
                points_awarded=engine.calculate_score(result, is_addressed, self.rules),
            )
            state = self._apply(engine.process_answer(before, spoken, result, self.rules))
            self.log.info(
                f"[answer] session={before.session_id} q={question.id} player={player.name} "
                f"result={result.value} points={attempt.points_awarded} attempt={attempt.attempt_order}"
            )
            if before.session_id is None:
                return state

            answer_id = self.recorder.record_answer(before.session_id, question.id, attempt)
            # Same transition, so the version stays and armed tokens remain valid
            if answer_id is not None and self._state is state:
                self._state = replace(state, last_answer_id=answer_id)
            return self._state

    # ---- overrules ----

    def open_overrule(self, challenger_index: Optional[int] = None) -> GameState:
        with self._lock:
            if challenger_index is None:
                challenger_index = self._default_challenger()
            return self._apply(engine.open_overrule_claim(self._state, challenger_index, self.rules))

    def claim_overrule(self, claim_type: Union[ClaimType, str], challenger_index: Optional[int] = None) -> GameState:
        """Apply an overrule claim, record it, then move on to the next question."""
        claim = ClaimType(claim_type)
        with self._lock:
            before = self._state
            if challenger_index is None:
                challenger_index = self._default_challenger()
            update = engine.handle_overrule(before, challenger_index, claim, self.rules)

            target = before.last_answer_player_index
            if target is None:
                target = before.current_player_index
            adjustment = update['players'][target].score - before.players[target].score
            self._apply(update)
            self.log.info(
                f"[overrule] session={before.session_id} claim={claim.value} "
                f"player={before.players[target].name} adjustment={adjustment}"
            )
            if before.session_id is not None:
                try:
                    self.recorder.record_overrule(
                        before.session_id,
                        before.current_question.id,
                        before.last_answer_id,
                        before.players[challenger_index],
                        claim,
                        before.last_answer_result,
                        update['last_answer_result'],
                        adjustment,
                    )
                except (SQLAlchemyError, RecordNotFound) as exc:
                    # The score change still applies; the history just misses the event
                    self.log.error(f"[overrule] session={before.session_id} failed to record: {exc}")
            return self.next_question()

    def _default_challenger(self) -> int:
        s = self._state
        if s.active_mic_player_index is not None:
            return s.active_mic_player_index
        if s.last_answer_player_index is not None:
            return s.last_answer_player_index
        return s.current_player_index

    # ---- speech routing ----

    def hear(self, transcript: str) -> Optional[str]:
        """Route a recognised utterance according to the current mic state.

        Returns the action taken, or ``None`` when the utterance was ignored.
        """
        with self._lock:
            s = self._state
            if s.status != GameStatus.IN_PROGRESS:
                return None
            text = (transcript or '').strip().lower()

            if s.overrule_in_progress:
                # Check the negative words first: "incorrect" contains "correct"
                if 'incorrect' in text or 'wrong' in text:
                    self.claim_overrule(ClaimType.INCORRECT)
                    return 'overrule_claim'
                if 'correct' in text or 'right' in text:
                    self.claim_overrule(ClaimType.CORRECT)
                    return 'overrule_claim'
                return None

            if s.mic_state == MicState.OVERRULE_WINDOW:
                if 'overrule' in text:
                    self.open_overrule()
                    return 'overrule_open'
                return None

            if s.mic_state in (MicState.ACTIVE, MicState.LISTENING):
                if text == 'repeat' or text.startswith('repeat '):
                    self.repeat()
                    return 'repeat'
                if text == 'pass':
                    self.pass_turn()
                    return 'pass'
                self.answer(transcript)
                return 'answer'
            return None

    # ---- timers ----

    def timer_token(self) -> TimerToken:
        with self._lock:
            s = self._state
            seconds = s.timer_seconds
            if s.status == GameStatus.IN_PROGRESS and s.mic_state == MicState.DISABLED:
                seconds = self.rules.post_correct_pause
            return TimerToken(
                version=s.version,
                question_index=s.current_question_index,
                attempt_count=s.attempt_count,
                mic_state=s.mic_state,
                seconds=seconds,
            )

    def expire(self, token: TimerToken) -> bool:
        """Handle a countdown reaching zero.

        Tokens armed for an older state version are ignored. Returns whether
        the expiry changed the state.
        """
        with self._lock:
            s = self._state
            if token.version != s.version or s.status != GameStatus.IN_PROGRESS:
                self.log.info(f"[timer-stale] session={s.session_id} token={token.version} current={s.version}")
                return False
            self.log.info(f"[timer-fire] session={s.session_id} q={s.current_question_index} mic={s.mic_state.value}")

            if s.overrule_in_progress or s.mic_state == MicState.OVERRULE_WINDOW:
                self._apply(engine.close_overrule_window(s))
                self.next_question()
                return True
            if s.mic_state in (MicState.ACTIVE, MicState.LISTENING):
                self._submit('', AnswerResult.TIMEOUT)
                return True
            if s.mic_state == MicState.DISABLED:
                self.next_question()
                return True
            raise InvariantViolation(f'unexpected mic state {s.mic_state.value}')
