"""Turn rotation and scoring for a single quiz session.

Every operation is a pure function of a ``GameState`` snapshot and returns a
partial update (a dict of changed fields). Callers merge it with
``GameState.apply`` to obtain the next immutable snapshot. Nothing here logs,
sleeps or touches the database.
"""

from typing import Any, Dict, Iterable, List, Optional, Sequence, Tuple

from mimir.errors import InvariantViolation
from .state import (
    AnswerResult,
    ClaimType,
    GameRules,
    GameState,
    GameStatus,
    MicState,
    PassPolicy,
    Player,
    Question,
)

DEFAULT_RULES = GameRules()

Update = Dict[str, Any]

_ANSWERING = (MicState.ACTIVE, MicState.LISTENING)


def calculate_score(result: AnswerResult, is_addressed: bool, rules: GameRules = DEFAULT_RULES) -> int:
    if result != AnswerResult.CORRECT:
        return 0
    return rules.scoring.addressed if is_addressed else rules.scoring.bonus


def get_next_player_index(current: int, addressed: int, total_players: int, attempt_count: int) -> int:
    """Who answers attempt number ``attempt_count`` (0-based).

    The addressed player always gets attempt 0. Later attempts walk the table
    clockwise from the current player, skipping the addressed player.
    """
    if attempt_count == 0:
        return addressed
    if attempt_count >= total_players:
        return current

    next_index = (current + 1) % total_players
    iterations = 0
    # Bounded so a corrupted index can never spin forever
    while next_index == addressed and iterations < total_players:
        next_index = (next_index + 1) % total_players
        iterations += 1
    if iterations >= total_players:
        return current
    return next_index


def should_end_question(attempt_count: int, total_players: int) -> bool:
    return attempt_count >= total_players


def get_timer_duration(is_addressed: bool, rules: GameRules = DEFAULT_RULES) -> int:
    return rules.addressed_timer if is_addressed else rules.bonus_timer


def resolve_addressed_player(question: Question, players: Sequence[Player]) -> Tuple[int, Optional[str]]:
    """Map a question's 1-based player number onto a player index.

    Out-of-range numbers fall back to the first player and come back with a
    warning for the UI instead of raising.
    """
    number = question.player_number
    if 0 < number <= len(players):
        return number - 1, None
    warning = (
        f"Question {question.id}: invalid player number {number}; "
        f"valid range is 1-{len(players)}. Defaulting to Player 1."
    )
    return 0, warning


def initialize_game(
    players: Iterable[Player],
    questions: Iterable[Question],
    rules: GameRules = DEFAULT_RULES,
    host_gated: bool = False,
    session_id: Optional[int] = None,
) -> GameState:
    roster = tuple(Player(id=p.id, name=p.name, score=0, bonus_attempts=0) for p in players)
    ordered = tuple(sorted(questions, key=lambda q: q.order_index))
    if not roster:
        raise InvariantViolation('cannot start a game without players')
    if not ordered:
        raise InvariantViolation('cannot start a game without questions')

    addressed, warning = resolve_addressed_player(ordered[0], roster)
    warnings: List[str] = [warning] if warning else []
    mic = MicState.DISABLED if host_gated else MicState.ACTIVE
    return GameState(
        status=GameStatus.READY if host_gated else GameStatus.IN_PROGRESS,
        players=roster,
        questions=ordered,
        current_question_index=0,
        current_player_index=addressed,
        addressed_player_index=addressed,
        attempt_count=0,
        mic_state=mic,
        active_mic_player_index=None if host_gated else addressed,
        timer_seconds=rules.addressed_timer,
        show_answer=False,
        overrule_in_progress=False,
        warnings=tuple(warnings),
        session_id=session_id,
    )


def begin_game(state: GameState, rules: GameRules = DEFAULT_RULES) -> Update:
    """Release a host-gated game (``ready``) into play."""
    if state.status != GameStatus.READY:
        raise InvariantViolation(f'cannot begin a game in status {state.status.value}')
    return {
        'status': GameStatus.IN_PROGRESS,
        'mic_state': MicState.ACTIVE,
        'active_mic_player_index': state.current_player_index,
        'timer_seconds': get_timer_duration(state.is_addressed_turn, rules),
    }


def open_mic(state: GameState) -> Update:
    """The question has been read out; start listening to the active player."""
    _require_in_progress(state)
    if state.mic_state != MicState.ACTIVE:
        raise InvariantViolation(f'cannot open mic from {state.mic_state.value}')
    return {'mic_state': MicState.LISTENING}


def rearm_timer(state: GameState, rules: GameRules = DEFAULT_RULES) -> Update:
    """Restart the current player's window (e.g. after a "repeat" request)."""
    _require_answering(state)
    return {'timer_seconds': get_timer_duration(state.is_addressed_turn, rules)}


def process_answer(
    state: GameState,
    spoken_answer: str,
    result: AnswerResult,
    rules: GameRules = DEFAULT_RULES,
) -> Update:
    _require_answering(state)
    total = len(state.players)
    if state.attempt_count >= total:
        raise InvariantViolation('every player has already answered this question')

    index = state.current_player_index
    is_addressed = state.is_addressed_turn
    points = calculate_score(result, is_addressed, rules)
    answerer = state.players[index]
    players = list(state.players)
    players[index] = Player(
        id=answerer.id,
        name=answerer.name,
        score=answerer.score + points,
        bonus_attempts=answerer.bonus_attempts + (0 if is_addressed else 1),
    )
    update: Update = {
        'players': players,
        'last_answer_result': result,
        'last_answer_player_index': index,
        'last_answer_id': None,
    }

    # A correct answer closes the question on the spot.
    if result == AnswerResult.CORRECT:
        update.update(
            mic_state=MicState.DISABLED,
            active_mic_player_index=None,
            show_answer=False,
            timer_seconds=0,
        )
        return update

    attempts = state.attempt_count + 1

    if result == AnswerResult.PASSED and rules.pass_policy == PassPolicy.REVEAL:
        update.update(
            attempt_count=attempts,
            mic_state=MicState.DISABLED,
            active_mic_player_index=None,
            show_answer=True,
            timer_seconds=0,
        )
        return update

    if should_end_question(attempts, total):
        update.update(
            attempt_count=attempts,
            mic_state=MicState.OVERRULE_WINDOW,
            active_mic_player_index=None,
            show_answer=True,
            timer_seconds=rules.overrule_window,
        )
        return update

    next_index = get_next_player_index(index, state.addressed_player_index, total, attempts)
    update.update(
        attempt_count=attempts,
        current_player_index=next_index,
        active_mic_player_index=next_index,
        mic_state=MicState.ACTIVE,
        timer_seconds=get_timer_duration(next_index == state.addressed_player_index, rules),
    )
    return update


def move_to_next_question(state: GameState, rules: GameRules = DEFAULT_RULES) -> Optional[Update]:
    """Advance to the next question, or finish the game after the last one.

    Returns ``None`` when the game has not started yet (nothing to advance).
    """
    if state.status == GameStatus.COMPLETED:
        raise InvariantViolation('game already completed')
    if state.status != GameStatus.IN_PROGRESS:
        return None

    next_index = state.current_question_index + 1
    if next_index >= len(state.questions):
        return {
            'status': GameStatus.COMPLETED,
            'mic_state': MicState.DISABLED,
            'active_mic_player_index': None,
            'overrule_in_progress': False,
            'timer_seconds': 0,
        }

    addressed, warning = resolve_addressed_player(state.questions[next_index], state.players)
    update: Update = {
        'current_question_index': next_index,
        'current_player_index': addressed,
        'addressed_player_index': addressed,
        'attempt_count': 0,
        'active_mic_player_index': addressed,
        'mic_state': MicState.ACTIVE,
        'timer_seconds': rules.addressed_timer,
        'show_answer': False,
        'overrule_in_progress': False,
        'last_answer_id': None,
        'last_answer_result': None,
        'last_answer_player_index': None,
    }
    if warning:
        update['warnings'] = state.warnings + (warning,)
    return update


def open_overrule_claim(state: GameState, challenger_index: int, rules: GameRules = DEFAULT_RULES) -> Update:
    """Someone said "overrule" during the window; listen for their claim."""
    _require_in_progress(state)
    _require_player_index(state, challenger_index)
    if state.mic_state != MicState.OVERRULE_WINDOW:
        raise InvariantViolation(f'no overrule window open (mic is {state.mic_state.value})')
    return {
        'overrule_in_progress': True,
        'mic_state': MicState.LISTENING,
        'active_mic_player_index': challenger_index,
        'timer_seconds': rules.overrule_window,
    }


def close_overrule_window(state: GameState) -> Update:
    _require_in_progress(state)
    return {
        'mic_state': MicState.DISABLED,
        'active_mic_player_index': None,
        'overrule_in_progress': False,
        'timer_seconds': 0,
    }


def handle_overrule(
    state: GameState,
    challenger_index: int,
    claim_type: ClaimType,
    rules: GameRules = DEFAULT_RULES,
) -> Update:
    """Apply an overrule claim against the player who answered last.

    ``correct`` awards the question's points after the fact; ``incorrect``
    takes one point away, never going below zero. The question is not
    advanced here.
    """
    _require_in_progress(state)
    _require_player_index(state, challenger_index)
    claim = ClaimType(claim_type)

    target = state.last_answer_player_index
    if target is None:
        target = state.current_player_index
    _require_player_index(state, target)

    player = state.players[target]
    if claim == ClaimType.CORRECT:
        points = calculate_score(AnswerResult.CORRECT, target == state.addressed_player_index, rules)
        score = player.score + points
        new_result = AnswerResult.CORRECT
    else:
        score = max(0, player.score - 1)
        new_result = AnswerResult.INCORRECT

    players = list(state.players)
    players[target] = Player(id=player.id, name=player.name, score=score, bonus_attempts=player.bonus_attempts)
    return {
        'players': players,
        'overrule_in_progress': False,
        'mic_state': MicState.DISABLED,
        'active_mic_player_index': None,
        'last_answer_result': new_result,
        'timer_seconds': 0,
    }


def _require_in_progress(state: GameState) -> None:
    if state.status != GameStatus.IN_PROGRESS:
        raise InvariantViolation(f'game is {state.status.value}, not in_progress')


def _require_answering(state: GameState) -> None:
    _require_in_progress(state)
    if state.mic_state not in _ANSWERING or state.overrule_in_progress:
        raise InvariantViolation(f'not accepting answers (mic is {state.mic_state.value})')
    _require_player_index(state, state.current_player_index)


def _require_player_index(state: GameState, index: int) -> None:
    if not 0 <= index < len(state.players):
        raise InvariantViolation(f'player index {index} out of range 0..{len(state.players) - 1}')
