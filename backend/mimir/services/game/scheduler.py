import logging
from typing import Callable, Optional

from .runtime import SessionGameRuntime
from .state import GameStatus, TimerToken


def schedule_timeout(
    runtime: SessionGameRuntime,
    start_task: Callable,
    sleep: Callable[[float], None],
    chain: bool = True,
    log: Optional[logging.Logger] = None,
) -> Optional[TimerToken]:
    """Arm a countdown for the runtime's current state.

    - No-ops once the game has completed or has not started
    - The worker sleeps, then hands its token back to ``runtime.expire``; a
      token armed for an older state version is ignored there
    - With ``chain`` the next countdown is armed after each expiry that
      changed the state

    ``start_task`` is ``socketio.start_background_task`` in production. Tests
    pass a function that runs the worker inline.
    """
    log = log or runtime.log
    state = runtime.state
    if state.status != GameStatus.IN_PROGRESS:
        return None

    token = runtime.timer_token()
    log.info(
        f"[timer-set] session={state.session_id} q={token.question_index} "
        f"mic={token.mic_state.value} version={token.version} duration={token.seconds}s"
    )

    def _worker(armed: TimerToken):
        if armed.seconds > 0:
            sleep(armed.seconds)
        fired = runtime.expire(armed)
        if fired and chain:
            schedule_timeout(runtime, start_task, sleep, chain=chain, log=log)

    start_task(_worker, token)
    return token
