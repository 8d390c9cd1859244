"""Game domain services: answer matching, the turn engine and timers.

This package contains pure(ish) domain logic that should be imported by
HTTP routes and socket handlers, keeping transport concerns separated
from core game mechanics.
"""

from .state import (  # noqa: F401
    AnswerAttempt,
    AnswerResult,
    ClaimType,
    GameRules,
    GameState,
    GameStatus,
    MicState,
    PassPolicy,
    Player,
    Question,
    ScoringTable,
    SCORING_TABLES,
    TimerToken,
)
from .matching import match  # noqa: F401
