"""Error taxonomy shared by the engine, the room coordinator and the HTTP layer."""

from typing import Any, Optional


class RoomError(Exception):
    """A rejected room request (unknown room, room full, game already started...).

    Reported back to the caller; never fatal to the room.
    """

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class PayloadError(RoomError):
    """An inbound payload that failed schema validation."""

    def __init__(self, details: Optional[Any] = None):
        super().__init__('Invalid payload')
        self.details = details or []


class RecordNotFound(LookupError):
    """A quiz, session or answer row the request refers to does not exist."""

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class InvariantViolation(RuntimeError):
    """A caller broke a game-state invariant. Indicates a bug, not bad input."""
