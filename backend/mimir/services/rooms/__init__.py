"""Multiplayer room services: the per-process registry and the room protocol."""

from .registry import LobbyPlayer, Room, RoomGame, RoomRegistry  # noqa: F401
from .coordinator import Broadcast, Outcome, RoomCoordinator  # noqa: F401
