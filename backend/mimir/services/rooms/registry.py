"""In-memory registry of multiplayer rooms.

One registry per application process. It is the only writer of room state;
callers hold ``serialized()`` for the whole of an event (mutation plus
broadcast) so events for any room are applied one at a time and broadcasts
go out in processing order.

Rooms are frozen values: every change stores a new ``Room`` with a bumped
``version``, so a snapshot already handed to a broadcast never changes
underneath it. Scaling past one process needs a shared store with per-room
locking in place of this dict.
"""

import random
import string
import threading
import time
from contextlib import contextmanager
from dataclasses import dataclass, field, replace
from typing import Any, Callable, Dict, Iterator, Optional, Tuple

CODE_ALPHABET = string.ascii_uppercase + string.digits


@dataclass(frozen=True)
class LobbyPlayer:
    id: str  # socket session id
    name: str
    is_host: bool = False
    is_ready: bool = False

    def to_dict(self) -> Dict[str, Any]:
        return {'id': self.id, 'name': self.name, 'isHost': self.is_host, 'isReady': self.is_ready}


@dataclass(frozen=True)
class RoomGame:
    quiz: Optional[Dict[str, Any]] = None
    is_started: bool = False
    is_finished: bool = False
    current_question_index: int = 0
    scores: Dict[str, int] = field(default_factory=dict)

    @property
    def question_count(self) -> int:
        if not self.quiz:
            return 0
        return len(self.quiz.get('questions') or [])

    def to_dict(self) -> Dict[str, Any]:
        return {
            'quiz': self.quiz,
            'isStarted': self.is_started,
            'isFinished': self.is_finished,
            'currentQuestionIndex': self.current_question_index,
            'scores': dict(self.scores),
        }


@dataclass(frozen=True)
class Room:
    code: str
    host_player_id: str
    players: Tuple[LobbyPlayer, ...]
    max_players: int
    created_at: int  # epoch milliseconds
    game: RoomGame = field(default_factory=RoomGame)
    version: int = 0

    @property
    def is_full(self) -> bool:
        return len(self.players) >= self.max_players

    def player(self, player_id: str) -> Optional[LobbyPlayer]:
        for p in self.players:
            if p.id == player_id:
                return p
        return None

    def to_dict(self) -> Dict[str, Any]:
        return {
            'code': self.code,
            'hostPlayerId': self.host_player_id,
            'players': [p.to_dict() for p in self.players],
            'gameState': self.game.to_dict(),
            'maxPlayers': self.max_players,
            'createdAt': self.created_at,
            'version': self.version,
        }


@dataclass(frozen=True)
class Membership:
    room_code: str
    player_name: str


class RoomRegistry:
    def __init__(
        self,
        max_players: int = 4,
        code_length: int = 6,
        code_retries: int = 10,
        rng: Optional[random.Random] = None,
        clock: Callable[[], float] = time.time,
    ):
        self.max_players = max_players
        self.code_length = code_length
        self.code_retries = code_retries
        self._rng = rng or random.SystemRandom()
        self._clock = clock
        self._rooms: Dict[str, Room] = {}
        self._members: Dict[str, Membership] = {}
        self._lock = threading.RLock()
        self._closed = False

    # ---- lifecycle ----

    @property
    def closed(self) -> bool:
        return self._closed

    def shutdown(self) -> None:
        with self._lock:
            self._rooms.clear()
            self._members.clear()
            self._closed = True

    @contextmanager
    def serialized(self) -> Iterator['RoomRegistry']:
        with self._lock:
            if self._closed:
                raise RuntimeError('room registry has been shut down')
            yield self

    # ---- rooms ----

    def __len__(self) -> int:
        return len(self._rooms)

    def __contains__(self, code: str) -> bool:
        return code in self._rooms

    def generate_code(self) -> str:
        """Random code, retried a few times to dodge live rooms."""
        code = ''
        for _ in range(max(1, self.code_retries)):
            code = ''.join(self._rng.choice(CODE_ALPHABET) for _ in range(self.code_length))
            if code not in self._rooms:
                return code
        return code

    def new_room(self, host: LobbyPlayer) -> Room:
        room = Room(
            code=self.generate_code(),
            host_player_id=host.id,
            players=(host,),
            max_players=self.max_players,
            created_at=int(self._clock() * 1000),
        )
        return self.save(room)

    def get(self, code: str) -> Optional[Room]:
        return self._rooms.get(code)

    def save(self, room: Room) -> Room:
        previous = self._rooms.get(room.code)
        version = (previous.version if previous else room.version) + 1
        stored = replace(room, version=version)
        self._rooms[room.code] = stored
        return stored

    def delete(self, code: str) -> None:
        self._rooms.pop(code, None)

    # ---- socket membership ----

    def bind(self, sid: str, room_code: str, player_name: str) -> None:
        self._members[sid] = Membership(room_code=room_code, player_name=player_name)

    def unbind(self, sid: str) -> Optional[Membership]:
        return self._members.pop(sid, None)

    def membership(self, sid: str) -> Optional[Membership]:
        return self._members.get(sid)
