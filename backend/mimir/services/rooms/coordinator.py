"""Room protocol: lobby membership, quiz loading and the shared score table.

The coordinator is transport-free. Each handler takes the caller's socket id
and a validated payload and returns an ``Outcome``: the ack for the caller,
the broadcasts to send (in order) and any Socket.IO room to join or leave.
``mimir.socketio_events`` turns outcomes into emits.

Lobby policy is cooperative: any member may toggle readiness, load a quiz,
start, advance or end the game.
"""

import logging
from dataclasses import dataclass, field, replace
from typing import Any, Dict, List, Optional

from mimir.errors import RoomError
from mimir.schemas import (
    CreateRoomIn,
    GetRoomIn,
    JoinRoomIn,
    LoadQuizIn,
    Outbound,
    SubmitAnswerIn,
)
from mimir.services.game import engine
from mimir.services.game.state import AnswerResult, GameRules
from .registry import LobbyPlayer, Room, RoomGame, RoomRegistry

logger = logging.getLogger(__name__)


@dataclass
class Broadcast:
    event: str
    payload: Dict[str, Any]
    room: str


@dataclass
class Outcome:
    ack: Optional[Dict[str, Any]] = None
    broadcasts: List[Broadcast] = field(default_factory=list)
    join: Optional[str] = None
    leave: Optional[str] = None

    def emit(self, event: str, payload: Dict[str, Any], room: str) -> None:
        self.broadcasts.append(Broadcast(event, payload, room))

    def extend(self, other: 'Outcome') -> None:
        self.broadcasts.extend(other.broadcasts)
        if other.leave:
            self.leave = other.leave


class RoomCoordinator:
    def __init__(self, registry: RoomRegistry, rules: Optional[GameRules] = None, log: Optional[logging.Logger] = None):
        self.registry = registry
        self.rules = rules or GameRules()
        self.log = log or logger

    # ---- lobby ----

    def create(self, sid: str, data: CreateRoomIn) -> Outcome:
        out = self._leave_current(sid)
        host = LobbyPlayer(id=sid, name=data.player_name, is_host=True)
        room = self.registry.new_room(host)
        self.registry.bind(sid, room.code, data.player_name)
        self.log.info(f"[room-create] room={room.code} host={data.player_name}")
        out.ack = {'success': True, 'room': room.to_dict()}
        out.join = room.code
        return out

    def join(self, sid: str, data: JoinRoomIn) -> Outcome:
        room = self.registry.get(data.room_code)
        if not room:
            raise RoomError('Room not found')
        if room.player(sid):
            return Outcome(ack={'success': True, 'room': room.to_dict()}, join=room.code)
        if room.is_full:
            raise RoomError('Room is full')
        if room.game.is_started:
            raise RoomError('Game already started')
        # Scores are keyed by name
        if any(p.name.casefold() == data.player_name.casefold() for p in room.players):
            raise RoomError('Name already taken')

        out = self._leave_current(sid)
        player = LobbyPlayer(id=sid, name=data.player_name)
        room = self.registry.save(replace(room, players=room.players + (player,)))
        self.registry.bind(sid, room.code, data.player_name)
        self.log.info(f"[room-join] room={room.code} player={data.player_name} count={len(room.players)}")
        snapshot = room.to_dict()
        out.join = room.code
        out.emit(Outbound.ROOM_UPDATED, snapshot, room.code)
        out.ack = {'success': True, 'room': snapshot}
        return out

    def get(self, sid: str, data: GetRoomIn) -> Outcome:
        room = self.registry.get(data.room_code)
        if not room:
            raise RoomError('Room not found')
        return Outcome(ack={'success': True, 'room': room.to_dict()})

    def toggle_ready(self, sid: str) -> Outcome:
        room = self._room_of(sid)
        players = tuple(
            replace(p, is_ready=not p.is_ready) if p.id == sid else p
            for p in room.players
        )
        room = self.registry.save(replace(room, players=players))
        out = Outcome()
        out.emit(Outbound.ROOM_UPDATED, room.to_dict(), room.code)
        return out

    def load_quiz(self, sid: str, data: LoadQuizIn) -> Outcome:
        room = self._room_of(sid)
        quiz = data.quiz.model_dump(by_alias=True, exclude_none=True)
        room = self.registry.save(replace(room, game=replace(room.game, quiz=quiz)))
        self.log.info(f"[quiz-load] room={room.code} questions={room.game.question_count}")
        out = Outcome()
        out.emit(Outbound.QUIZ_LOADED, {'quiz': quiz}, room.code)
        out.emit(Outbound.ROOM_UPDATED, room.to_dict(), room.code)
        return out

    # ---- game ----

    def start(self, sid: str) -> Outcome:
        room = self._room_of(sid)
        if not room.game.quiz:
            raise RoomError('No quiz loaded')
        game = replace(
            room.game,
            is_started=True,
            is_finished=False,
            current_question_index=0,
            scores={p.name: 0 for p in room.players},
        )
        room = self.registry.save(replace(room, game=game))
        self.log.info(f"[game-start] room={room.code} players={[p.name for p in room.players]}")
        out = Outcome()
        out.emit(Outbound.GAME_STARTED, room.game.to_dict(), room.code)
        out.emit(Outbound.ROOM_UPDATED, room.to_dict(), room.code)
        return out

    def next_question(self, sid: str) -> Outcome:
        room = self._require_started(sid)
        index = room.game.current_question_index + 1
        total = room.game.question_count
        if total and index >= total:
            return self._finish(room)
        room = self.registry.save(replace(room, game=replace(room.game, current_question_index=index)))
        out = Outcome()
        out.emit(Outbound.QUESTION_CHANGED, {'questionIndex': index, 'version': room.version}, room.code)
        return out

    def submit_answer(self, sid: str, data: SubmitAnswerIn) -> Outcome:
        room = self._require_started(sid)
        name = self.registry.membership(sid).player_name
        points = data.points
        if points is None:
            result = AnswerResult.CORRECT if data.is_correct else AnswerResult.INCORRECT
            points = engine.calculate_score(result, True, self.rules)

        out = Outcome()
        out.emit(Outbound.ANSWER_SUBMITTED, {
            'playerName': name,
            'isCorrect': data.is_correct,
            'answer': data.answer,
            'points': points,
        }, room.code)
        if data.is_correct and points:
            scores = dict(room.game.scores)
            scores[name] = scores.get(name, 0) + points
            room = self.registry.save(replace(room, game=replace(room.game, scores=scores)))
            out.emit(Outbound.SCORE_UPDATED, dict(scores), room.code)
        self.log.info(f"[answer] room={room.code} player={name} correct={data.is_correct} points={points}")
        return out

    def end(self, sid: str) -> Outcome:
        return self._finish(self._room_of(sid))

    def _finish(self, room: Room) -> Outcome:
        room = self.registry.save(replace(room, game=replace(room.game, is_finished=True)))
        self.log.info(f"[game-end] room={room.code} scores={room.game.scores}")
        out = Outcome()
        out.emit(Outbound.GAME_ENDED, {
            'scores': dict(room.game.scores),
            'players': [p.to_dict() for p in room.players],
        }, room.code)
        return out

    # ---- departures ----

    def disconnect(self, sid: str) -> Outcome:
        return self._leave_current(sid)

    def _leave_current(self, sid: str) -> Outcome:
        out = Outcome()
        membership = self.registry.unbind(sid)
        if not membership:
            return out
        room = self.registry.get(membership.room_code)
        if not room:
            return out
        out.leave = room.code

        remaining = tuple(p for p in room.players if p.id != sid)
        if not remaining:
            self.registry.delete(room.code)
            self.log.info(f"[room-delete] room={room.code} (empty)")
            return out

        host_id = room.host_player_id
        if host_id == sid:
            # First remaining member (join order) takes over
            host_id = remaining[0].id
            remaining = (replace(remaining[0], is_host=True),) + remaining[1:]
        room = self.registry.save(replace(room, players=remaining, host_player_id=host_id))
        self.log.info(f"[disconnect] room={room.code} player={membership.player_name} host={host_id}")
        out.emit(Outbound.ROOM_UPDATED, room.to_dict(), room.code)
        out.emit(Outbound.PLAYER_LEFT, {'playerName': membership.player_name}, room.code)
        return out

    # ---- lookups ----

    def _room_of(self, sid: str) -> Room:
        membership = self.registry.membership(sid)
        if not membership:
            raise RoomError('Not in a room')
        room = self.registry.get(membership.room_code)
        if not room:
            raise RoomError('Room not found')
        return room

    def _require_started(self, sid: str) -> Room:
        room = self._room_of(sid)
        if not room.game.is_started or room.game.is_finished:
            raise RoomError('Game not started')
        return room
