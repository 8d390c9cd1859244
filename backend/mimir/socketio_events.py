from flask import current_app, request
from flask_socketio import emit, join_room, leave_room

from mimir import get_coordinator, socketio
from mimir.errors import PayloadError, RoomError
from mimir.schemas import Outbound, parse_inbound
from mimir.services.rooms import Outcome


def _get_sid() -> str:
    # type: ignore: request.sid exists in Socket.IO context
    return request.sid  # type: ignore


def _deliver(outcome: Outcome, departing: bool = False) -> None:
    """Apply room membership changes, then send broadcasts in order."""
    if not departing:
        if outcome.leave and outcome.leave != outcome.join:
            leave_room(outcome.leave)
        if outcome.join:
            join_room(outcome.join)
    for b in outcome.broadcasts:
        emit(b.event, b.payload, to=b.room)


def _dispatch(event: str, data, handler, wants_ack: bool):
    coordinator = get_coordinator(current_app)
    sid = _get_sid()
    try:
        with coordinator.registry.serialized():
            payload = parse_inbound(event, data)
            outcome = handler(coordinator, sid, payload)
            _deliver(outcome)
    except RoomError as exc:
        current_app.logger.info(f"[rejected] event={event} sid={sid} error={exc.message}")
        body = {'success': False, 'error': exc.message}
        if isinstance(exc, PayloadError):
            body['details'] = exc.details
        if wants_ack:
            return body
        emit(Outbound.ERROR, {'event': event, 'message': exc.message})
        return None
    return outcome.ack if wants_ack else None


def handle_connect(auth=None):
    emit('connected', {'message': 'Connected', 'sid': _get_sid()})


def handle_disconnect(reason=None):
    coordinator = get_coordinator(current_app)
    sid = _get_sid()
    with coordinator.registry.serialized():
        outcome = coordinator.disconnect(sid)
        _deliver(outcome, departing=True)


def handle_room_create(data=None):
    return _dispatch('room:create', data, lambda c, sid, p: c.create(sid, p), wants_ack=True)


def handle_room_join(data=None):
    return _dispatch('room:join', data, lambda c, sid, p: c.join(sid, p), wants_ack=True)


def handle_room_get(data=None):
    return _dispatch('room:get', data, lambda c, sid, p: c.get(sid, p), wants_ack=True)


def handle_player_ready(data=None):
    return _dispatch('player:ready', data, lambda c, sid, p: c.toggle_ready(sid), wants_ack=False)


def handle_quiz_load(data=None):
    return _dispatch('quiz:load', data, lambda c, sid, p: c.load_quiz(sid, p), wants_ack=False)


def handle_game_start(data=None):
    return _dispatch('game:start', data, lambda c, sid, p: c.start(sid), wants_ack=False)


def handle_next_question(data=None):
    return _dispatch('game:nextQuestion', data, lambda c, sid, p: c.next_question(sid), wants_ack=False)


def handle_submit_answer(data=None):
    return _dispatch('game:submitAnswer', data, lambda c, sid, p: c.submit_answer(sid, p), wants_ack=False)


def handle_game_end(data=None):
    return _dispatch('game:end', data, lambda c, sid, p: c.end(sid), wants_ack=False)


def handle_ping(data=None):
    emit('pong', data or {})


def register_socketio_handlers(namespace: str = '/') -> None:
    """Register Socket.IO event handlers on ``namespace``."""
    socketio.on_event('connect', handle_connect, namespace=namespace)
    socketio.on_event('disconnect', handle_disconnect, namespace=namespace)
    socketio.on_event('room:create', handle_room_create, namespace=namespace)
    socketio.on_event('room:join', handle_room_join, namespace=namespace)
    socketio.on_event('room:get', handle_room_get, namespace=namespace)
    socketio.on_event('player:ready', handle_player_ready, namespace=namespace)
    socketio.on_event('quiz:load', handle_quiz_load, namespace=namespace)
    socketio.on_event('game:start', handle_game_start, namespace=namespace)
    socketio.on_event('game:nextQuestion', handle_next_question, namespace=namespace)
    socketio.on_event('game:submitAnswer', handle_submit_answer, namespace=namespace)
    socketio.on_event('game:end', handle_game_end, namespace=namespace)
    socketio.on_event('ping', handle_ping, namespace=namespace)
