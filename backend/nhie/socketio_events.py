import functools

from flask import current_app, request
from flask_socketio import join_room, leave_room, emit

from nhie.api.rooms import parse_answer, parse_user_id
from nhie.errors import GameError, ValidationError
from nhie.services.rooms import controller
from nhie.services.rooms.fanout import fanout, room_key


def _get_sid() -> str:
    # request.sid exists in Socket.IO context
    return request.sid  # type: ignore


def _payload(data) -> dict:
    if data is None:
        return {}
    if not isinstance(data, dict):
        raise ValidationError('Invalid payload')
    return data


def _room_id(data) -> int:
    room_id = _payload(data).get('roomId')
    if isinstance(room_id, bool) or room_id in (None, ''):
        raise ValidationError('roomId is required')
    try:
        return int(room_id)
    except (TypeError, ValueError):
        raise ValidationError('roomId must be an integer') from None


def _user_id(data) -> int:
    return parse_user_id(_payload(data).get('userId'))


def _reports_errors(handler):
    """Surface rejected actions to the originating session only."""
    @functools.wraps(handler)
    def wrapper(data=None):
        try:
            return handler(data)
        except GameError as exc:
            current_app.logger.info(f"[ws-rejected] {handler.__name__} code={exc.code} message={exc.message}")
            emit('error', {'message': exc.message, 'code': exc.code})
    return wrapper


def handle_connect(auth=None):
    emit('connected', {'message': 'Connected to /ws'})


def handle_disconnect(*args):
    fanout.drop_session(_get_sid())


@_reports_errors
def handle_join_room(data):
    room_id = _room_id(data)
    room = controller.get_room(room_id)
    # Finished rooms are already pruned; send the final state without subscribing
    if room.status != 'completed':
        join_room(room_key(room_id))
        fanout.subscribe(room_id, _get_sid())
    emit('room-data', room.to_dict())


@_reports_errors
def handle_leave_room(data):
    room_id = _room_id(data)
    leave_room(room_key(room_id))
    fanout.unsubscribe(room_id, _get_sid())
    emit('left', {'roomId': room_id})


@_reports_errors
def handle_start_game(data):
    controller.start(_room_id(data), _user_id(data), category=_payload(data).get('category') or None)


@_reports_errors
def handle_submit_answer(data):
    room_id = _room_id(data)
    user_id = _user_id(data)
    controller.submit_answer(room_id, user_id, parse_answer(_payload(data).get('answer')))


@_reports_errors
def handle_next_round(data):
    controller.advance_round(_room_id(data), _user_id(data))


def handle_ping(data=None):
    emit('pong', data or {})


_HANDLERS = {
    'connect': handle_connect,
    'disconnect': handle_disconnect,
    'join-room': handle_join_room,
    'leave-room': handle_leave_room,
    'start-game': handle_start_game,
    'submit-answer': handle_submit_answer,
    'next-round': handle_next_round,
    'ping': handle_ping,
}


def register_socketio_handlers(testing: bool = False) -> None:
    """Register Socket.IO event handlers.

    Always register on namespace '/ws'. When testing is True, also mirror
    handlers on the default namespace '/' to accommodate the test harness.
    """
    from nhie import socketio
    for event, handler in _HANDLERS.items():
        socketio.on_event(event, handler, namespace='/ws')
    if testing:
        for event, handler in _HANDLERS.items():
            socketio.on_event(event, handler, namespace='/')
