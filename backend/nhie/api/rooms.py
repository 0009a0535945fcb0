from flask import Blueprint, jsonify, request

from nhie.errors import ValidationError
from nhie.models import ROOM_STATUSES
from nhie.services.rooms import controller

rooms = Blueprint('rooms', __name__)


def _payload() -> dict:
    data = request.get_json(silent=True)
    return data if isinstance(data, dict) else {}


def parse_user_id(value) -> int:
    """Accept ints or numeric strings; anything else is a client error."""
    if isinstance(value, bool) or value is None or value == '':
        raise ValidationError('Please provide userId')
    if isinstance(value, float):
        raise ValidationError('userId must be an integer')
    try:
        return int(value)
    except (TypeError, ValueError):
        raise ValidationError('userId must be an integer') from None


def parse_answer(value) -> bool:
    if not isinstance(value, bool):
        raise ValidationError('Please provide userId and answer')
    return value


@rooms.route('', methods=['GET'])
def list_rooms():
    status = request.args.get('status')
    if status and status not in ROOM_STATUSES:
        raise ValidationError(f'status must be one of {", ".join(ROOM_STATUSES)}')
    return jsonify([room.to_dict() for room in controller.list_rooms(status)])


@rooms.route('', methods=['POST'])
def create_room():
    data = _payload()
    host_id = parse_user_id(data.get('userId'))
    room = controller.create_room(
        host_id,
        data.get('name'),
        visibility=data.get('visibility') or data.get('type') or 'public',
        access_code=data.get('accessCode') or data.get('passcode'),
        max_players=data.get('maxPlayers', 10),
        max_rounds=data.get('maxRounds', 5),
    )
    return jsonify(room.to_dict()), 201


@rooms.route('/<int:room_id>', methods=['GET'])
def get_room(room_id):
    return jsonify(controller.get_room(room_id).to_dict())


@rooms.route('/<int:room_id>/join', methods=['POST'])
def join_room(room_id):
    data = _payload()
    user_id = parse_user_id(data.get('userId'))
    room = controller.join_room(room_id, user_id, access_code=data.get('accessCode') or data.get('passcode'))
    return jsonify(room.to_dict())


@rooms.route('/<int:room_id>/leave', methods=['POST'])
def leave_room(room_id):
    data = _payload()
    user_id = parse_user_id(data.get('userId'))
    controller.leave_room(room_id, user_id)
    return jsonify({'message': 'You have left the room'})


@rooms.route('/<int:room_id>/start', methods=['POST'])
def start_game(room_id):
    data = _payload()
    user_id = parse_user_id(data.get('userId'))
    room = controller.start(room_id, user_id, category=data.get('category') or None)
    return jsonify(room.to_dict())


@rooms.route('/<int:room_id>/answers', methods=['POST'])
def submit_answer(room_id):
    data = _payload()
    user_id = parse_user_id(data.get('userId'))
    answer = parse_answer(data.get('answer'))
    outcome = controller.submit_answer(room_id, user_id, answer)
    return jsonify({
        'message': 'Answer submitted successfully',
        'allPlayersAnswered': outcome.all_players_answered,
    })


@rooms.route('/<int:room_id>/next-round', methods=['POST'])
def next_round(room_id):
    data = _payload()
    user_id = parse_user_id(data.get('userId'))
    result = controller.advance_round(room_id, user_id)
    return jsonify({
        'message': 'Game completed' if result.is_game_over else 'Advanced to next round',
        'currentRound': result.current_round,
        'isGameOver': result.is_game_over,
    })
