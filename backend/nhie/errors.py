"""Error taxonomy shared by the HTTP and Socket.IO layers.

Every rejected action raises a ``GameError`` subclass carrying one
human-readable message, an HTTP status and a stable machine code. Routes
let these propagate to the Flask error handler; socket handlers catch them
and emit an ``error`` event to the originating session.
"""

from flask import jsonify


class GameError(Exception):
    status_code = 400
    code = 'error'

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message

    def to_dict(self) -> dict:
        return {'error': self.message, 'code': self.code}


class ValidationError(GameError):
    code = 'validation_error'


class NotFound(GameError):
    status_code = 404
    code = 'not_found'


class Forbidden(GameError):
    status_code = 403
    code = 'forbidden'


class Conflict(GameError):
    code = 'conflict'


class DuplicateAnswer(Conflict):
    code = 'duplicate_answer'


class RoundIncomplete(Conflict):
    code = 'round_incomplete'


class RoomNotPlaying(Conflict):
    code = 'room_not_playing'


class RoomNotWaiting(Conflict):
    code = 'room_not_waiting'


class PlayerNotInRoom(Conflict):
    code = 'player_not_in_room'


class AlreadyInRoom(Conflict):
    code = 'already_in_room'


class RoomFull(Conflict):
    code = 'room_full'


class NotEnoughPlayers(GameError):
    code = 'not_enough_players'


def register_error_handlers(flask_app) -> None:
    @flask_app.errorhandler(GameError)
    def handle_game_error(exc):
        flask_app.logger.info(f"[rejected] code={exc.code} status={exc.status_code} message={exc.message}")
        return jsonify(exc.to_dict()), exc.status_code
