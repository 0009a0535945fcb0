"""Room lifecycle and round state machine.

Every operation that mutates a room runs fetch -> validate -> mutate ->
persist inside the room's lock, and the persist is a versioned write.
Stats updates and notifications happen only after the commit succeeded.
"""

from dataclasses import dataclass, field
from typing import Dict, List, Optional

from flask import current_app

from nhie import db
from nhie.errors import (
    AlreadyInRoom, Forbidden, NotEnoughPlayers, NotFound, PlayerNotInRoom,
    RoomFull, RoomNotPlaying, RoomNotWaiting, RoundIncomplete, ValidationError,
)
from nhie.models import Room, RoomPlayer, User, VISIBILITIES
from nhie.services import questions as question_bank
from nhie.services import stats
from . import ledger, store
from .fanout import (
    AllPlayersAnswered, GameEnded, GameStarted, LeaderboardUpdated, PlayerAnswered,
    PlayerJoined, PlayerLeft, RoomClosed, RoundStarted, fanout,
)
from .scoring import MINORITY_BONUS, score_round, tally, winners

MIN_PLAYERS, MAX_PLAYERS = 2, 30
MIN_ROUNDS, MAX_ROUNDS = 1, 20


@dataclass(frozen=True)
class AnswerOutcome:
    room_id: int
    all_players_answered: bool
    deltas: Dict[int, int] = field(default_factory=dict)


@dataclass(frozen=True)
class RoundAdvance:
    room_id: int
    current_round: int
    is_game_over: bool
    winner_ids: List[int] = field(default_factory=list)


def _int_in_range(value, name: str, low: int, high: int) -> int:
    if isinstance(value, bool) or not isinstance(value, int):
        raise ValidationError(f'{name} must be an integer')
    if not low <= value <= high:
        raise ValidationError(f'{name} must be between {low} and {high}')
    return value


def _require_user(user_id: int) -> User:
    user = db.session.get(User, user_id)
    if not user:
        raise NotFound('User not found')
    return user


def _players_payload(room: Room) -> List[dict]:
    return [p.to_dict() for p in room.players]


def _question_payload(room: Room) -> Optional[dict]:
    return room.current_question.to_dict() if room.current_question else None


def create_room(host_id: int, name, visibility='public', access_code=None,
                max_players=10, max_rounds=5) -> Room:
    if not isinstance(name, str) or not name.strip():
        raise ValidationError('Please add a room name')
    name = name.strip()
    if len(name) > 64:
        raise ValidationError('Room name must be at most 64 characters')
    if visibility not in VISIBILITIES:
        raise ValidationError('Room type must be public or private')
    if visibility == 'private' and not (isinstance(access_code, str) and access_code.strip()):
        raise ValidationError('Private rooms require an access code')
    max_players = _int_in_range(max_players, 'maxPlayers', MIN_PLAYERS, MAX_PLAYERS)
    max_rounds = _int_in_range(max_rounds, 'maxRounds', MIN_ROUNDS, MAX_ROUNDS)
    _require_user(host_id)

    room = Room(
        name=name,
        visibility=visibility,
        host_id=host_id,
        max_players=max_players,
        max_rounds=max_rounds,
        current_round=0,
        status='waiting',
    )
    if visibility == 'private':
        room.set_access_code(access_code.strip())
    room.question_sequence = []
    room.players.append(RoomPlayer(user_id=host_id, points=0, is_ready=False))
    store.add(room)
    current_app.logger.info(f"[create] room={room.id} host={host_id} visibility={visibility} "
                            f"max_players={max_players} max_rounds={max_rounds}")
    return room


def join_room(room_id: int, user_id: int, access_code=None) -> Room:
    with store.room_lock(room_id):
        room = store.get(room_id)
        user = _require_user(user_id)
        if room.status != 'waiting':
            raise RoomNotWaiting('Game has already started')
        if room.player_for(user_id) is not None:
            raise AlreadyInRoom('You are already in this room')
        if len(room.players) >= room.max_players:
            raise RoomFull('Room is full')
        if not room.check_access_code(access_code):
            raise Forbidden('Invalid access code')
        room.players.append(RoomPlayer(user_id=user_id, points=0, is_ready=False))
        store.save(room)
        current_app.logger.info(f"[join] room={room_id} user={user_id} players={len(room.players)}")
        fanout.publish(room_id, PlayerJoined(room_id=room_id, user=user.to_summary()))
        return room


def leave_room(room_id: int, user_id: int) -> Room:
    with store.room_lock(room_id):
        room = store.get(room_id)
        player = room.player_for(user_id)
        if player is None:
            raise PlayerNotInRoom('You are not in this room')
        if room.status != 'waiting':
            raise RoomNotWaiting('Players can only leave while the room is waiting')
        room.players.remove(player)
        store.save(room)
        remaining = len(room.players)
        current_app.logger.info(f"[leave] room={room_id} user={user_id} players={remaining}")
        fanout.publish(room_id, PlayerLeft(room_id=room_id, user_id=user_id))
        if remaining == 0:
            fanout.publish(room_id, RoomClosed(room_id=room_id))
            fanout.prune(room_id)
        return room


def start(room_id: int, requester_id: int, category: Optional[str] = None) -> Room:
    with store.room_lock(room_id):
        room = store.get(room_id)
        if room.status != 'waiting':
            raise RoomNotWaiting('Game has already started')
        if room.host_id != requester_id:
            raise Forbidden('Only the host can start the game')
        min_players = int(current_app.config.get('MIN_PLAYERS', MIN_PLAYERS))
        if len(room.players) < min_players:
            raise NotEnoughPlayers(f'At least {min_players} players are required to start')

        picked = question_bank.sample(room.max_rounds, category)
        if len(picked) < room.max_rounds:
            raise ValidationError(
                f'Not enough questions available: need {room.max_rounds}, found {len(picked)}')
        room.question_sequence = [q.id for q in picked]
        room.current_round = 1
        room.current_question_id = picked[0].id
        room.status = 'playing'
        store.save(room)

        current_app.logger.info(f"[start] room={room_id} rounds={room.max_rounds} players={len(room.players)}")
        fanout.publish(room_id, GameStarted(
            room_id=room_id,
            current_round=room.current_round,
            current_question=_question_payload(room),
            players=_players_payload(room),
        ))
        return room


def submit_answer(room_id: int, user_id: int, value: bool) -> AnswerOutcome:
    with store.room_lock(room_id):
        room = store.get(room_id)
        ledger.record_answer(room, user_id, value)

        complete = ledger.is_round_complete(room)
        deltas: Dict[int, int] = {}
        answers_payload: List[dict] = []
        yes_count = no_count = 0
        if complete:
            round_answers = ledger.answers_for_current_round(room)
            bonus = int(current_app.config.get('MINORITY_BONUS', MINORITY_BONUS))
            deltas = score_round(round_answers, len(room.players), bonus=bonus)
            for player in room.players:
                player.points = (player.points or 0) + deltas.get(player.user_id, 0)
            yes_count, no_count = tally(round_answers)
            answers_payload = [{'userId': a.user_id, 'answer': a.value} for a in round_answers]
        round_number = room.current_round
        # Answer and point deltas commit together
        store.save(room)

        current_app.logger.info(f"[answer] room={room_id} round={round_number} user={user_id} complete={complete}")
        if complete:
            current_app.logger.info(f"[score] room={room_id} round={round_number} "
                                    f"yes={yes_count} no={no_count} deltas={deltas}")
            for uid, delta in deltas.items():
                if delta > 0:
                    stats.apply_best_effort(stats.increment_points, uid, delta)

        fanout.publish(room_id, PlayerAnswered(room_id=room_id, user_id=user_id))
        if complete:
            fanout.publish(room_id, AllPlayersAnswered(
                yes_count=yes_count,
                no_count=no_count,
                players=_players_payload(room),
                answers=answers_payload,
            ))
        return AnswerOutcome(room_id=room_id, all_players_answered=complete, deltas=deltas)


def advance_round(room_id: int, requester_id: int) -> RoundAdvance:
    with store.room_lock(room_id):
        room = store.get(room_id)
        if room.status != 'playing':
            raise RoomNotPlaying('Game is not in progress')
        # Completeness is checked before identity so nobody can skip an open round
        if not ledger.is_round_complete(room):
            raise RoundIncomplete('All players must answer before advancing to the next round')
        if room.host_id != requester_id:
            raise Forbidden('Only the host can advance to the next round')

        prev_round = room.current_round
        room.current_round += 1
        if room.current_round > room.max_rounds:
            room.status = 'completed'
            room.current_question_id = None
            store.save(room)
            return _finish(room, prev_round)

        room.current_question_id = room.question_sequence[room.current_round - 1]
        store.save(room)
        current_app.logger.info(f"[next_round] room={room_id} advance round {prev_round} -> {room.current_round}")
        fanout.publish(room_id, RoundStarted(
            room_id=room_id,
            current_round=room.current_round,
            current_question=_question_payload(room),
            players=_players_payload(room),
        ))
        return RoundAdvance(room_id=room_id, current_round=room.current_round, is_game_over=False)


def _finish(room: Room, prev_round: int) -> RoundAdvance:
    top = winners(room.players)
    winner_ids = [p.user_id for p in top]
    current_app.logger.info(f"[finish] room={room.id} finished at round={prev_round} winners={winner_ids}")

    for player in room.players:
        stats.apply_best_effort(stats.increment_games_played, player.user_id)
    for uid in winner_ids:
        stats.apply_best_effort(stats.increment_games_won, uid)

    fanout.publish(room.id, GameEnded(
        room_id=room.id,
        players=_players_payload(room),
        winner=[p.to_dict() for p in top],
    ))
    fanout.publish_all(LeaderboardUpdated())
    fanout.prune(room.id)
    return RoundAdvance(room_id=room.id, current_round=room.current_round,
                        is_game_over=True, winner_ids=winner_ids)


def get_room(room_id: int) -> Room:
    return store.get(room_id)


def list_rooms(status: Optional[str] = None) -> List[Room]:
    return store.list_rooms(status)
