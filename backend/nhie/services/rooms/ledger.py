from typing import List

from nhie.errors import DuplicateAnswer, PlayerNotInRoom, RoomNotPlaying
from nhie.models import Answer, Room


def has_answered(room: Room, user_id: int, question_id: int, round_number: int) -> bool:
    return any(
        a.user_id == user_id and a.question_id == question_id and a.round == round_number
        for a in room.answers
    )


def record_answer(room: Room, user_id: int, value: bool) -> Room:
    """Append one answer for the current question and round.

    The room is mutated in the session but not committed; the caller
    persists it together with any scoring the answer triggers.
    """
    if room.status != 'playing' or room.current_question_id is None:
        raise RoomNotPlaying('Game is not in progress')
    if room.player_for(user_id) is None:
        raise PlayerNotInRoom('You are not in this room')
    if has_answered(room, user_id, room.current_question_id, room.current_round):
        raise DuplicateAnswer('You have already answered this question')
    room.answers.append(Answer(
        user_id=user_id,
        question_id=room.current_question_id,
        value=bool(value),
        round=room.current_round,
    ))
    return room


def answers_for_current_round(room: Room) -> List[Answer]:
    if room.current_question_id is None:
        return []
    return [
        a for a in room.answers
        if a.question_id == room.current_question_id and a.round == room.current_round
    ]


def is_round_complete(room: Room) -> bool:
    # An empty room never completes a round
    player_count = len(room.players)
    if player_count == 0:
        return False
    return len(answers_for_current_round(room)) == player_count
