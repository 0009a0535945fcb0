"""Room notifications and the registry of subscribed sessions.

Notifications are a closed set of dataclasses; each one names its event and
builds its own payload so producers and the client renderer agree on field
names. Delivery is best effort: clients that miss an event re-fetch the
room.
"""

import threading
from dataclasses import dataclass, field
from typing import Any, ClassVar, Dict, List, Optional, Set

from flask import current_app

from nhie import socketio

NAMESPACE = '/ws'


def room_key(room_id: int) -> str:
    return f"room:{room_id}"


@dataclass(frozen=True)
class Notification:
    event: ClassVar[str] = ''

    def payload(self) -> Dict[str, Any]:
        raise NotImplementedError


@dataclass(frozen=True)
class PlayerJoined(Notification):
    event: ClassVar[str] = 'player-joined'
    room_id: int
    user: Dict[str, Any]

    def payload(self):
        return {'roomId': self.room_id, 'user': self.user}


@dataclass(frozen=True)
class PlayerLeft(Notification):
    event: ClassVar[str] = 'player-left'
    room_id: int
    user_id: int

    def payload(self):
        return {'roomId': self.room_id, 'userId': self.user_id}


@dataclass(frozen=True)
class RoomClosed(Notification):
    event: ClassVar[str] = 'room-closed'
    room_id: int

    def payload(self):
        return {'roomId': self.room_id}


@dataclass(frozen=True)
class GameStarted(Notification):
    event: ClassVar[str] = 'game-started'
    room_id: int
    current_round: int
    current_question: Optional[Dict[str, Any]]
    players: List[Dict[str, Any]]

    def payload(self):
        return {
            'roomId': self.room_id,
            'currentRound': self.current_round,
            'currentQuestion': self.current_question,
            'players': self.players,
        }


@dataclass(frozen=True)
class PlayerAnswered(Notification):
    event: ClassVar[str] = 'player-answered'
    room_id: int
    user_id: int

    def payload(self):
        return {'roomId': self.room_id, 'userId': self.user_id}


@dataclass(frozen=True)
class AllPlayersAnswered(Notification):
    event: ClassVar[str] = 'all-players-answered'
    yes_count: int
    no_count: int
    players: List[Dict[str, Any]]
    answers: List[Dict[str, Any]]

    def payload(self):
        return {
            'yesCount': self.yes_count,
            'noCount': self.no_count,
            'players': self.players,
            'answers': self.answers,
        }


@dataclass(frozen=True)
class RoundStarted(Notification):
    event: ClassVar[str] = 'round-started'
    room_id: int
    current_round: int
    current_question: Optional[Dict[str, Any]]
    players: List[Dict[str, Any]]

    def payload(self):
        return {
            'roomId': self.room_id,
            'currentRound': self.current_round,
            'currentQuestion': self.current_question,
            'players': self.players,
        }


@dataclass(frozen=True)
class GameEnded(Notification):
    event: ClassVar[str] = 'game-ended'
    room_id: int
    players: List[Dict[str, Any]]
    winner: List[Dict[str, Any]] = field(default_factory=list)

    def payload(self):
        return {'roomId': self.room_id, 'players': self.players, 'winner': self.winner}


@dataclass(frozen=True)
class LeaderboardUpdated(Notification):
    event: ClassVar[str] = 'leaderboard-updated'

    def payload(self):
        return {}


class RoomFanout:
    """Tracks which sessions follow which room and emits to them."""

    def __init__(self, server=socketio, namespace: str = NAMESPACE):
        self.server = server
        self.namespace = namespace
        self._lock = threading.Lock()
        self._sessions: Dict[int, Set[str]] = {}  # room_id -> sids

    def subscribe(self, room_id: int, sid: str) -> None:
        with self._lock:
            self._sessions.setdefault(room_id, set()).add(sid)

    def unsubscribe(self, room_id: int, sid: str) -> None:
        with self._lock:
            sids = self._sessions.get(room_id)
            if sids is None:
                return
            sids.discard(sid)
            if not sids:
                del self._sessions[room_id]

    def drop_session(self, sid: str) -> List[int]:
        """Forget a disconnected session; returns the rooms it followed."""
        left = []
        with self._lock:
            for room_id in list(self._sessions):
                sids = self._sessions[room_id]
                if sid in sids:
                    sids.discard(sid)
                    left.append(room_id)
                    if not sids:
                        del self._sessions[room_id]
        return left

    def subscribers(self, room_id: int) -> Set[str]:
        with self._lock:
            return set(self._sessions.get(room_id, ()))

    def rooms(self) -> List[int]:
        with self._lock:
            return list(self._sessions)

    def prune(self, room_id: int) -> None:
        with self._lock:
            self._sessions.pop(room_id, None)
        try:
            self.server.close_room(room_key(room_id), namespace=self.namespace)
        except Exception:
            current_app.logger.exception(f"[fanout] failed to close room={room_id}")

    def publish(self, room_id: int, notification: Notification) -> bool:
        try:
            self.server.emit(notification.event, notification.payload(),
                             to=room_key(room_id), namespace=self.namespace)
        except Exception:
            current_app.logger.exception(f"[fanout] emit {notification.event} failed room={room_id}")
            return False
        current_app.logger.debug(f"[fanout] {notification.event} room={room_id}")
        return True

    def publish_all(self, notification: Notification) -> bool:
        try:
            self.server.emit(notification.event, notification.payload(), namespace=self.namespace)
        except Exception:
            current_app.logger.exception(f"[fanout] global emit {notification.event} failed")
            return False
        return True


fanout = RoomFanout()
