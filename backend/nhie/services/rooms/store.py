import threading
from contextlib import contextmanager
from datetime import datetime
from typing import Dict, List

from flask import current_app
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm.exc import StaleDataError

from nhie import db
from nhie.errors import Conflict, NotFound
from nhie.models import Room


class RoomLocks:
    """Process-wide mutexes keyed by room id.

    Each entry is reference counted and dropped once no caller holds or
    waits on it, so the map only contains rooms with an operation in flight.
    """

    def __init__(self):
        self._guard = threading.Lock()
        self._locks: Dict[int, List] = {}  # room_id -> [lock, refcount]

    @contextmanager
    def hold(self, room_id: int):
        with self._guard:
            entry = self._locks.setdefault(room_id, [threading.Lock(), 0])
            entry[1] += 1
        entry[0].acquire()
        try:
            yield
        finally:
            entry[0].release()
            with self._guard:
                entry[1] -= 1
                if entry[1] == 0:
                    self._locks.pop(room_id, None)

    def __len__(self):
        with self._guard:
            return len(self._locks)


_room_locks = RoomLocks()


def room_lock(room_id: int):
    return _room_locks.hold(room_id)


def get(room_id: int) -> Room:
    """Fetch a room fresh from the database, discarding any cached state."""
    db.session.expire_all()
    room = Room.query.filter_by(id=room_id).first()
    if not room:
        raise NotFound('Room not found')
    return room


def add(room: Room) -> Room:
    db.session.add(room)
    return save(room)


def save(room: Room) -> Room:
    """Commit the room with a versioned write.

    Touching ``updated_at`` guarantees an UPDATE of the room row even when
    only child rows (answers, players) changed, so a concurrent writer that
    bumped ``version`` first makes this commit fail instead of overwriting.
    """
    room.updated_at = datetime.utcnow()
    try:
        db.session.commit()
    except (StaleDataError, IntegrityError) as exc:
        db.session.rollback()
        current_app.logger.warning(f"[store-conflict] room={room.id} error={exc.__class__.__name__}")
        raise Conflict('Room was modified by another action, please retry') from exc
    return room


def list_rooms(status=None) -> List[Room]:
    query = Room.query
    if status:
        query = query.filter_by(status=status)
    return query.order_by(Room.created_at.desc(), Room.id.desc()).all()
