"""
Concurrency helpers

FastAPI serves sync endpoints from a thread pool, so two requests for the
same game can arrive at once. Game engines are not thread-safe: every
command for a role runs under that role's lock, one complete mutation at a
time.

Rooms and network sessions are plain rows; they use database row locks
(SELECT ... FOR UPDATE, a no-op on SQLite).
"""
import threading
from contextlib import contextmanager
from typing import Dict

from sqlalchemy.orm import Session, Query

from models import NetworkSession, Room

_registry_lock = threading.Lock()
_game_locks: Dict[str, threading.RLock] = {}


@contextmanager
def game_lock(key: str):
    """
    Serialize commands for one game

    Usage:
        with game_lock("scorer"):
            engine.roll(8)
            save_game(db, ...)

    Re-entrant, so a manager method may call another one while holding it.
    """
    with _registry_lock:
        lock = _game_locks.setdefault(key, threading.RLock())
    with lock:
        yield


def with_room_lock(code: str, db: Session) -> Query:
    """
    Lock a Room row

    Used while dispatching inbound events so the same event is never
    applied twice by concurrent requests.

    Returns:
        Query object (call .first())
    """
    return db.query(Room).filter(
        Room.code == code
    ).with_for_update(nowait=False)


def with_network_lock(session_id: str, db: Session) -> Query:
    """Lock a NetworkSession row for a read-modify-write edit"""
    return db.query(NetworkSession).filter(
        NetworkSession.id == session_id
    ).with_for_update(nowait=False)
