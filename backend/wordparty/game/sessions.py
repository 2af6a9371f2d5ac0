"""Connection registry.

Maps live Socket.IO connection ids to the player identity they speak for and
keeps short-lived records of sessions that dropped, so reconnect attempts can
be screened without touching room state.
"""

from __future__ import annotations

import time
from dataclasses import dataclass
from threading import RLock

from .models import GameType


@dataclass
class Session:
    conn_id: str
    name: str
    room_code: str
    game_type: GameType


@dataclass
class DisconnectedSession:
    name: str
    room_code: str
    game_type: GameType
    disconnect_time: float


class SessionRegistry:
    def __init__(self, grace_sec: float = 120.0) -> None:
        self.grace_sec = grace_sec
        self._lock = RLock()
        self._live: dict[str, Session] = {}
        self._dropped: dict[tuple[str, str, str], DisconnectedSession] = {}

    def bind(self, conn_id: str, name: str, room_code: str, game_type: GameType) -> Session:
        with self._lock:
            session = Session(conn_id=conn_id, name=name, room_code=room_code, game_type=game_type)
            self._live[conn_id] = session
            self._dropped.pop((name, room_code, game_type), None)
            return session

    def get(self, conn_id: str) -> Session | None:
        with self._lock:
            return self._live.get(conn_id)

    def drop(self, conn_id: str, now: float | None = None) -> Session | None:
        """Forget a live connection and remember it as recoverable."""
        with self._lock:
            session = self._live.pop(conn_id, None)
            if session is None:
                return None
            key = (session.name, session.room_code, session.game_type)
            self._dropped[key] = DisconnectedSession(
                name=session.name,
                room_code=session.room_code,
                game_type=session.game_type,
                disconnect_time=time.time() if now is None else now,
            )
            return session

    def recent_disconnect(
        self, name: str, room_code: str, game_type: GameType, now: float | None = None
    ) -> DisconnectedSession | None:
        """Return the grace record for this identity, expiring it lazily."""
        now = time.time() if now is None else now
        key = (name, room_code, game_type)
        with self._lock:
            record = self._dropped.get(key)
            if record is None:
                return None
            if now - record.disconnect_time > self.grace_sec:
                del self._dropped[key]
                return None
            return record

    def forget_room(self, room_code: str) -> None:
        with self._lock:
            for key in [k for k in self._dropped if k[1] == room_code]:
                del self._dropped[key]

    def sweep(self, now: float | None = None) -> list[DisconnectedSession]:
        """Drop grace records past the window and return them."""
        now = time.time() if now is None else now
        with self._lock:
            expired = [k for k, r in self._dropped.items() if now - r.disconnect_time > self.grace_sec]
            return [self._dropped.pop(key) for key in expired]

    @property
    def live_count(self) -> int:
        with self._lock:
            return len(self._live)

    @property
    def dropped_count(self) -> int:
        with self._lock:
            return len(self._dropped)
