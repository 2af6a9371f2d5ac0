from __future__ import annotations

import time
from collections import deque
from threading import RLock


class RateLimiter:
    """Rolling-window throttle keyed by (connection id, event name).

    ``allow`` records the hit when it is accepted; rejected hits are not
    recorded, so a flooding client regains access as soon as the window slides.
    """

    def __init__(self, max_events: int = 20, window_sec: float = 5.0, overrides: dict[str, int] | None = None) -> None:
        self.max_events = max_events
        self.window_sec = window_sec
        self.overrides = dict(overrides or {})
        self._lock = RLock()
        self._hits: dict[tuple[str, str], deque[float]] = {}

    def limit_for(self, event: str) -> int:
        return self.overrides.get(event, self.max_events)

    def allow(self, conn_id: str, event: str, now: float | None = None) -> bool:
        now = time.monotonic() if now is None else now
        limit = self.limit_for(event)
        if limit <= 0:
            return True

        with self._lock:
            hits = self._hits.setdefault((conn_id, event), deque())
            cutoff = now - self.window_sec
            while hits and hits[0] <= cutoff:
                hits.popleft()
            if len(hits) >= limit:
                return False
            hits.append(now)
            return True

    def forget(self, conn_id: str) -> None:
        with self._lock:
            for key in [k for k in self._hits if k[0] == conn_id]:
                del self._hits[key]

    def sweep(self, now: float | None = None) -> int:
        now = time.monotonic() if now is None else now
        cutoff = now - self.window_sec
        with self._lock:
            stale = [k for k, hits in self._hits.items() if not hits or hits[-1] <= cutoff]
            for key in stale:
                del self._hits[key]
            return len(stale)
