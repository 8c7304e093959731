"""Pipeline status per source, for widget footers and health checks."""

from __future__ import annotations

import logging
import time
from dataclasses import dataclass, replace
from typing import Callable

logger = logging.getLogger(__name__)

IDLE = "idle"
LOADING = "loading"
OK = "ok"
RATE_LIMITED = "rate-limited"
STALE = "stale"
ERROR = "error"

STATES = (IDLE, LOADING, OK, RATE_LIMITED, STALE, ERROR)


@dataclass(frozen=True)
class SourceStatus:
    state: str = IDLE
    message: str = ""
    last_ok: float = 0.0   # wall clock

    def minutes_since_ok(self, now: float | None = None) -> int:
        if not self.last_ok:
            return 0
        now = time.time() if now is None else now
        return round((now - self.last_ok) / 60)

    def describe(self, label: str, now: float | None = None) -> str:
        """One-line status text for a widget footer."""
        if self.state == LOADING:
            return f"Fetching {label}..."
        if self.state == RATE_LIMITED:
            return f"Rate limited · showing {self.minutes_since_ok(now)}m old data"
        if self.state == STALE:
            return f"Stale data ({self.minutes_since_ok(now)}m) · retrying..."
        if self.state == ERROR:
            return self.message or f"{label} error"
        if self.state == OK:
            return f"{label} · live"
        return label


Listener = Callable[[str, SourceStatus], None]


class StatusBoard:
    """Latest SourceStatus per source, with change listeners."""

    def __init__(self, wall_clock: Callable[[], float] = time.time):
        self._statuses: dict[str, SourceStatus] = {}
        self._listeners: list[Listener] = []
        self._wall_clock = wall_clock

    def get(self, name: str) -> SourceStatus:
        return self._statuses.get(name, SourceStatus())

    def all(self) -> dict[str, SourceStatus]:
        return dict(self._statuses)

    def set(self, name: str, state: str, message: str | None = None):
        if state not in STATES:
            raise ValueError(f"unknown pipeline state: {state}")
        prev = self.get(name)
        status = replace(prev, state=state, message=prev.message if message is None else message)
        if state == OK:
            status = replace(status, last_ok=self._wall_clock())
        self._statuses[name] = status
        for fn in list(self._listeners):
            try:
                fn(name, status)
            except Exception as e:
                logger.warning(f"Status listener failed for {name}: {e}")

    def subscribe(self, fn: Listener) -> Callable[[], None]:
        self._listeners.append(fn)

        def unsubscribe():
            if fn in self._listeners:
                self._listeners.remove(fn)

        return unsubscribe

    def clear(self, name: str | None = None):
        if name is None:
            self._statuses.clear()
        else:
            self._statuses.pop(name, None)
