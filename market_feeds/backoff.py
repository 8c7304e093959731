"""Per-source failure tracking and cooldown."""

from __future__ import annotations

import logging
import time
from typing import Callable

from .errors import FetchFailure
from .registry import SourceConfig

logger = logging.getLogger(__name__)


class BackoffTracker:
    """Suppresses attempts to a source until its cooldown window elapses.

    Also keeps the success/failure counters used by the health report.
    """

    def __init__(self, config: SourceConfig, clock: Callable[[], float] = time.monotonic):
        self.config = config
        self._clock = clock
        self.failed_at: float | None = None
        self.window: float = 0.0
        self.last_failure: str | None = None
        self.success_count = 0
        self.fail_count = 0
        self.consecutive_failures = 0
        self.total_latency = 0.0
        self.last_success: float | None = None
        self.last_fail: float | None = None

    def record_failure(self, failure: BaseException | None = None):
        now = self._clock()
        self.fail_count += 1
        self.consecutive_failures += 1
        self.last_fail = now
        self.failed_at = now
        self.window = self.config.backoff_for(failure)
        self.last_failure = failure.kind if isinstance(failure, FetchFailure) else "failure"
        logger.info(
            f"{self.config.name}: {self.last_failure} failure "
            f"(#{self.consecutive_failures}), backing off {self.window:.0f}s"
        )

    def record_success(self, latency: float = 0.0):
        if self.failed_at is not None:
            logger.info(f"{self.config.name}: recovered after {self.consecutive_failures} failure(s)")
        self.success_count += 1
        self.total_latency += latency
        self.last_success = self._clock()
        self.consecutive_failures = 0
        self.failed_at = None
        self.window = 0.0
        self.last_failure = None

    def is_cooling_down(self) -> bool:
        if self.failed_at is None:
            return False
        return self._clock() - self.failed_at < self.window

    def remaining(self) -> float:
        if self.failed_at is None:
            return 0.0
        return max(0.0, self.window - (self._clock() - self.failed_at))

    def reset(self):
        self.failed_at = None
        self.window = 0.0
        self.last_failure = None
        self.consecutive_failures = 0

    @property
    def avg_latency(self) -> float:
        return self.total_latency / max(self.success_count, 1)

    def report(self) -> dict:
        return {
            "success": self.success_count,
            "fail": self.fail_count,
            "avg_latency_ms": round(self.avg_latency * 1000, 1),
            "cooling_down": self.is_cooling_down(),
            "retry_in_s": round(self.remaining(), 1),
            "last_failure": self.last_failure,
        }
