from __future__ import annotations

import threading
import time
from typing import Callable

HOUR_SECONDS = 3600
MAX_HOUR_BUCKETS = 48


class ErrorTracker:
    """Counts handled failures for health reporting.

    The counter only ever grows. Timestamps are also bucketed per hour so the
    admin view can show a coarse trend; nothing alerts on it.
    """

    def __init__(self, clock: Callable[[], float] = time.time):
        self._clock = clock
        self._lock = threading.Lock()
        self._count = 0
        self._buckets: dict[int, int] = {}

    @property
    def count(self) -> int:
        with self._lock:
            return self._count

    def record(self, where: str, exc: BaseException | str) -> None:
        hour = int(self._clock() // HOUR_SECONDS)
        with self._lock:
            self._count += 1
            self._buckets[hour] = self._buckets.get(hour, 0) + 1
            for stale in [h for h in self._buckets if h <= hour - MAX_HOUR_BUCKETS]:
                del self._buckets[stale]
        print(f"[ERR] {where}: {exc}")

    def hourly_counts(self) -> dict[int, int]:
        with self._lock:
            return dict(self._buckets)

    def trend(self) -> str:
        hour = int(self._clock() // HOUR_SECONDS)
        with self._lock:
            current = self._buckets.get(hour, 0)
            previous = self._buckets.get(hour - 1, 0)
        if current > previous:
            return "increasing"
        if current < previous:
            return "recovering"
        return "stable"
