from __future__ import annotations

from datetime import datetime, timezone

from health.errors import ErrorTracker


def utc_iso(dt: datetime | None = None) -> str:
    dt = dt or datetime.now(timezone.utc)
    if dt.tzinfo is None:
        dt = dt.replace(tzinfo=timezone.utc)
    return dt.astimezone(timezone.utc).isoformat()


class HealthState:
    def __init__(self, errors: ErrorTracker | None = None):
        self.errors = errors or ErrorTracker()
        self.last_ping: str | None = None
        self.last_message: str | None = None

    def mark_ping(self) -> None:
        self.last_ping = utc_iso()

    def mark_message(self) -> None:
        self.last_message = utc_iso()

    def snapshot(self, *, cache_stats: dict | None = None, is_online: bool = True) -> dict:
        stats = cache_stats or {}
        return {
            "last_ping": self.last_ping,
            "last_message": self.last_message,
            "error_count": self.errors.count,
            "cache_age_seconds": int(stats.get("cache_age_seconds", 0) or 0),
            "cache_hits": int(stats.get("cache_hits", 0) or 0),
            "cache_misses": int(stats.get("cache_misses", 0) or 0),
            "is_online": bool(is_online),
        }
