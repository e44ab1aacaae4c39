from __future__ import annotations

from datetime import datetime, timezone

ONLINE_PING_SECONDS = 120
DEGRADED_PING_SECONDS = 300
FRESH_CACHE_SECONDS = 60


def _parse_iso(value: str | None) -> datetime | None:
    if not value:
        return None
    try:
        dt = datetime.fromisoformat(str(value))
    except ValueError:
        return None
    if dt.tzinfo is None:
        dt = dt.replace(tzinfo=timezone.utc)
    return dt


def heartbeat_age_seconds(row: dict | None, now: datetime | None = None) -> int | None:
    if not row:
        return None
    ping = _parse_iso(row.get("last_ping"))
    if ping is None:
        return None
    now = now or datetime.now(timezone.utc)
    return max(0, int((now - ping).total_seconds()))


def derive_status(row: dict | None, now: datetime | None = None) -> str:
    if not row or not row.get("is_online"):
        return "offline"
    age = heartbeat_age_seconds(row, now)
    if age is None or age >= DEGRADED_PING_SECONDS:
        return "offline"
    return "online" if age < ONLINE_PING_SECONDS else "degraded"


def cache_is_fresh(row: dict | None) -> bool:
    if not row:
        return False
    return int(row.get("cache_age_seconds") or 0) < FRESH_CACHE_SECONDS


def error_trend(current: int | None, previous: int | None) -> str:
    if current is None:
        return "unknown"
    if previous is None or current == previous:
        return "stable"
    return "increasing" if current > previous else "recovering"


def confidence_score(row: dict | None, now: datetime | None = None) -> int:
    status = derive_status(row, now)
    score = 100
    if status == "offline":
        score -= 50
    if status == "degraded":
        score -= 20
    if not cache_is_fresh(row):
        score -= 10
    errors = int((row or {}).get("error_count") or 0)
    if errors > 0:
        score -= min(30, errors * 5)
    return max(0, score)


def summarize_health(row: dict | None, now: datetime | None = None, *, previous_errors: int | None = None) -> dict:
    current_errors = int(row["error_count"]) if row and row.get("error_count") is not None else None
    return {
        "status": derive_status(row, now),
        "heartbeat_age_seconds": heartbeat_age_seconds(row, now),
        "cache_fresh": cache_is_fresh(row),
        "error_trend": error_trend(current_errors, previous_errors),
        "confidence": confidence_score(row, now),
    }
