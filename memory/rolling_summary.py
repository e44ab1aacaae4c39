from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime

from config.defaults import SUMMARY_EXCERPT_CHARS
from config.defaults import SUMMARY_MAX_CHARS
from health.state import utc_iso


@dataclass(frozen=True, slots=True)
class MemoryState:
    summary: str = ""
    message_count: int = 0


def bound_summary(summary: str, limit: int = SUMMARY_MAX_CHARS) -> str:
    # Oldest text drops off the front.
    text = summary or ""
    if len(text) <= limit:
        return text
    return text[-limit:]


def append_to_summary(
    memory: MemoryState | None,
    content: str,
    *,
    now: datetime | None = None,
    excerpt_chars: int = SUMMARY_EXCERPT_CHARS,
    limit: int = SUMMARY_MAX_CHARS,
) -> MemoryState:
    prior = memory or MemoryState()
    excerpt = (content or "")[:excerpt_chars]
    line = f"[{utc_iso(now)}] {excerpt}"
    summary = f"{prior.summary}\n{line}" if prior.summary else line
    return MemoryState(
        summary=bound_summary(summary, limit),
        message_count=max(0, int(prior.message_count)) + 1,
    )
