from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path

import yaml


@dataclass(frozen=True, slots=True)
class BotReplies:
    version: str = "replies_v1"
    greeting: str = "👋 Hello! I am alive."
    apology: str = "⚠️ Something went wrong."
    not_configured: str = "⚠️ AI is not configured yet."


def default_replies_path() -> str:
    return str(Path(__file__).resolve().parents[1] / "config" / "replies.yml")


def _as_text(value: object) -> str:
    return str(value or "").strip()


def load_bot_replies(path: str | Path | None) -> tuple[BotReplies, str | None]:
    """
    Returns (replies, warning_message). warning_message is None on clean load.
    """
    defaults = BotReplies()
    if not path:
        return (defaults, "Replies path missing; using built-in defaults.")

    p = Path(path)
    if not p.exists():
        return (defaults, f"Replies file not found at {p}; using built-in defaults.")

    try:
        payload = yaml.safe_load(p.read_text(encoding="utf-8"))
    except Exception as exc:
        return (defaults, f"Failed to read replies from {p}: {exc}; using built-in defaults.")

    if not isinstance(payload, dict):
        return (defaults, f"Invalid replies format in {p}; using built-in defaults.")

    replies = BotReplies(
        version=_as_text(payload.get("version")) or defaults.version,
        greeting=_as_text(payload.get("greeting")) or defaults.greeting,
        apology=_as_text(payload.get("apology")) or defaults.apology,
        not_configured=_as_text(payload.get("not_configured")) or defaults.not_configured,
    )
    return (replies, None)
