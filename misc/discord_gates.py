from __future__ import annotations

import re

from cache.config_cache import ConfigSnapshot
from config.defaults import DISCORD_MAX_MESSAGE_LEN
from config.defaults import GREETING_TOKEN
from config.defaults import TRUNCATION_MARKER

ANY_USER_MENTION_RE = re.compile(r"<@!?\d+>")


def is_greeting(content: str | None) -> bool:
    return (content or "").strip().lower() == GREETING_TOKEN


def bot_is_mentioned(message, bot_user) -> bool:
    if bot_user is None:
        return False
    bot_id = int(getattr(bot_user, "id", 0) or 0)
    for user in getattr(message, "mentions", None) or []:
        if int(getattr(user, "id", 0) or 0) == bot_id:
            return True
    return False


def message_is_eligible(message, bot_user, config: ConfigSnapshot) -> bool:
    if bot_is_mentioned(message, bot_user):
        return True
    channel_id = getattr(getattr(message, "channel", None), "id", None)
    return config.channel_allowed(channel_id)


def strip_bot_mentions(content: str | None, bot_user) -> str:
    text = content or ""
    bot_id = getattr(bot_user, "id", None) if bot_user is not None else None
    if bot_id is None:
        return ANY_USER_MENTION_RE.sub("", text).strip()
    return re.sub(rf"<@!?\s*{int(bot_id)}\s*>", "", text).strip()


def truncate_reply(text: str | None, limit: int = DISCORD_MAX_MESSAGE_LEN) -> str:
    text = text or ""
    if len(text) <= limit:
        return text
    return text[: limit - len(TRUNCATION_MARKER)] + TRUNCATION_MARKER
