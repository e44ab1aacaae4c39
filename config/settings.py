from __future__ import annotations

import os
from dataclasses import dataclass
from typing import Mapping

from config.defaults import DEFAULT_AI_PROVIDER
from config.defaults import DEFAULT_CACHE_TTL_SECONDS
from config.defaults import DEFAULT_COMPLETION_TIMEOUT_SECONDS
from config.defaults import DEFAULT_GEMINI_MODEL
from config.defaults import DEFAULT_HEARTBEAT_SECONDS
from config.defaults import DEFAULT_HTTP_TIMEOUT_SECONDS
from config.defaults import DEFAULT_OPENAI_MODEL
from config.defaults import SUPPORTED_AI_PROVIDERS


class SettingsError(RuntimeError):
    pass


@dataclass(frozen=True)
class BotSettings:
    discord_token: str
    bot_api_url: str
    ai_api_key: str | None = None
    ai_provider: str = DEFAULT_AI_PROVIDER
    ai_model: str = DEFAULT_OPENAI_MODEL
    cache_ttl_seconds: float = DEFAULT_CACHE_TTL_SECONDS
    heartbeat_seconds: float = DEFAULT_HEARTBEAT_SECONDS
    http_timeout_seconds: float = DEFAULT_HTTP_TIMEOUT_SECONDS
    completion_timeout_seconds: float = DEFAULT_COMPLETION_TIMEOUT_SECONDS
    replies_path: str | None = None


@dataclass(frozen=True)
class EndpointSettings:
    db_path: str = "bot_api.db"


def _env_str(env: Mapping[str, str], key: str) -> str | None:
    raw = env.get(key)
    if raw is None:
        return None
    return raw.strip() or None


def _env_float(env: Mapping[str, str], key: str, default: float, *, minimum: float) -> float:
    raw = _env_str(env, key)
    if raw is None:
        return default
    try:
        value = float(raw)
    except ValueError:
        print(f"[CFG] invalid {key}={raw!r}; falling back to {default}")
        return default
    return max(minimum, value)


def load_bot_settings(env: Mapping[str, str] | None = None) -> BotSettings:
    env = os.environ if env is None else env

    discord_token = _env_str(env, "DISCORD_TOKEN")
    bot_api_url = _env_str(env, "BOT_API_URL")
    if not discord_token or not bot_api_url:
        raise SettingsError("DISCORD_TOKEN or BOT_API_URL missing")

    provider = (_env_str(env, "AI_PROVIDER") or DEFAULT_AI_PROVIDER).lower()
    if provider not in SUPPORTED_AI_PROVIDERS:
        print(f"[CFG] invalid AI_PROVIDER={provider!r}; falling back to {DEFAULT_AI_PROVIDER!r}")
        provider = DEFAULT_AI_PROVIDER

    default_model = DEFAULT_GEMINI_MODEL if provider == "gemini" else DEFAULT_OPENAI_MODEL

    return BotSettings(
        discord_token=discord_token,
        bot_api_url=bot_api_url,
        ai_api_key=_env_str(env, "AI_API_KEY"),
        ai_provider=provider,
        ai_model=_env_str(env, "AI_MODEL") or default_model,
        cache_ttl_seconds=_env_float(env, "BOT_CACHE_TTL_SECONDS", DEFAULT_CACHE_TTL_SECONDS, minimum=0.0),
        heartbeat_seconds=_env_float(env, "BOT_HEARTBEAT_SECONDS", DEFAULT_HEARTBEAT_SECONDS, minimum=5.0),
        http_timeout_seconds=_env_float(env, "BOT_HTTP_TIMEOUT_SECONDS", DEFAULT_HTTP_TIMEOUT_SECONDS, minimum=1.0),
        completion_timeout_seconds=_env_float(
            env,
            "AI_TIMEOUT_SECONDS",
            DEFAULT_COMPLETION_TIMEOUT_SECONDS,
            minimum=1.0,
        ),
        replies_path=_env_str(env, "BOT_REPLIES_PATH"),
    )


def load_endpoint_settings(env: Mapping[str, str] | None = None) -> EndpointSettings:
    env = os.environ if env is None else env
    return EndpointSettings(db_path=_env_str(env, "BOT_API_DB_PATH") or "bot_api.db")
