from __future__ import annotations

from cache.config_cache import ConfigCache
from controller.replies import BotReplies
from endpoint_client.client import BotApiClient
from health.state import HealthState
from jobs.heartbeat import heartbeat_loop
from llm.providers import build_completion_provider
from memory.service import MemoryUpdater
from misc.background import BackgroundTasks
from misc.events_runtime import register_runtime_events
from misc.runtime_deps import RuntimeBootDeps
from misc.runtime_deps import RuntimeDeps


def build_runtime_deps(
    *,
    settings,
    api: BotApiClient,
    replies: BotReplies,
    provider=None,
) -> tuple[RuntimeDeps, BackgroundTasks]:
    health = HealthState()
    cache = ConfigCache(
        api.fetch_config,
        errors=health.errors,
        ttl_seconds=settings.cache_ttl_seconds,
    )
    background = BackgroundTasks(health.errors)
    if provider is None:
        provider = build_completion_provider(settings, not_configured_message=replies.not_configured)

    deps = RuntimeDeps(
        cache=cache,
        replies=replies,
        provider=provider,
        memory_updater=MemoryUpdater(cache=cache, api=api, background=background),
        health=health,
    )
    return deps, background


def wire_bot_runtime(
    bot,
    *,
    settings,
    api: BotApiClient,
    replies: BotReplies,
) -> tuple[RuntimeDeps, BackgroundTasks]:
    deps, background = build_runtime_deps(settings=settings, api=api, replies=replies)

    async def run_heartbeat():
        return await heartbeat_loop(
            health=deps.health,
            cache=deps.cache,
            api=api,
            interval_seconds=settings.heartbeat_seconds,
        )

    register_runtime_events(
        bot,
        deps=deps,
        boot=RuntimeBootDeps(heartbeat_loop_func=run_heartbeat),
    )
    return deps, background
