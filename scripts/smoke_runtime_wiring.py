from __future__ import annotations

import asyncio
import importlib
from types import SimpleNamespace


class _OfflineApi:
    async def fetch_config(self):
        raise RuntimeError("offline")

    async def update_memory(self, summary, message_count):
        return None

    async def report_health(self, payload):
        return None


class _EchoProvider:
    name = "echo"

    async def complete(self, system_prompt, context, user_message):
        return f"echo: {user_message}"


def _try_import_or_skip(module_name: str, pip_name: str | None = None) -> bool:
    try:
        importlib.import_module(module_name)
        return True
    except ModuleNotFoundError:
        install_name = pip_name or module_name
        print(
            f"Smoke wiring check skipped: missing dependency '{module_name}'. "
            f"Install the project and retry (e.g. `pip install {install_name}` "
            f"or `pip install -e .`)."
        )
        return False


def _main() -> int:
    if not _try_import_or_skip("discord", "discord.py"):
        return 0

    import discord
    from controller.replies import BotReplies
    from misc.events_runtime import register_runtime_events
    from misc.runtime_deps import RuntimeBootDeps
    from misc.runtime_wiring import build_runtime_deps

    settings = SimpleNamespace(
        cache_ttl_seconds=30.0,
        heartbeat_seconds=60.0,
        ai_api_key=None,
        ai_provider="openai",
        ai_model="gpt-4o-mini",
        completion_timeout_seconds=60.0,
    )
    client = discord.Client(intents=discord.Intents.none())
    deps, _background = build_runtime_deps(
        settings=settings,
        api=_OfflineApi(),
        replies=BotReplies(),
        provider=_EchoProvider(),
    )

    async def _noop_heartbeat():
        return None

    register_runtime_events(client, deps=deps, boot=RuntimeBootDeps(heartbeat_loop_func=_noop_heartbeat))

    missing = [name for name in ("on_ready", "on_message") if not hasattr(client, name)]
    if missing:
        print(f"Smoke wiring check failed: missing events {missing}")
        return 1

    snapshot = asyncio.run(deps.cache.get())
    print(f"Smoke wiring check passed (fallback instructions={snapshot.instructions!r}).")
    return 0


if __name__ == "__main__":
    raise SystemExit(_main())
