from __future__ import annotations

import asyncio

from config.defaults import DEFAULT_HEARTBEAT_SECONDS
from config.defaults import SHUTDOWN_REPORT_TIMEOUT_SECONDS


async def report_health(*, health, cache, api, is_online: bool = True) -> bool:
    payload = health.snapshot(cache_stats=cache.stats(), is_online=is_online)
    try:
        await api.report_health(payload)
    except Exception as e:
        print(f"[Health] report failed: {e}")
        return False
    return True


async def heartbeat_loop(
    *,
    health,
    cache,
    api,
    interval_seconds: float = DEFAULT_HEARTBEAT_SECONDS,
) -> None:
    while True:
        try:
            health.mark_ping()
            ok = await report_health(health=health, cache=cache, api=api, is_online=True)
            print(
                f"[Health] heartbeat reported={ok} errors={health.errors.count} "
                f"trend={health.errors.trend()}"
            )
        except Exception as e:
            print(f"[Health] heartbeat loop error: {e}")
        await asyncio.sleep(max(5.0, float(interval_seconds)))


async def report_offline(
    *,
    health,
    cache,
    api,
    timeout_seconds: float = SHUTDOWN_REPORT_TIMEOUT_SECONDS,
) -> bool:
    try:
        return await asyncio.wait_for(
            report_health(health=health, cache=cache, api=api, is_online=False),
            timeout=timeout_seconds,
        )
    except asyncio.TimeoutError:
        print(f"[Health] offline report timed out after {timeout_seconds}s")
        return False
