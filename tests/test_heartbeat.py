from __future__ import annotations

import asyncio
import io
import unittest
from contextlib import redirect_stdout

from cache.config_cache import ConfigCache
from health.errors import ErrorTracker
from health.state import HealthState
from jobs.heartbeat import heartbeat_loop
from jobs.heartbeat import report_health
from jobs.heartbeat import report_offline
from misc.background import BackgroundTasks


class _RecordingApi:
    def __init__(self, *, fails: bool = False, hang: bool = False):
        self.fails = fails
        self.hang = hang
        self.reports: list[dict] = []

    async def fetch_config(self):
        return {"instructions": "x", "allowedChannels": [], "memory": None}

    async def report_health(self, payload):
        if self.hang:
            await asyncio.sleep(10)
        if self.fails:
            raise ConnectionError("endpoint down")
        self.reports.append(payload)


def _cache(api: _RecordingApi, errors: ErrorTracker) -> ConfigCache:
    return ConfigCache(api.fetch_config, errors=errors, ttl_seconds=30)


class HeartbeatTests(unittest.IsolatedAsyncioTestCase):
    async def test_report_carries_health_and_cache_stats(self):
        api = _RecordingApi()
        health = HealthState()
        cache = _cache(api, health.errors)
        await cache.get()
        await cache.get()
        health.mark_ping()
        health.errors.record("test", "boom")

        ok = await report_health(health=health, cache=cache, api=api)

        self.assertTrue(ok)
        payload = api.reports[0]
        self.assertEqual(
            set(payload),
            {"last_ping", "last_message", "error_count", "cache_age_seconds", "cache_hits", "cache_misses", "is_online"},
        )
        self.assertEqual(payload["error_count"], 1)
        self.assertEqual(payload["cache_hits"], 1)
        self.assertEqual(payload["cache_misses"], 1)
        self.assertIs(payload["is_online"], True)
        self.assertIsNotNone(payload["last_ping"])
        self.assertIsNone(payload["last_message"])

    async def test_failed_report_is_swallowed(self):
        api = _RecordingApi(fails=True)
        health = HealthState()
        ok = await report_health(health=health, cache=_cache(api, health.errors), api=api)
        self.assertFalse(ok)
        self.assertEqual(health.errors.count, 0)

    async def test_loop_reports_immediately_then_waits(self):
        api = _RecordingApi()
        health = HealthState()
        task = asyncio.create_task(
            heartbeat_loop(health=health, cache=_cache(api, health.errors), api=api, interval_seconds=60)
        )
        for _ in range(5):
            await asyncio.sleep(0)
        task.cancel()
        with self.assertRaises(asyncio.CancelledError):
            await task

        self.assertEqual(len(api.reports), 1)
        self.assertIsNotNone(api.reports[0]["last_ping"])

    async def test_loop_logs_error_trend(self):
        api = _RecordingApi()
        health = HealthState()
        health.errors.record("reply", "boom")
        buf = io.StringIO()
        with redirect_stdout(buf):
            task = asyncio.create_task(
                heartbeat_loop(health=health, cache=_cache(api, health.errors), api=api, interval_seconds=60)
            )
            for _ in range(5):
                await asyncio.sleep(0)
            task.cancel()
            with self.assertRaises(asyncio.CancelledError):
                await task

        self.assertIn("[Health] heartbeat reported=True errors=1 trend=increasing", buf.getvalue())

    async def test_loop_survives_report_failures(self):
        api = _RecordingApi(fails=True)
        health = HealthState()
        task = asyncio.create_task(
            heartbeat_loop(health=health, cache=_cache(api, health.errors), api=api, interval_seconds=60)
        )
        for _ in range(5):
            await asyncio.sleep(0)
        self.assertFalse(task.done())
        task.cancel()
        with self.assertRaises(asyncio.CancelledError):
            await task

    async def test_offline_report_marks_offline(self):
        api = _RecordingApi()
        health = HealthState()
        ok = await report_offline(health=health, cache=_cache(api, health.errors), api=api)
        self.assertTrue(ok)
        self.assertIs(api.reports[0]["is_online"], False)

    async def test_offline_report_is_bounded(self):
        api = _RecordingApi(hang=True)
        health = HealthState()
        loop = asyncio.get_running_loop()
        started = loop.time()
        ok = await report_offline(
            health=health,
            cache=_cache(api, health.errors),
            api=api,
            timeout_seconds=0.05,
        )
        self.assertFalse(ok)
        self.assertLess(loop.time() - started, 2)


class BackgroundTasksTests(unittest.IsolatedAsyncioTestCase):
    async def test_failures_are_recorded_not_raised(self):
        errors = ErrorTracker()
        background = BackgroundTasks(errors)

        async def boom():
            raise ValueError("nope")

        background.spawn(boom(), label="memory update")
        await background.drain(timeout=1)
        self.assertEqual(errors.count, 1)
        self.assertEqual(len(background), 0)

    async def test_drain_cancels_stragglers(self):
        background = BackgroundTasks(ErrorTracker())
        task = background.spawn(asyncio.sleep(10), label="slow")
        await background.drain(timeout=0.01)
        with self.assertRaises(asyncio.CancelledError):
            await task


if __name__ == "__main__":
    unittest.main()
