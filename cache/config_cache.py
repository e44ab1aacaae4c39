from __future__ import annotations

import asyncio
import time
from dataclasses import dataclass, field, replace
from typing import Any, Awaitable, Callable

from config.defaults import DEFAULT_CACHE_TTL_SECONDS
from config.defaults import DEFAULT_INSTRUCTIONS
from health.errors import ErrorTracker
from memory.rolling_summary import MemoryState


@dataclass(frozen=True, slots=True)
class ConfigSnapshot:
    instructions: str = DEFAULT_INSTRUCTIONS
    allowed_channels: frozenset[str] = field(default_factory=frozenset)
    memory: MemoryState | None = None

    def channel_allowed(self, channel_id: int | str | None) -> bool:
        if channel_id is None:
            return False
        return str(channel_id) in self.allowed_channels


def _as_count(value: Any) -> int:
    if isinstance(value, bool):
        return 0
    try:
        return max(0, int(value))
    except (TypeError, ValueError):
        return 0


def snapshot_from_payload(data: dict[str, Any]) -> ConfigSnapshot:
    instructions = str(data.get("instructions") or "").strip() or DEFAULT_INSTRUCTIONS

    raw_channels = data.get("allowedChannels") or []
    if not isinstance(raw_channels, list):
        raw_channels = []
    channels = frozenset(str(c).strip() for c in raw_channels if str(c or "").strip())

    raw_memory = data.get("memory")
    memory: MemoryState | None = None
    if isinstance(raw_memory, dict):
        summary = raw_memory.get("summary")
        memory = MemoryState(
            summary=summary if isinstance(summary, str) else "",
            message_count=_as_count(raw_memory.get("message_count")),
        )

    return ConfigSnapshot(instructions=instructions, allowed_channels=channels, memory=memory)


class ConfigCache:
    """TTL cache over the endpoint's config action.

    ``get()`` never raises: a failed refresh hands back the last good snapshot,
    or the built-in defaults if no fetch has succeeded yet. Concurrent callers
    during a refresh share the same in-flight fetch.
    """

    def __init__(
        self,
        fetch: Callable[[], Awaitable[dict[str, Any]]],
        *,
        errors: ErrorTracker,
        ttl_seconds: float = DEFAULT_CACHE_TTL_SECONDS,
        clock: Callable[[], float] = time.monotonic,
    ):
        self._fetch = fetch
        self._errors = errors
        self._ttl = float(ttl_seconds)
        self._clock = clock
        self._snapshot = ConfigSnapshot()
        self._fetched_at: float | None = None
        self._inflight: asyncio.Future | None = None
        self.hits = 0
        self.misses = 0

    @property
    def snapshot(self) -> ConfigSnapshot:
        return self._snapshot

    def _is_fresh(self) -> bool:
        if self._fetched_at is None:
            return False
        return (self._clock() - self._fetched_at) < self._ttl

    async def get(self) -> ConfigSnapshot:
        if self._is_fresh():
            self.hits += 1
            return self._snapshot

        self.misses += 1
        if self._inflight is None:
            task = asyncio.ensure_future(self._refresh())
            task.add_done_callback(self._clear_inflight)
            self._inflight = task
        return await asyncio.shield(self._inflight)

    def _clear_inflight(self, task: asyncio.Future) -> None:
        if self._inflight is task:
            self._inflight = None

    async def _refresh(self) -> ConfigSnapshot:
        try:
            data = await self._fetch()
            snapshot = snapshot_from_payload(data)
        except Exception as e:
            self._errors.record("config fetch", e)
            return self._snapshot

        self._snapshot = snapshot
        self._fetched_at = self._clock()
        print(
            f"[Cache] refreshed channels={len(snapshot.allowed_channels)} "
            f"memory_count={snapshot.memory.message_count if snapshot.memory else 0}"
        )
        return snapshot

    def apply_memory(self, memory: MemoryState) -> None:
        self._snapshot = replace(self._snapshot, memory=memory)

    def age_seconds(self) -> int:
        if self._fetched_at is None:
            return 0
        return max(0, int(self._clock() - self._fetched_at))

    def stats(self) -> dict[str, int]:
        return {
            "cache_age_seconds": self.age_seconds(),
            "cache_hits": self.hits,
            "cache_misses": self.misses,
        }
