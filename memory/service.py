from __future__ import annotations

import asyncio
from datetime import datetime

from cache.config_cache import ConfigCache
from memory.rolling_summary import MemoryState
from memory.rolling_summary import append_to_summary
from misc.background import BackgroundTasks


class MemoryUpdater:
    """Appends answered turns to the rolling summary and persists it in the background.

    The read-modify-write runs under one lock so concurrent turns in this
    process never drop each other's lines. Persistence is fire-and-forget.
    """

    def __init__(self, *, cache: ConfigCache, api, background: BackgroundTasks):
        self._cache = cache
        self._api = api
        self._background = background
        self._lock = asyncio.Lock()

    async def record_turn(self, content: str, *, now: datetime | None = None) -> MemoryState:
        async with self._lock:
            updated = append_to_summary(self._cache.snapshot.memory, content, now=now)
            self._cache.apply_memory(updated)
        self._background.spawn(
            self._persist(updated),
            label="memory update",
        )
        return updated

    async def _persist(self, memory: MemoryState) -> None:
        await self._api.update_memory(memory.summary, memory.message_count)
        print(f"[Memory] persisted message_count={memory.message_count} chars={len(memory.summary)}")
