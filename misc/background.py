from __future__ import annotations

import asyncio
from typing import Coroutine

from health.errors import ErrorTracker


class BackgroundTasks:
    """Best-effort work spawned off the reply path.

    Holds a strong reference to each task until it finishes; failures are
    recorded and never re-raised to the caller.
    """

    def __init__(self, errors: ErrorTracker):
        self._errors = errors
        self._tasks: set[asyncio.Task] = set()

    def __len__(self) -> int:
        return len(self._tasks)

    def spawn(self, coro: Coroutine, *, label: str) -> asyncio.Task:
        task = asyncio.create_task(self._run(coro, label))
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)
        return task

    async def _run(self, coro: Coroutine, label: str) -> None:
        try:
            await coro
        except asyncio.CancelledError:
            raise
        except Exception as e:
            self._errors.record(label, e)

    async def drain(self, timeout: float) -> None:
        pending = list(self._tasks)
        if not pending:
            return
        _done, still_pending = await asyncio.wait(pending, timeout=timeout)
        for task in still_pending:
            task.cancel()
