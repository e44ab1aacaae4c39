from __future__ import annotations

import asyncio
import signal
from typing import Awaitable, Callable

import discord


class CopilotClient(discord.Client):
    """discord.Client that reports itself offline before closing.

    SIGINT/SIGTERM route through ``close()`` so the shutdown report runs once,
    with whatever bound ``on_shutdown`` applies.
    """

    def __init__(self, *, on_shutdown: Callable[[], Awaitable[object]], **kwargs):
        super().__init__(**kwargs)
        self._on_shutdown = on_shutdown
        self._shutdown_started = False

    async def setup_hook(self) -> None:
        loop = asyncio.get_running_loop()
        for sig in (signal.SIGINT, signal.SIGTERM):
            try:
                loop.add_signal_handler(sig, self._request_close, sig)
            except (NotImplementedError, RuntimeError) as e:
                print(f"[Discord] signal handler for {sig.name} unavailable: {e}")

    def _request_close(self, sig: signal.Signals) -> None:
        print(f"[Discord] received {sig.name}; shutting down")
        asyncio.get_running_loop().create_task(self.close())

    async def close(self) -> None:
        if not self._shutdown_started:
            self._shutdown_started = True
            heartbeat = getattr(self, "_heartbeat_task", None)
            if heartbeat is not None:
                heartbeat.cancel()
            try:
                await self._on_shutdown()
            except Exception as e:
                print(f"[Health] shutdown hook failed: {e}")
        await super().close()
