from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Callable

from cache.config_cache import ConfigCache
from controller.replies import BotReplies
from health.state import HealthState


@dataclass(frozen=True)
class RuntimeDeps:
    # config
    cache: ConfigCache
    replies: BotReplies

    # llm
    provider: Any

    # memory + health
    memory_updater: Any
    health: HealthState


@dataclass(frozen=True)
class RuntimeBootDeps:
    heartbeat_loop_func: Callable
