"""
Shared-state stores for the gateway.

Rate windows, suspicion counters and ban records all live behind the
``KeyValueStore`` interface so the backing implementation (in-process map or
Redis) can change without touching the decision logic.
"""

import time
from typing import Callable

from .base import KeyValueStore
from .memory import MemoryStore
from .redis_store import RedisStore


def create_store(settings, clock: Callable[[], float] = time.time) -> KeyValueStore:
    """Build the store backend selected by ``settings.store_backend``."""
    if settings.store_backend == "redis":
        return RedisStore(settings.redis_url)
    return MemoryStore(
        max_entries=settings.store_max_entries,
        sweep_interval=settings.store_sweep_interval,
        clock=clock,
    )


__all__ = ["KeyValueStore", "MemoryStore", "RedisStore", "create_store"]
