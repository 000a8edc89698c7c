"""
In-process store backend.
"""

import asyncio
import threading
import time
from collections import OrderedDict
from typing import Any, Callable, Optional, Tuple

from shared.logging import get_logger
from .base import KeyValueStore


class MemoryStore(KeyValueStore):
    """Bounded, TTL-aware in-process store.

    Entries live in an ``OrderedDict`` kept in recency order; when the store
    is full the least recently written key is evicted. Expired entries are
    dropped lazily on read and by the periodic sweep task.
    """

    backend_name = "memory"

    def __init__(
        self,
        max_entries: int = 100_000,
        sweep_interval: float = 60.0,
        clock: Callable[[], float] = time.time,
    ):
        self.max_entries = max_entries
        self.sweep_interval = sweep_interval
        self.clock = clock
        self.logger = get_logger("gateway.stores.memory")

        self._data: "OrderedDict[str, Tuple[Any, Optional[float]]]" = OrderedDict()
        self._lock = threading.Lock()

        self._sweep_task: Optional[asyncio.Task] = None
        self.running = False
        self.evictions = 0

    async def start(self) -> None:
        """Start the periodic sweep task."""
        if self._sweep_task is not None:
            return
        self.running = True
        self._sweep_task = asyncio.create_task(self._sweep_loop())
        self.logger.info("Memory store started", max_entries=self.max_entries)

    async def stop(self) -> None:
        """Stop the periodic sweep task."""
        self.running = False
        if self._sweep_task:
            self._sweep_task.cancel()
            try:
                await self._sweep_task
            except asyncio.CancelledError:
                pass
            self._sweep_task = None

        self.logger.info("Memory store stopped")

    async def get(self, key: str) -> Optional[Any]:
        with self._lock:
            entry = self._data.get(key)
            if entry is None:
                return None
            value, expires_at = entry
            if expires_at is not None and expires_at <= self.clock():
                del self._data[key]
                return None
            return value

    async def set(self, key: str, value: Any, ttl: Optional[float] = None) -> None:
        expires_at = self.clock() + ttl if ttl is not None else None
        with self._lock:
            self._data[key] = (value, expires_at)
            self._data.move_to_end(key)
            while len(self._data) > self.max_entries:
                self._data.popitem(last=False)
                self.evictions += 1

    async def delete(self, key: str) -> None:
        with self._lock:
            self._data.pop(key, None)

    async def sweep(self) -> int:
        now = self.clock()
        with self._lock:
            expired = [
                key for key, (_, expires_at) in self._data.items()
                if expires_at is not None and expires_at <= now
            ]
            for key in expired:
                del self._data[key]
        return len(expired)

    def __len__(self) -> int:
        return len(self._data)

    async def _sweep_loop(self):
        while self.running:
            try:
                await asyncio.sleep(self.sweep_interval)
                removed = await self.sweep()
                if removed:
                    self.logger.debug("Swept expired entries", removed=removed, remaining=len(self))
            except asyncio.CancelledError:
                break
            except Exception as e:
                self.logger.error("Store sweep failed", error=str(e))
