"""
Key-value store interface shared by the gateway's screening components.
"""

from abc import ABC, abstractmethod
from typing import Any, Optional


class KeyValueStore(ABC):
    """Async get/set/delete store with per-key atomicity.

    Values are JSON-compatible (dicts, lists, numbers, strings). Callers never
    mutate a value after handing it to ``set``; they build a new one instead.
    """

    backend_name = "abstract"

    async def start(self) -> None:
        """Acquire resources / start background work."""

    async def stop(self) -> None:
        """Release resources / stop background work."""

    @abstractmethod
    async def get(self, key: str) -> Optional[Any]:
        """Return the stored value, or None when absent or expired."""

    @abstractmethod
    async def set(self, key: str, value: Any, ttl: Optional[float] = None) -> None:
        """Store ``value``; ``ttl`` is in seconds, None means no expiry."""

    @abstractmethod
    async def delete(self, key: str) -> None:
        """Remove ``key`` if present."""

    async def sweep(self) -> int:
        """Drop expired entries; returns how many were removed."""
        return 0

    async def ping(self) -> bool:
        return True
