"""
Redis store backend, for gateways running as several processes.
"""

import json
import math
from typing import Any, Optional

import redis.asyncio as redis

from shared.errors import StoreError
from shared.logging import get_logger
from .base import KeyValueStore


class RedisStore(KeyValueStore):
    """Store backed by Redis; expiry is delegated to key TTLs."""

    backend_name = "redis"

    def __init__(self, redis_url: str, prefix: str = "zant:"):
        self.redis_url = redis_url
        self.prefix = prefix
        self.logger = get_logger("gateway.stores.redis")
        self._redis: Optional[redis.Redis] = None

    async def _get_redis(self) -> redis.Redis:
        """Get Redis connection."""
        if self._redis is None:
            self._redis = redis.from_url(
                self.redis_url,
                encoding="utf-8",
                decode_responses=True,
                socket_connect_timeout=5,
                socket_timeout=5,
                retry_on_timeout=True,
                health_check_interval=30
            )
        return self._redis

    def _make_key(self, key: str) -> str:
        return f"{self.prefix}{key}"

    async def start(self) -> None:
        """Open the connection and verify it."""
        try:
            client = await self._get_redis()
            await client.ping()
            self.logger.info("Redis store started")
        except Exception as e:
            self.logger.error("Failed to start Redis store", error=str(e))
            raise StoreError(self.backend_name, str(e)) from e

    async def stop(self) -> None:
        if self._redis is not None:
            await self._redis.aclose()
            self._redis = None
            self.logger.info("Redis store stopped")

    async def get(self, key: str) -> Optional[Any]:
        try:
            client = await self._get_redis()
            raw = await client.get(self._make_key(key))
        except Exception as e:
            raise StoreError(self.backend_name, f"get failed: {e}", {"key": key}) from e

        if raw is None:
            return None
        if isinstance(raw, bytes):
            raw = raw.decode("utf-8")
        try:
            return json.loads(raw)
        except ValueError:
            self.logger.warning("Discarding undecodable store value", key=key)
            return None

    async def set(self, key: str, value: Any, ttl: Optional[float] = None) -> None:
        payload = json.dumps(value, separators=(",", ":"))
        # Redis TTLs are whole seconds; round up so entries never expire early.
        expire = max(1, math.ceil(ttl)) if ttl is not None else None
        try:
            client = await self._get_redis()
            await client.set(self._make_key(key), payload, ex=expire)
        except Exception as e:
            raise StoreError(self.backend_name, f"set failed: {e}", {"key": key}) from e

    async def delete(self, key: str) -> None:
        try:
            client = await self._get_redis()
            await client.delete(self._make_key(key))
        except Exception as e:
            raise StoreError(self.backend_name, f"delete failed: {e}", {"key": key}) from e

    async def ping(self) -> bool:
        try:
            client = await self._get_redis()
            return bool(await client.ping())
        except Exception as e:
            self.logger.error("Redis ping failed", error=str(e))
            return False
