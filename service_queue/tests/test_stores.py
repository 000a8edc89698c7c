"""
Unit tests for the store backends.
"""

import asyncio
from unittest.mock import AsyncMock, patch

import pytest

from shared.config import get_settings
from shared.errors import StoreError
from service_queue.app.stores import create_store
from service_queue.app.stores.memory import MemoryStore
from service_queue.app.stores.redis_store import RedisStore


class TestMemoryStore:
    """Test cases for MemoryStore."""

    @pytest.mark.asyncio
    async def test_set_get_delete(self, clock):
        store = MemoryStore(clock=clock)

        await store.set("k", {"a": 1})
        assert await store.get("k") == {"a": 1}

        await store.delete("k")
        assert await store.get("k") is None

    @pytest.mark.asyncio
    async def test_ttl_expiry(self, clock):
        store = MemoryStore(clock=clock)
        await store.set("k", 1, ttl=10)

        clock.advance(9)
        assert await store.get("k") == 1

        clock.advance(1)
        assert await store.get("k") is None
        assert len(store) == 0

    @pytest.mark.asyncio
    async def test_least_recently_written_is_evicted(self, clock):
        store = MemoryStore(max_entries=2, clock=clock)

        await store.set("a", 1)
        await store.set("b", 2)
        await store.set("a", 3)
        await store.set("c", 4)

        assert await store.get("b") is None
        assert await store.get("a") == 3
        assert await store.get("c") == 4
        assert store.evictions == 1

    @pytest.mark.asyncio
    async def test_sweep_removes_only_expired(self, clock):
        store = MemoryStore(clock=clock)
        await store.set("short", 1, ttl=5)
        await store.set("long", 2, ttl=50)
        await store.set("forever", 3)

        clock.advance(10)

        assert await store.sweep() == 1
        assert len(store) == 2

    @pytest.mark.asyncio
    async def test_sweep_task_lifecycle(self, clock):
        store = MemoryStore(sweep_interval=0.01, clock=clock)
        await store.set("k", 1, ttl=1)
        clock.advance(5)

        await store.start()
        await asyncio.sleep(0.05)
        await store.stop()

        assert len(store) == 0
        assert store._sweep_task is None

    @pytest.mark.asyncio
    async def test_ping(self):
        assert await MemoryStore().ping() is True


class TestRedisStore:
    """Test cases for RedisStore."""

    @pytest.fixture
    def store(self):
        return RedisStore("redis://localhost:6379/0")

    @pytest.fixture
    def mock_redis(self):
        return AsyncMock()

    @pytest.mark.asyncio
    async def test_get_decodes_json(self, store, mock_redis):
        mock_redis.get.return_value = '{"until": 10}'

        with patch.object(store, "_get_redis", return_value=mock_redis):
            assert await store.get("ban:fp") == {"until": 10}

        mock_redis.get.assert_called_once_with("zant:ban:fp")

    @pytest.mark.asyncio
    async def test_get_missing_key(self, store, mock_redis):
        mock_redis.get.return_value = None

        with patch.object(store, "_get_redis", return_value=mock_redis):
            assert await store.get("ban:fp") is None

    @pytest.mark.asyncio
    async def test_get_undecodable_value(self, store, mock_redis):
        mock_redis.get.return_value = "not json"

        with patch.object(store, "_get_redis", return_value=mock_redis):
            assert await store.get("ban:fp") is None

    @pytest.mark.asyncio
    async def test_set_rounds_ttl_up(self, store, mock_redis):
        with patch.object(store, "_get_redis", return_value=mock_redis):
            await store.set("rate:fp", [1.5, 2.5], ttl=59.2)

        mock_redis.set.assert_called_once_with("zant:rate:fp", "[1.5,2.5]", ex=60)

    @pytest.mark.asyncio
    async def test_set_without_ttl(self, store, mock_redis):
        with patch.object(store, "_get_redis", return_value=mock_redis):
            await store.set("suspicion:fp", 3)

        mock_redis.set.assert_called_once_with("zant:suspicion:fp", "3", ex=None)

    @pytest.mark.asyncio
    async def test_client_errors_become_store_errors(self, store, mock_redis):
        mock_redis.get.side_effect = ConnectionError("connection refused")

        with patch.object(store, "_get_redis", return_value=mock_redis):
            with pytest.raises(StoreError) as exc_info:
                await store.get("ban:fp")

        assert exc_info.value.code == "STORE_ERROR"
        assert exc_info.value.message.startswith("redis:")
        assert exc_info.value.details == {"key": "ban:fp"}

    @pytest.mark.asyncio
    async def test_start_fails_when_unreachable(self, store, mock_redis):
        mock_redis.ping.side_effect = ConnectionError("connection refused")

        with patch.object(store, "_get_redis", return_value=mock_redis):
            with pytest.raises(StoreError):
                await store.start()

    @pytest.mark.asyncio
    async def test_ping_reports_failure(self, store, mock_redis):
        mock_redis.ping.side_effect = ConnectionError("connection refused")

        with patch.object(store, "_get_redis", return_value=mock_redis):
            assert await store.ping() is False


class TestCreateStore:

    def test_memory_backend(self, clock):
        settings = get_settings(secret="S", store_backend="memory", store_max_entries=50)

        store = create_store(settings, clock=clock)

        assert isinstance(store, MemoryStore)
        assert store.max_entries == 50
        assert store.clock is clock

    def test_redis_backend(self):
        settings = get_settings(secret="S", store_backend="redis", redis_url="redis://cache:6379/1")

        store = create_store(settings)

        assert isinstance(store, RedisStore)
        assert store.redis_url == "redis://cache:6379/1"
