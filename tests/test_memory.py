"""
Tests for trajectory persistence.

Tests cover:
- InMemoryTrajectoryStore isolation and copying
- RedisTrajectoryStore with a mocked client
- create_store() backend selection
"""

import json
from unittest.mock import AsyncMock, MagicMock, patch

import pytest

from sitepilot.agent.memory import (
    InMemoryTrajectoryStore,
    RedisTrajectoryStore,
    TrajectoryStore,
    create_store,
)

MESSAGES = [
    {"role": "user", "parts": [{"channel": "content", "type": "text", "text": "hi"}]},
    {
        "type": "regular",
        "role": "model",
        "parts": [{"channel": "content", "type": "text", "text": "hello"}],
    },
]


# =============================================================================
# In-Memory
# =============================================================================


class TestInMemoryStore:
    """Tests for InMemoryTrajectoryStore."""

    @pytest.mark.asyncio
    async def test_empty_scope_loads_empty(self):
        assert await InMemoryTrajectoryStore().load("nobody") == []

    @pytest.mark.asyncio
    async def test_save_and_load(self):
        store = InMemoryTrajectoryStore()

        await store.save("user-7", MESSAGES)

        assert await store.load("user-7") == MESSAGES
        assert store.scope_count == 1

    @pytest.mark.asyncio
    async def test_scopes_isolated(self):
        store = InMemoryTrajectoryStore()

        await store.save("user-7", MESSAGES)

        assert await store.load("user-8") == []

    @pytest.mark.asyncio
    async def test_loaded_copy_is_independent(self):
        store = InMemoryTrajectoryStore()
        await store.save("user-7", MESSAGES)

        loaded = await store.load("user-7")
        loaded.append({"role": "user", "parts": []})
        loaded[0]["parts"].clear()

        assert await store.load("user-7") == MESSAGES

    @pytest.mark.asyncio
    async def test_clear(self):
        store = InMemoryTrajectoryStore()
        await store.save("user-7", MESSAGES)

        await store.clear("user-7")
        await store.clear("user-7")

        assert await store.load("user-7") == []

    def test_satisfies_protocol(self):
        assert isinstance(InMemoryTrajectoryStore(), TrajectoryStore)


# =============================================================================
# Redis
# =============================================================================


@pytest.fixture
def redis_client():
    client = MagicMock()
    client.get = AsyncMock(return_value=None)
    client.set = AsyncMock()
    client.setex = AsyncMock()
    client.delete = AsyncMock()
    client.close = AsyncMock()
    return client


class TestRedisStore:
    """Tests for RedisTrajectoryStore against a mocked client."""

    @pytest.mark.asyncio
    async def test_client_created_from_url(self, redis_client):
        with patch("redis.asyncio.from_url", return_value=redis_client) as from_url:
            store = RedisTrajectoryStore(redis_url="redis://cache:6379")
            await store.load("user-7")
            await store.load("user-7")

        from_url.assert_called_once_with(
            "redis://cache:6379", encoding="utf-8", decode_responses=True
        )

    @pytest.mark.asyncio
    async def test_load_decodes_json(self, redis_client):
        redis_client.get.return_value = json.dumps(MESSAGES)

        with patch("redis.asyncio.from_url", return_value=redis_client):
            store = RedisTrajectoryStore()
            messages = await store.load("user-7")

        redis_client.get.assert_awaited_once_with("sitepilot:trajectory:user-7")
        assert messages == MESSAGES

    @pytest.mark.asyncio
    async def test_load_invalid_json_is_empty(self, redis_client):
        redis_client.get.return_value = "{not json"

        with patch("redis.asyncio.from_url", return_value=redis_client):
            assert await RedisTrajectoryStore().load("user-7") == []

    @pytest.mark.asyncio
    async def test_load_non_list_is_empty(self, redis_client):
        redis_client.get.return_value = json.dumps({"role": "user"})

        with patch("redis.asyncio.from_url", return_value=redis_client):
            assert await RedisTrajectoryStore().load("user-7") == []

    @pytest.mark.asyncio
    async def test_save_without_ttl(self, redis_client):
        with patch("redis.asyncio.from_url", return_value=redis_client):
            store = RedisTrajectoryStore(key_prefix="test")
            await store.save("user-7", MESSAGES)

        redis_client.set.assert_awaited_once_with("test:user-7", json.dumps(MESSAGES))
        redis_client.setex.assert_not_called()

    @pytest.mark.asyncio
    async def test_save_with_ttl(self, redis_client):
        with patch("redis.asyncio.from_url", return_value=redis_client):
            store = RedisTrajectoryStore(ttl_seconds=60)
            await store.save("user-7", MESSAGES)

        redis_client.setex.assert_awaited_once_with(
            "sitepilot:trajectory:user-7", 60, json.dumps(MESSAGES)
        )

    @pytest.mark.asyncio
    async def test_clear_and_close(self, redis_client):
        with patch("redis.asyncio.from_url", return_value=redis_client):
            store = RedisTrajectoryStore()
            await store.clear("user-7")
            await store.close()

        redis_client.delete.assert_awaited_once_with("sitepilot:trajectory:user-7")
        redis_client.close.assert_awaited_once()


class TestCreateStore:
    """Tests for create_store()."""

    def test_inmemory(self):
        assert isinstance(create_store("inmemory"), InMemoryTrajectoryStore)

    def test_redis(self):
        assert isinstance(create_store("redis", redis_url="redis://x"), RedisTrajectoryStore)

    def test_unknown_backend(self):
        with pytest.raises(ValueError, match="Unknown backend"):
            create_store("sqlite")
