"""
Trajectory Persistence.

Stores each user's conversation trajectory between requests.

Design:
    - TrajectoryStore Protocol defines the interface
    - Multiple backends: InMemory (test), Redis (production)
    - Trajectories are stored as lists of storage-form message dicts
      (the normalizer's canonical shape, plus an optional UI ``type`` marker)
    - One trajectory per user scope

Usage:
    store = RedisTrajectoryStore(redis_url="redis://localhost:6379")

    messages = await store.load("user-7")
    messages.append({"role": "user", "parts": [...]})
    await store.save("user-7", messages)

    await store.clear("user-7")
"""

from __future__ import annotations

import copy
import json
import logging
from typing import Any, Literal, Protocol, runtime_checkable

logger = logging.getLogger(__name__)


# =============================================================================
# Store Protocol
# =============================================================================


@runtime_checkable
class TrajectoryStore(Protocol):
    """
    Protocol for trajectory backends.

    Trajectories are keyed by user scope.
    """

    async def load(self, scope: str) -> list[dict[str, Any]]:
        """
        Load a scope's stored messages.

        Returns:
            Messages in chronological order ([] when nothing is stored)
        """
        ...

    async def save(self, scope: str, messages: list[dict[str, Any]]) -> None:
        """Replace a scope's stored messages."""
        ...

    async def clear(self, scope: str) -> None:
        """Delete a scope's stored messages."""
        ...


# =============================================================================
# In-Memory Implementation
# =============================================================================


class InMemoryTrajectoryStore:
    """
    In-memory trajectory storage for testing and development.

    Not suitable for production (data lost on restart).
    """

    def __init__(self) -> None:
        self._trajectories: dict[str, list[dict[str, Any]]] = {}

    async def load(self, scope: str) -> list[dict[str, Any]]:
        return copy.deepcopy(self._trajectories.get(scope, []))

    async def save(self, scope: str, messages: list[dict[str, Any]]) -> None:
        self._trajectories[scope] = copy.deepcopy(list(messages))
        logger.debug(f"[memory:inmemory] Saved {len(messages)} messages for {scope}")

    async def clear(self, scope: str) -> None:
        self._trajectories.pop(scope, None)
        logger.debug(f"[memory:inmemory] Cleared {scope}")

    @property
    def scope_count(self) -> int:
        return len(self._trajectories)


# =============================================================================
# Redis Implementation
# =============================================================================


class RedisTrajectoryStore:
    """
    Redis-backed trajectory storage.

    Storage Format:
        - Key: f"sitepilot:trajectory:{scope}"
        - Value: JSON array of storage-form messages

    Example:
        store = RedisTrajectoryStore(redis_url="redis://localhost:6379", ttl_seconds=86400)
        await store.save("user-7", messages)
    """

    def __init__(
        self,
        redis_url: str = "redis://localhost:6379",
        key_prefix: str = "sitepilot:trajectory",
        ttl_seconds: int = 0,
    ) -> None:
        """
        Initialize Redis store.

        Args:
            redis_url: Redis connection URL
            key_prefix: Prefix for all keys
            ttl_seconds: Time-to-live for trajectories (0 = no expiry)
        """
        self._redis_url = redis_url
        self._key_prefix = key_prefix
        self._ttl = ttl_seconds
        self._client: Any = None  # redis.asyncio.Redis

    async def _get_client(self) -> Any:
        """Get or create Redis client."""
        if self._client is None:
            try:
                import redis.asyncio as aioredis

                self._client = aioredis.from_url(
                    self._redis_url,
                    encoding="utf-8",
                    decode_responses=True,
                )
            except ImportError:
                raise ImportError(
                    "redis package required for RedisTrajectoryStore. "
                    "Install with: pip install redis"
                )
        return self._client

    def _key(self, scope: str) -> str:
        return f"{self._key_prefix}:{scope}"

    async def load(self, scope: str) -> list[dict[str, Any]]:
        client = await self._get_client()
        data = await client.get(self._key(scope))
        if data is None:
            return []

        try:
            messages = json.loads(data)
        except json.JSONDecodeError as e:
            logger.warning(f"[memory:redis] Failed to parse trajectory for {scope}: {e}")
            return []

        if not isinstance(messages, list):
            logger.warning(f"[memory:redis] Stored trajectory for {scope} is not a list")
            return []
        return messages

    async def save(self, scope: str, messages: list[dict[str, Any]]) -> None:
        client = await self._get_client()
        key = self._key(scope)
        data = json.dumps(list(messages))
        if self._ttl > 0:
            await client.setex(key, self._ttl, data)
        else:
            await client.set(key, data)
        logger.debug(f"[memory:redis] Saved {len(messages)} messages for {scope}")

    async def clear(self, scope: str) -> None:
        client = await self._get_client()
        await client.delete(self._key(scope))
        logger.debug(f"[memory:redis] Cleared {scope}")

    async def close(self) -> None:
        """Close the Redis connection."""
        if self._client is not None:
            await self._client.close()
            self._client = None


# =============================================================================
# Convenience Functions
# =============================================================================


def create_store(
    backend: Literal["inmemory", "redis"] = "inmemory",
    **kwargs: Any,
) -> InMemoryTrajectoryStore | RedisTrajectoryStore:
    """
    Create a trajectory store.

    Example:
        # Development
        store = create_store("inmemory")

        # Production
        store = create_store("redis", redis_url="redis://localhost:6379")
    """
    if backend == "inmemory":
        return InMemoryTrajectoryStore(**kwargs)
    elif backend == "redis":
        return RedisTrajectoryStore(**kwargs)
    else:
        raise ValueError(f"Unknown backend: {backend}")
