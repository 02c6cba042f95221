"""
Key-value store adapters.

Every record the service persists lives behind three async calls:
``get``, ``set`` and ``delete``, with string keys and string (JSON)
values. There are no transactions; multi-key writes are sequences of
independent calls.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import Dict, Optional

import redis.asyncio as redis
import structlog

from .config import Settings
from .exceptions import DatabaseError

logger = structlog.get_logger(__name__)


class KeyNotFoundError(KeyError):
    """Raised by ``get`` when the key does not exist."""

    def __init__(self, key: str):
        self.key = key
        super().__init__(key)


class KeyValueStore(ABC):
    """Abstract async key-value store."""

    @abstractmethod
    async def get(self, key: str) -> str:
        """Return the value for ``key`` or raise :class:`KeyNotFoundError`."""

    @abstractmethod
    async def set(self, key: str, value: str) -> None:
        """Store ``value`` under ``key``, replacing any previous value."""

    @abstractmethod
    async def delete(self, key: str) -> None:
        """Remove ``key``. Deleting a missing key is not an error."""

    async def ping(self) -> bool:
        return True

    async def close(self) -> None:
        return None


class InMemoryKeyValueStore(KeyValueStore):
    """Process-local store backed by a dict."""

    def __init__(self, initial: Optional[Dict[str, str]] = None):
        self._data: Dict[str, str] = dict(initial or {})

    async def get(self, key: str) -> str:
        try:
            return self._data[key]
        except KeyError:
            raise KeyNotFoundError(key) from None

    async def set(self, key: str, value: str) -> None:
        self._data[key] = value

    async def delete(self, key: str) -> None:
        self._data.pop(key, None)

    def keys(self) -> list[str]:
        return list(self._data)


class RedisKeyValueStore(KeyValueStore):
    """Store backed by Redis string keys."""

    def __init__(self, url: str, socket_timeout: float = 5.0, client: Optional[redis.Redis] = None):
        self.url = url
        self.client = client or redis.from_url(
            url,
            encoding="utf-8",
            decode_responses=True,
            socket_connect_timeout=socket_timeout,
            socket_timeout=socket_timeout,
        )

    async def get(self, key: str) -> str:
        try:
            value = await self.client.get(key)
        except redis.RedisError as e:
            raise _storage_error("get", key, e) from e
        if value is None:
            raise KeyNotFoundError(key)
        return value

    async def set(self, key: str, value: str) -> None:
        try:
            await self.client.set(key, value)
        except redis.RedisError as e:
            raise _storage_error("set", key, e) from e

    async def delete(self, key: str) -> None:
        try:
            await self.client.delete(key)
        except redis.RedisError as e:
            raise _storage_error("delete", key, e) from e

    async def ping(self) -> bool:
        try:
            return bool(await self.client.ping())
        except redis.RedisError as e:
            logger.warning("Redis ping failed", error=str(e))
            return False

    async def close(self) -> None:
        await self.client.aclose()


def _storage_error(operation: str, key: str, error: Exception) -> DatabaseError:
    logger.error("Redis operation failed", operation=operation, key=key, error=str(error))
    return DatabaseError()


def create_store(settings: Settings) -> KeyValueStore:
    """Build the store selected by ``settings.kv_backend``."""
    backend = settings.kv_backend.lower()
    if backend == "redis":
        logger.info("Using Redis key-value store", url=settings.redis_url.split("@")[-1])
        return RedisKeyValueStore(settings.redis_url, settings.redis_socket_timeout)
    if backend == "memory":
        logger.info("Using in-memory key-value store")
        return InMemoryKeyValueStore()
    raise ValueError(f"Unknown kv_backend: {settings.kv_backend}")
