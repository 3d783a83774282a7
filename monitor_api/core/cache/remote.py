"""Redis-backed cache tier (shared across instances)."""

from __future__ import annotations

import logging
import math
from typing import Optional

from ..redis.connection import RedisConnection
from .base import CacheBackend
from .errors import RemoteCacheError, RemoteCacheUnavailable

logger = logging.getLogger(__name__)


class RemoteCache(CacheBackend):
    """Tier remoto sobre Redis.

    TTL is enforced by Redis itself (SETEX). Any failure marks the
    connection unhealthy and is re-raised as a CacheTierError so the
    composing FallbackCache can decide what to do with it.
    """

    name = "remote"

    def __init__(self, connection: RedisConnection):
        self._conn = connection

    @property
    def available(self) -> bool:
        return self._conn.is_connected

    def _client(self):
        client = self._conn.client
        if not self._conn.is_connected or client is None:
            raise RemoteCacheUnavailable(f"redis {self._conn.state.value}")
        return client

    async def get(self, key: str) -> Optional[str]:
        client = self._client()
        try:
            return await client.get(key)
        except Exception as e:
            self._conn.mark_failed(e)
            raise RemoteCacheError("get", key, e) from e

    async def set(self, key: str, value: str, ttl_seconds: float) -> None:
        client = self._client()
        # SETEX needs whole seconds, and at least one.
        ttl = max(1, int(math.floor(ttl_seconds)))
        try:
            await client.setex(key, ttl, value)
        except Exception as e:
            self._conn.mark_failed(e)
            raise RemoteCacheError("set", key, e) from e

    async def delete(self, key: str) -> None:
        client = self._client()
        try:
            await client.delete(key)
        except Exception as e:
            self._conn.mark_failed(e)
            raise RemoteCacheError("delete", key, e) from e
