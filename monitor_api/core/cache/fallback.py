"""Cache de dos niveles: Redis primero, memoria local como respaldo."""

from __future__ import annotations

import asyncio
import json
import logging
from typing import Any, Optional

from .base import CacheBackend
from .errors import CacheTierError, RemoteCacheUnavailable
from .stats import CACHE_OPERATIONS, CACHE_REMOTE_WRITE_FAILURES, CacheStats

logger = logging.getLogger(__name__)


class FallbackCache:
    """Namespaced two-tier cache.

    - get: remote first; on a miss or an unavailable remote, the local tier.
    - set: written to both tiers concurrently. A remote failure is counted
      and logged, never raised; the local write always lands.
    - delete: best-effort remote, unconditional local.

    Values must be JSON-serializable. Absence is ``None``, never an error.

    Uso:
        nodes = FallbackCache(remote, local, namespace="nodes", key_prefix="xandeum:nodes:")
        await nodes.set("pnodes", payload, ttl_seconds=30)
        cached = await nodes.get("pnodes")
    """

    def __init__(
        self,
        remote: Optional[CacheBackend],
        local: CacheBackend,
        namespace: str,
        key_prefix: str = "",
    ):
        self._remote = remote
        self._local = local
        self._namespace = namespace
        self._prefix = key_prefix
        self._stats = CacheStats()

    @property
    def namespace(self) -> str:
        return self._namespace

    @property
    def stats(self) -> dict:
        return {"namespace": self._namespace, "prefix": self._prefix, **self._stats.to_dict()}

    def _key(self, key: str) -> str:
        return f"{self._prefix}{key}"

    async def get(self, key: str) -> Optional[Any]:
        full_key = self._key(key)

        raw = await self._get_remote(full_key)
        if raw is not None:
            value = self._decode(full_key, raw)
            if value is not None:
                self._stats.remote_hits += 1
                CACHE_OPERATIONS.labels(self._namespace, "remote", "hit").inc()
                return value

        raw = await self._local.get(full_key)
        if raw is not None:
            value = self._decode(full_key, raw)
            if value is not None:
                self._stats.local_hits += 1
                CACHE_OPERATIONS.labels(self._namespace, "local", "hit").inc()
                return value

        self._stats.misses += 1
        CACHE_OPERATIONS.labels(self._namespace, "all", "miss").inc()
        return None

    async def _get_remote(self, full_key: str) -> Optional[str]:
        if self._remote is None:
            return None
        try:
            return await self._remote.get(full_key)
        except RemoteCacheUnavailable:
            return None
        except CacheTierError as e:
            self._stats.remote_read_failures += 1
            CACHE_OPERATIONS.labels(self._namespace, "remote", "error").inc()
            logger.warning("[CACHE] Remote get failed ns=%s: %s", self._namespace, e)
            return None

    async def set(self, key: str, value: Any, ttl_seconds: float) -> None:
        full_key = self._key(key)
        payload = json.dumps(value, separators=(",", ":"))
        self._stats.writes += 1

        if self._remote is None:
            await self._local.set(full_key, payload, ttl_seconds)
            return

        remote_result, local_result = await asyncio.gather(
            self._remote.set(full_key, payload, ttl_seconds),
            self._local.set(full_key, payload, ttl_seconds),
            return_exceptions=True,
        )
        if isinstance(local_result, BaseException):
            raise local_result
        if isinstance(remote_result, RemoteCacheUnavailable):
            self._record_write_failure()
            logger.debug("[CACHE] Remote down, stored locally ns=%s key=%s", self._namespace, key)
        elif isinstance(remote_result, CacheTierError):
            self._record_write_failure()
            logger.warning("[CACHE] Remote set failed ns=%s: %s", self._namespace, remote_result)
        elif isinstance(remote_result, BaseException):
            raise remote_result

    def _record_write_failure(self) -> None:
        self._stats.remote_write_failures += 1
        CACHE_REMOTE_WRITE_FAILURES.labels(self._namespace).inc()

    async def delete(self, key: str) -> None:
        full_key = self._key(key)
        if self._remote is not None:
            try:
                await self._remote.delete(full_key)
            except RemoteCacheUnavailable:
                pass
            except CacheTierError as e:
                self._stats.remote_delete_failures += 1
                logger.warning("[CACHE] Remote delete failed ns=%s: %s", self._namespace, e)
        await self._local.delete(full_key)

    def _decode(self, full_key: str, raw: str) -> Optional[Any]:
        try:
            return json.loads(raw)
        except (TypeError, ValueError) as e:
            logger.warning("[CACHE] Dropping undecodable entry key=%s: %s", full_key, e)
            return None
