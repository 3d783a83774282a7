"""Health checks del sistema."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Dict, Iterable, Optional

from ..cache import FallbackCache
from ..redis.connection import ConnectionState, RedisConnection


@dataclass
class HealthStatus:
    """Estado de salud del sistema."""
    healthy: bool
    redis_state: str
    redis_connected: bool
    enrichment_state: str
    caches: Dict[str, dict] = field(default_factory=dict)

    def to_dict(self) -> dict:
        return {
            "healthy": self.healthy,
            "redis_state": self.redis_state,
            "redis_connected": self.redis_connected,
            "enrichment_state": self.enrichment_state,
            "caches": self.caches,
        }


class HealthChecker:
    """Verifica el estado de salud del sistema.

    The service stays healthy while Redis is down: the in-process tier
    keeps answering, so a disconnected remote only degrades the cache.
    """

    def __init__(
        self,
        redis_conn: Optional[RedisConnection] = None,
        caches: Iterable[FallbackCache] = (),
    ):
        self._redis = redis_conn
        self._caches = list(caches)

    def check_redis(self) -> bool:
        """Verifica conexión a Redis."""
        if not self._redis:
            return False
        return self._redis.is_connected

    def redis_state(self) -> str:
        if not self._redis:
            return ConnectionState.DISABLED.value
        return self._redis.state.value

    def cache_stats(self) -> Dict[str, dict]:
        return {cache.namespace: cache.stats for cache in self._caches}

    def get_status(self, enrichment_state: str) -> HealthStatus:
        """Obtiene estado de salud completo."""
        return HealthStatus(
            healthy=True,
            redis_state=self.redis_state(),
            redis_connected=self.check_redis(),
            enrichment_state=enrichment_state,
            caches=self.cache_stats(),
        )
