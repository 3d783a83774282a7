"""Contadores de cache por namespace.

The in-object counters back the /health/cache endpoint and the tests;
the prometheus counters feed /metrics.
"""

from __future__ import annotations

from dataclasses import asdict, dataclass

from prometheus_client import Counter

CACHE_OPERATIONS = Counter(
    "pnode_cache_operations_total",
    "Cache operations by namespace, tier and result",
    ["namespace", "tier", "result"],  # result: hit, miss, error
)
CACHE_REMOTE_WRITE_FAILURES = Counter(
    "pnode_cache_remote_write_failures_total",
    "Writes that reached the local tier but failed on the remote tier",
    ["namespace"],
)


@dataclass
class CacheStats:
    """Estadísticas de un namespace de cache."""
    remote_hits: int = 0
    local_hits: int = 0
    misses: int = 0
    remote_read_failures: int = 0
    remote_write_failures: int = 0
    remote_delete_failures: int = 0
    writes: int = 0

    def to_dict(self) -> dict:
        return asdict(self)
