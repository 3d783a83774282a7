"""Read-through merge of cached RAM figures into node lists.

The cached node list is never rewritten; callers get enriched copies.
"""

from __future__ import annotations

import asyncio
import logging
import time
from typing import List, Optional

from ..core.cache import FallbackCache
from ..schemas import Node

logger = logging.getLogger(__name__)

LOG_INTERVAL_SECONDS = 10.0


def node_stats_key(pubkey: str) -> str:
    return f"node_stats_{pubkey}"


class CoverageLog:
    """Throttles the coverage line to changes or once every 10 seconds."""

    def __init__(self):
        self._last: Optional[tuple] = None

    def should_log(self, with_ram: int, total: int, now: float) -> bool:
        if self._last is None:
            return True
        last_with_ram, last_total, last_at = self._last
        return (
            last_with_ram != with_ram
            or last_total != total
            or now - last_at > LOG_INTERVAL_SECONDS
        )

    def mark(self, with_ram: int, total: int, now: float) -> None:
        self._last = (with_ram, total, now)


async def enrich_node(node: Node, stats_cache: FallbackCache) -> Node:
    cached = await stats_cache.get(node_stats_key(node.pubkey))
    if not isinstance(cached, dict):
        return node
    ram_used = cached.get("ram_used")
    ram_total = cached.get("ram_total")
    if ram_used is None or ram_total is None:
        return node
    return node.model_copy(update={"ram_used": int(ram_used), "ram_total": int(ram_total)})


async def enrich_nodes_with_cached_stats(
    nodes: List[Node],
    stats_cache: FallbackCache,
    coverage_log: Optional[CoverageLog] = None,
) -> List[Node]:
    """Enriched copies of ``nodes``; without a ``coverage_log`` nothing is logged."""
    if not nodes:
        return []

    enriched = list(await asyncio.gather(*(enrich_node(n, stats_cache) for n in nodes)))

    with_ram = sum(1 for n in enriched if n.ram_used is not None and n.ram_total is not None)
    now = time.monotonic()
    if coverage_log is not None and coverage_log.should_log(with_ram, len(enriched), now):
        logger.info(
            "[ENRICH] RAM coverage %d/%d nodes (%.1f%%)",
            with_ram, len(enriched), with_ram / len(enriched) * 100,
        )
        coverage_log.mark(with_ram, len(enriched), now)

    return enriched
