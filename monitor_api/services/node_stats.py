"""Estadísticas de runtime por nodo (get-stats contra la IP del propio nodo)."""

from __future__ import annotations

import logging
from datetime import datetime, timezone
from typing import Optional

from common.config import Settings

from ..core.cache import FallbackCache
from ..gossip import PrpcClientFactory, is_network_error
from ..schemas import Node, NodeStats
from .discovery import DiscoveryService
from .enrichment import node_stats_key

logger = logging.getLogger(__name__)


class NodeStatsService:
    """Obtiene y cachea NodeStats (TTL propio, independiente de la lista de nodos)."""

    def __init__(
        self,
        discovery: DiscoveryService,
        client_factory: PrpcClientFactory,
        stats_cache: FallbackCache,
        settings: Settings,
    ):
        self._discovery = discovery
        self._factory = client_factory
        self._cache = stats_cache
        self._settings = settings

        # Stats
        self._fetched = 0
        self._skipped = 0
        self._network_failures = 0
        self._unexpected_failures = 0

    @property
    def stats(self) -> dict:
        return {
            "fetched": self._fetched,
            "skipped": self._skipped,
            "network_failures": self._network_failures,
            "unexpected_failures": self._unexpected_failures,
        }

    async def get_cached_stats(self, pubkey: str) -> Optional[NodeStats]:
        cached = await self._cache.get(node_stats_key(pubkey))
        if not isinstance(cached, dict):
            return None
        try:
            return NodeStats.model_validate(cached)
        except Exception as e:
            logger.warning("[STATS] Dropping invalid cached stats pubkey=%s: %s", pubkey, e)
            return None

    async def get_node_stats(self, pubkey: str) -> Optional[NodeStats]:
        cached = await self.get_cached_stats(pubkey)
        if cached is not None:
            return cached

        node = await self._discovery.get_node_by_pubkey(pubkey)
        if node is None:
            return None
        return await self.fetch_node_stats(node)

    async def fetch_node_stats(self, node: Node) -> Optional[NodeStats]:
        """Fetch stats straight from the node; None when skipped or failed.

        Offline or addressless nodes are skipped, not treated as errors.
        """
        address = node.host
        if not node.is_online or not address:
            self._skipped += 1
            return None

        ip = address.split(":")[0]
        client = self._factory.create(ip, timeout=self._settings.node_stats_timeout_seconds)
        try:
            stats = await client.get_stats()
        except Exception as e:
            if is_network_error(e):
                self._network_failures += 1
                logger.debug("[STATS] Node %s unreachable: %s", node.pubkey, e)
            else:
                self._unexpected_failures += 1
                logger.error("[STATS] Unexpected error fetching stats for node %s: %s", node.pubkey, e)
            return None

        self._fetched += 1
        stats = stats.model_copy(
            update={"timestamp": datetime.now(timezone.utc).isoformat(timespec="milliseconds").replace("+00:00", "Z")}
        )
        await self._cache.set(
            node_stats_key(node.pubkey),
            stats.model_dump(mode="json"),
            self._settings.node_stats_cache_ttl_seconds,
        )
        return stats
