"""Descubrimiento de pNodes vía gossip con fallback entre seeds.

Flujo:
1. Cache (30s) → si hay hit, se enriquece con RAM cacheada y se retorna
2. Seed primario: get-pods-with-stats, si falla get-pods
3. Sin registros útiles → resto de seeds en orden con get-pods
4. Normalización registro a registro (uno malo no aborta el lote)
5. Deduplicación por pubkey (primero gana), salvo la variante de mapa
6. Escritura en cache y enriquecimiento

Total failure yields an empty list, never an exception.
"""

from __future__ import annotations

import asyncio
import logging
import time
from typing import Callable, Iterable, List, Optional

from common.config import Settings

from ..core.cache import FallbackCache
from ..gossip import PrpcClientFactory, PrpcError, is_network_error
from ..schemas import Node, Pod, dump
from .enrichment import CoverageLog, enrich_nodes_with_cached_stats
from .normalizer import normalize_pod

logger = logging.getLogger(__name__)

NODES_CACHE_KEY = "pnodes"
MAP_NODES_CACHE_KEY = "pnodes_map_all"
RAW_PODS_CACHE_KEY = "pods_raw_analytics"


def dedupe_by_pubkey(nodes: Iterable[Node]) -> List[Node]:
    """Drop later entries sharing a pubkey with an earlier one."""
    seen = set()
    unique: List[Node] = []
    for node in nodes:
        if not node.pubkey or node.pubkey in seen:
            continue
        seen.add(node.pubkey)
        unique.append(node)
    return unique


def log_upstream_failure(source: str, method: str, error: BaseException) -> None:
    if is_network_error(error):
        logger.debug("[DISCOVERY] %s on %s unreachable: %s", method, source, error)
    elif isinstance(error, PrpcError):
        logger.warning("[DISCOVERY] %s on %s failed: %s", method, source, error)
    else:
        logger.error("[DISCOVERY] Unexpected error calling %s on %s", method, source, exc_info=error)


class DiscoveryService:
    """Fuente de la lista de nodos para el resto de servicios."""

    def __init__(
        self,
        client_factory: PrpcClientFactory,
        node_cache: FallbackCache,
        stats_cache: FallbackCache,
        analytics_cache: FallbackCache,
        settings: Settings,
        clock: Callable[[], float] = time.time,
    ):
        self._factory = client_factory
        self._node_cache = node_cache
        self._stats_cache = stats_cache
        self._analytics_cache = analytics_cache
        self._settings = settings
        self._clock = clock
        self._coverage_log = CoverageLog()

        # Stats
        self._discoveries = 0
        self._seed_fallbacks = 0
        self._empty_discoveries = 0
        self._skipped_records = 0

    @property
    def stats(self) -> dict:
        return {
            "discoveries": self._discoveries,
            "seed_fallbacks": self._seed_fallbacks,
            "empty_discoveries": self._empty_discoveries,
            "skipped_records": self._skipped_records,
        }

    # ------------------------------------------------------------------
    # Public accessors
    # ------------------------------------------------------------------

    async def get_all_nodes(self) -> List[Node]:
        """Deduplicated node list (first occurrence per pubkey wins)."""
        cached = await self._load_cached_nodes(NODES_CACHE_KEY)
        if cached is not None:
            logger.debug("[DISCOVERY] Using cached pNodes count=%d", len(cached))
            return await enrich_nodes_with_cached_stats(cached, self._stats_cache, self._coverage_log)

        logger.info("[DISCOVERY] Cache miss, discovering pNodes via gossip")
        discovered = await self._discover()
        nodes = dedupe_by_pubkey(discovered)

        online = sum(1 for n in nodes if n.is_online)
        logger.info(
            "[DISCOVERY] found=%d unique=%d online=%d offline=%d",
            len(discovered), len(nodes), online, len(nodes) - online,
        )

        await self._node_cache.set(
            NODES_CACHE_KEY, [dump(n) for n in nodes], self._settings.node_cache_ttl_seconds,
        )
        return await enrich_nodes_with_cached_stats(nodes, self._stats_cache, self._coverage_log)

    async def get_all_nodes_for_map(self) -> List[Node]:
        """Undeduplicated list: one entry per gossip record, same pubkey allowed."""
        cached = await self._load_cached_nodes(MAP_NODES_CACHE_KEY)
        if cached is not None:
            return await enrich_nodes_with_cached_stats(cached, self._stats_cache, self._coverage_log)

        nodes = await self._discover()
        logger.info("[DISCOVERY] found=%d nodes for map (no dedup)", len(nodes))

        await self._node_cache.set(
            MAP_NODES_CACHE_KEY, [dump(n) for n in nodes], self._settings.node_cache_ttl_seconds,
        )
        return await enrich_nodes_with_cached_stats(nodes, self._stats_cache, self._coverage_log)

    async def get_node_by_pubkey(self, pubkey: str) -> Optional[Node]:
        for node in await self.get_all_nodes():
            if node.pubkey == pubkey:
                return node
        return None

    async def refresh(self) -> List[Node]:
        """Invalidate the node caches and rediscover."""
        await asyncio.gather(
            self._node_cache.delete(NODES_CACHE_KEY),
            self._node_cache.delete(MAP_NODES_CACHE_KEY),
        )
        return await self.get_all_nodes()

    async def get_raw_pods(self) -> List[Pod]:
        """Raw gossip records for network-wide figures (cached 60s).

        Read from the primary endpoint only, with stats when available.
        """
        cached = await self._analytics_cache.get(RAW_PODS_CACHE_KEY)
        if isinstance(cached, list):
            return self._parse_pods(cached)

        raw = await self._fetch_primary()
        if raw is None:
            return []

        pods = self._parse_pods(raw)
        await self._analytics_cache.set(
            RAW_PODS_CACHE_KEY,
            [p.model_dump(mode="json") for p in pods],
            self._settings.raw_pods_cache_ttl_seconds,
        )
        return pods

    # ------------------------------------------------------------------
    # Discovery
    # ------------------------------------------------------------------

    async def _discover(self) -> List[Node]:
        self._discoveries += 1
        primary = self._settings.primary_seed

        raw = await self._fetch_primary()
        nodes = self._normalize_all(raw or [])
        if nodes:
            return nodes

        for seed in self._settings.seed_ips:
            if seed == primary:
                continue
            client = self._factory.create(seed, timeout=self._settings.prpc_seed_timeout_seconds)
            try:
                response = await client.get_pods()
            except Exception as e:
                log_upstream_failure(seed, "get-pods", e)
                continue

            nodes = self._normalize_all(response.pods)
            if nodes:
                self._seed_fallbacks += 1
                logger.info("[DISCOVERY] Primary empty, using fallback seed=%s nodes=%d", seed, len(nodes))
                return nodes

        self._empty_discoveries += 1
        logger.warning("[DISCOVERY] All gossip endpoints exhausted, no nodes discovered")
        return []

    async def _fetch_primary(self) -> Optional[List[dict]]:
        """Raw records from the primary seed, or None if both calls failed."""
        primary = self._settings.primary_seed
        client = self._factory.create(primary, timeout=self._settings.prpc_timeout_seconds)
        try:
            return (await client.get_pods_with_stats()).pods
        except Exception as e:
            log_upstream_failure(primary, "get-pods-with-stats", e)

        try:
            return (await client.get_pods()).pods
        except Exception as e:
            log_upstream_failure(primary, "get-pods", e)
        return None

    def _normalize_all(self, raw_pods: List[dict]) -> List[Node]:
        now = self._clock()
        nodes: List[Node] = []
        for raw in raw_pods:
            try:
                node = normalize_pod(
                    Pod.model_validate(raw),
                    now=now,
                    online_threshold_seconds=self._settings.online_threshold_seconds,
                )
            except Exception as e:
                self._skipped_records += 1
                logger.debug("[DISCOVERY] Skipping malformed record: %s", e)
                continue
            if node.pubkey:
                nodes.append(node)
        return nodes

    def _parse_pods(self, raw_pods: List[dict]) -> List[Pod]:
        pods: List[Pod] = []
        for raw in raw_pods:
            try:
                pods.append(Pod.model_validate(raw))
            except Exception as e:
                self._skipped_records += 1
                logger.debug("[DISCOVERY] Skipping malformed raw pod: %s", e)
        return pods

    async def _load_cached_nodes(self, key: str) -> Optional[List[Node]]:
        cached = await self._node_cache.get(key)
        if not isinstance(cached, list):
            return None
        nodes: List[Node] = []
        for entry in cached:
            try:
                nodes.append(Node.model_validate(entry))
            except Exception as e:
                logger.warning("[DISCOVERY] Dropping invalid cached node: %s", e)
        return nodes
