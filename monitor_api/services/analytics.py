"""Analítica de red y métricas por nodo.

Summary figures read the raw gossip records (to match the figures the
network publishes) while per-node metrics join raw records with the
normalized node list. Computed NodeMetrics are cached for 60s on top of
both upstream caches.
"""

from __future__ import annotations

import asyncio
import logging
import time
from typing import Callable, List, Optional, Sequence

from common.config import Settings

from ..core.cache import FallbackCache
from ..schemas import (
    AnalyticsSummary,
    ExtendedSummary,
    Node,
    NodeMetrics,
    Pod,
    StorageAnalytics,
    StoragePressure,
    TopNode,
    VersionDistribution,
    dump,
)
from .discovery import DiscoveryService
from .formulas import (
    HIGH_PRESSURE_UTILIZATION,
    calculate_health_score,
    calculate_network_health,
    calculate_uptime_24h,
    calculate_utilization,
    consensus_version,
    count_versions,
    get_node_tier,
    mean,
    percentage,
)
from .normalizer import is_online, to_unix_seconds

logger = logging.getLogger(__name__)

NODE_METRICS_CACHE_KEY = "computed_node_metrics"
DEBUG_SAMPLE_SIZE = 3
BYTES_PER_TB = 1024 ** 4


def compute_node_metrics(pods: Sequence[Pod], nodes: Sequence[Node], debug: bool = False) -> List[NodeMetrics]:
    """Derive NodeMetrics for every raw record that has a matching node.

    One entry per pubkey; the first raw record wins.
    """
    by_pubkey = {}
    for node in nodes:
        by_pubkey.setdefault(node.pubkey, node)

    metrics: List[NodeMetrics] = []
    seen = set()
    for pod in pods:
        if not pod.pubkey or pod.pubkey in seen:
            continue
        node = by_pubkey.get(pod.pubkey)
        if node is None:
            continue
        seen.add(pod.pubkey)

        uptime_seconds = float(pod.uptime or 0)
        uptime_24h = calculate_uptime_24h(uptime_seconds)
        storage_committed = pod.storage_committed or 0
        storage_used = pod.storage_used or 0
        storage_utilization = percentage(storage_used, storage_committed)
        health_score = calculate_health_score(uptime_24h, storage_utilization, node.is_online)

        metric = NodeMetrics(
            pubkey=pod.pubkey,
            health_score=health_score,
            uptime_24h=uptime_24h,
            storage_utilization=storage_utilization,
            tier=get_node_tier(health_score),
        )
        metrics.append(metric)

        if debug and len(metrics) <= DEBUG_SAMPLE_SIZE:
            logger.info(
                "[ANALYTICS] CALC pubkey=%s... uptime_s=%s used=%s committed=%s online=%s "
                "-> uptime24h=%.2f util=%.2f health=%.2f tier=%s",
                pod.pubkey[:16], uptime_seconds, storage_used, storage_committed,
                node.is_online, uptime_24h, storage_utilization, health_score, metric.tier.value,
            )

    return metrics


def build_summary(nodes: Sequence[Node], pods: Sequence[Pod], now: int, threshold_seconds: int) -> AnalyticsSummary:
    total = len(nodes)
    online_nodes = [n for n in nodes if n.is_online]
    online_percentage = percentage(len(online_nodes), total)

    active_pods = sum(
        1 for p in pods
        if is_online(to_unix_seconds(p.last_seen_timestamp), now, threshold_seconds)
    )
    total_storage_used = sum(n.storage_used or 0 for n in nodes)
    total_storage_capacity = sum(
        p.storage_committed for p in pods if p.storage_committed and p.storage_committed > 0
    )

    return AnalyticsSummary(
        total_pnodes=total,
        online_pnodes=len(online_nodes),
        online_percentage=online_percentage,
        total_pods=len(pods),
        active_pods=active_pods,
        average_uptime=mean([n.uptime for n in online_nodes if n.uptime > 0]),
        total_storage_used=total_storage_used,
        total_storage_capacity=total_storage_capacity,
        total_storage_used_tb=total_storage_used / BYTES_PER_TB,
        total_storage_capacity_tb=total_storage_capacity / BYTES_PER_TB,
        network_health=calculate_network_health(online_percentage),
        consensus_version=consensus_version(n.version for n in nodes),
    )


class AnalyticsService:
    """Métricas derivadas, siempre recalculables desde nodos + pods crudos."""

    def __init__(
        self,
        discovery: DiscoveryService,
        analytics_cache: FallbackCache,
        settings: Settings,
        clock: Callable[[], float] = time.time,
    ):
        self._discovery = discovery
        self._cache = analytics_cache
        self._settings = settings
        self._clock = clock

    async def get_node_metrics(self) -> List[NodeMetrics]:
        cached = await self._cache.get(NODE_METRICS_CACHE_KEY)
        if isinstance(cached, list):
            metrics = self._load_metrics(cached)
            if metrics is not None:
                return metrics

        pods, nodes = await asyncio.gather(
            self._discovery.get_raw_pods(),
            self._discovery.get_all_nodes(),
        )
        metrics = compute_node_metrics(pods, nodes, debug=self._settings.debug_calculations)
        await self._cache.set(
            NODE_METRICS_CACHE_KEY,
            [dump(m) for m in metrics],
            self._settings.node_metrics_cache_ttl_seconds,
        )
        return metrics

    async def get_summary(self) -> AnalyticsSummary:
        nodes = await self._discovery.get_all_nodes()
        pods = await self._discovery.get_raw_pods()
        summary = build_summary(
            nodes, pods, int(self._clock()), self._settings.online_threshold_seconds,
        )
        logger.info(
            "[ANALYTICS] Pod counts total=%d active=%d nodes=%d online=%d",
            summary.total_pods, summary.active_pods, summary.total_pnodes, summary.online_pnodes,
        )
        return summary

    async def get_extended_summary(self) -> ExtendedSummary:
        metrics = await self.get_node_metrics()
        nodes = await self._discovery.get_all_nodes()

        if not metrics:
            return ExtendedSummary()

        online = sum(1 for n in nodes if n.is_online)
        online_percentage = percentage(online, len(nodes))
        high_pressure = sum(1 for m in metrics if m.storage_utilization > HIGH_PRESSURE_UTILIZATION)

        return ExtendedSummary(
            total_pnodes=len(metrics),
            online_percentage=online_percentage,
            average_uptime_24h=mean([m.uptime_24h for m in metrics]),
            average_health_score=mean([m.health_score for m in metrics]),
            storage_pressure_percent=percentage(high_pressure, len(metrics)),
            network_health=calculate_network_health(online_percentage),
        )

    async def get_top_nodes(self, n: int = 10) -> List[TopNode]:
        metrics = await self.get_node_metrics()
        ranked = sorted(metrics, key=lambda m: m.health_score, reverse=True)
        return [
            TopNode(pubkey=m.pubkey, health_score=m.health_score, uptime_24h=m.uptime_24h)
            for m in ranked[:max(0, n)]
        ]

    async def get_storage_pressure(self) -> StoragePressure:
        metrics = await self.get_node_metrics()
        high_pressure = sum(1 for m in metrics if m.storage_utilization > HIGH_PRESSURE_UTILIZATION)
        return StoragePressure(
            high_pressure_nodes=high_pressure,
            total_nodes=len(metrics),
            percent=percentage(high_pressure, len(metrics)),
        )

    async def get_version_distribution(self) -> List[VersionDistribution]:
        nodes = await self._discovery.get_all_nodes()
        counts = count_versions(n.version for n in nodes)
        counts.sort(key=lambda item: item[1], reverse=True)
        return [VersionDistribution(version=v, count=c) for v, c in counts]

    async def get_storage_analytics(self) -> List[StorageAnalytics]:
        nodes = await self._discovery.get_all_nodes()
        return [
            StorageAnalytics(
                pubkey=n.pubkey,
                storage_used=n.storage_used,
                storage_total=n.storage_total,
                utilization_percent=calculate_utilization(n.storage_used, n.storage_total),
            )
            for n in nodes
        ]

    def _load_metrics(self, cached: list) -> Optional[List[NodeMetrics]]:
        try:
            return [NodeMetrics.model_validate(entry) for entry in cached]
        except Exception as e:
            logger.warning("[ANALYTICS] Cached node metrics invalid, recomputing: %s", e)
            return None
