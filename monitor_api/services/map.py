"""Datos para el mapa: nodos + métricas + geolocalización.

Nodes whose IP does not resolve are left out; nothing is emitted with
empty coordinates.
"""

from __future__ import annotations

import asyncio
import logging
from typing import Dict, List

from ..schemas import (
    CountryChoropleth,
    CountryCount,
    CountryStats,
    GeoSummary,
    MapNode,
    NodeStatus,
    RegionCount,
)
from .analytics import AnalyticsService
from .discovery import DiscoveryService
from .formulas import mean
from .geo import GeoService, extract_ip

logger = logging.getLogger(__name__)


def _ranked_counts(values: List[str]) -> List[tuple]:
    counts: Dict[str, int] = {}
    for value in values:
        counts[value] = counts.get(value, 0) + 1
    return sorted(counts.items(), key=lambda item: item[1], reverse=True)


def build_country_stats(map_nodes: List[MapNode]) -> List[CountryStats]:
    """Per-country aggregates, largest node count first."""
    groups: Dict[str, List[MapNode]] = {}
    for node in map_nodes:
        groups.setdefault(node.country_code, []).append(node)

    countries = []
    for code, nodes in groups.items():
        online = sum(1 for n in nodes if n.status == NodeStatus.ONLINE)
        countries.append(
            CountryStats(
                country_code=code,
                country=nodes[0].country,
                node_count=len(nodes),
                online_count=online,
                offline_count=len(nodes) - online,
                avg_health_score=mean([n.health_score for n in nodes], decimals=1),
                avg_uptime_24h=mean([n.uptime_24h for n in nodes], decimals=1),
                avg_storage_utilization=mean([n.storage_utilization for n in nodes], decimals=1),
            )
        )
    countries.sort(key=lambda c: c.node_count, reverse=True)
    return countries


class MapService:
    """Vista geográfica sobre la lista deduplicada de nodos."""

    def __init__(self, discovery: DiscoveryService, analytics: AnalyticsService, geo: GeoService):
        self._discovery = discovery
        self._analytics = analytics
        self._geo = geo

    async def get_map_nodes(self) -> List[MapNode]:
        nodes, metrics = await asyncio.gather(
            self._discovery.get_all_nodes(),
            self._analytics.get_node_metrics(),
        )
        metrics_by_pubkey = {m.pubkey: m for m in metrics}
        geo_by_ip = await self._geo.batch_resolve(n.host for n in nodes)

        map_nodes: List[MapNode] = []
        for node in nodes:
            ip = extract_ip(node.host)
            geo = geo_by_ip.get(ip) if ip else None
            if geo is None:
                continue
            node_metrics = metrics_by_pubkey.get(node.pubkey)
            map_nodes.append(
                MapNode(
                    pubkey=node.pubkey,
                    lat=geo.lat,
                    lng=geo.lng,
                    country=geo.country,
                    country_code=geo.country_code,
                    region=geo.region,
                    status=node.status,
                    health_score=node_metrics.health_score if node_metrics else 0.0,
                    uptime_24h=node_metrics.uptime_24h if node_metrics else 0.0,
                    storage_utilization=node_metrics.storage_utilization if node_metrics else 0.0,
                    version=node.version,
                    last_seen=node.last_seen,
                )
            )

        logger.info("[MAP] Geo lookup: %d/%d nodes mapped", len(map_nodes), len(nodes))
        return map_nodes

    async def get_geo_summary(self) -> GeoSummary:
        map_nodes = await self.get_map_nodes()
        return GeoSummary(
            countries=[CountryCount(country=c, count=n) for c, n in _ranked_counts([m.country for m in map_nodes])],
            regions=[RegionCount(region=r, count=n) for r, n in _ranked_counts([m.region for m in map_nodes])],
        )

    async def get_country_choropleth(self) -> CountryChoropleth:
        map_nodes = await self.get_map_nodes()
        countries = build_country_stats(map_nodes)
        return CountryChoropleth(
            countries=countries,
            total_nodes=len(map_nodes),
            total_countries=len(countries),
        )
