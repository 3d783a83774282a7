"""Servicios del monitor.

Contiene:
- normalizer: Pod crudo → Node canónico
- formulas: health score, tiers, salud de red
- discovery: descubrimiento vía gossip + dedup
- node_stats: get-stats por nodo
- enrichment: merge de RAM cacheada en la lista de nodos
- analytics: resúmenes y métricas por nodo
- geo / map: geolocalización y vistas de mapa
"""

from .analytics import AnalyticsService
from .discovery import DiscoveryService, dedupe_by_pubkey
from .geo import GeoService
from .map import MapService
from .node_stats import NodeStatsService
from .normalizer import normalize_pod

__all__ = [
    "AnalyticsService",
    "DiscoveryService",
    "dedupe_by_pubkey",
    "GeoService",
    "MapService",
    "NodeStatsService",
    "normalize_pod",
]
