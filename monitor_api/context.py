"""Contexto de servicios construido una vez al arrancar el proceso.

Every collaborator (Redis connection, caches, pRPC client factory, geo
locator, services and the enrichment job) hangs off one ServiceContext
that is passed explicitly, so tests can build one with fakes.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Optional

from common.config import Settings

from .core.cache import FallbackCache, LocalCache, RemoteCache
from .core.redis import RedisConnection
from .geo import GeoLocator
from .gossip import PrpcClientFactory
from .jobs import EnrichmentConfig, StatsEnrichmentJob
from .services import AnalyticsService, DiscoveryService, GeoService, MapService, NodeStatsService

logger = logging.getLogger(__name__)

NAMESPACES = ("nodes", "stats", "analytics", "geo")


@dataclass
class Caches:
    nodes: FallbackCache
    stats: FallbackCache
    analytics: FallbackCache
    geo: FallbackCache

    def all(self):
        return (self.nodes, self.stats, self.analytics, self.geo)


@dataclass
class ServiceContext:
    settings: Settings
    redis: RedisConnection
    caches: Caches
    discovery: DiscoveryService
    node_stats: NodeStatsService
    analytics: AnalyticsService
    geo: GeoService
    map: MapService
    enrichment_job: StatsEnrichmentJob

    async def startup(self, start_jobs: Optional[bool] = None) -> None:
        await self.redis.connect()
        if start_jobs is None:
            start_jobs = self.settings.enrichment_enabled
        if start_jobs:
            self.enrichment_job.start()
        logger.info("Background services initialized (redis=%s)", self.redis.state.value)

    async def shutdown(self) -> None:
        await self.enrichment_job.stop()
        await self.redis.close()


def build_caches(settings: Settings, redis_conn: RedisConnection) -> Caches:
    remote = RemoteCache(redis_conn) if settings.redis_enabled else None
    local = LocalCache()
    caches = {
        name: FallbackCache(remote, local, namespace=name, key_prefix=f"{settings.redis_key_prefix}{name}:")
        for name in NAMESPACES
    }
    return Caches(**caches)


def build_context(
    settings: Settings,
    client_factory: Optional[PrpcClientFactory] = None,
    geo_locator: Optional[GeoLocator] = None,
    redis_conn: Optional[RedisConnection] = None,
    enrichment_config: Optional[EnrichmentConfig] = None,
) -> ServiceContext:
    redis_conn = redis_conn or RedisConnection(settings.redis_url, enabled=settings.redis_enabled)
    caches = build_caches(settings, redis_conn)
    factory = client_factory or PrpcClientFactory(
        port=settings.prpc_port, default_timeout=settings.prpc_timeout_seconds,
    )
    locator = geo_locator or GeoLocator(
        base_url=settings.geo_api_url,
        timeout=settings.geo_lookup_timeout_seconds,
        batch_timeout=settings.geo_batch_timeout_seconds,
    )

    discovery = DiscoveryService(factory, caches.nodes, caches.stats, caches.analytics, settings)
    node_stats = NodeStatsService(discovery, factory, caches.stats, settings)
    analytics = AnalyticsService(discovery, caches.analytics, settings)
    geo = GeoService(locator, caches.geo, settings)
    map_service = MapService(discovery, analytics, geo)
    job = StatsEnrichmentJob(
        discovery, node_stats, caches.stats,
        enrichment_config or EnrichmentConfig.from_settings(settings),
    )

    return ServiceContext(
        settings=settings,
        redis=redis_conn,
        caches=caches,
        discovery=discovery,
        node_stats=node_stats,
        analytics=analytics,
        geo=geo,
        map=map_service,
        enrichment_job=job,
    )
