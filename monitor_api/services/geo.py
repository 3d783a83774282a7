"""Resolución IP → ubicación con cache de 24h.

Private and reserved addresses never reach the external API; they get
a fixed placeholder location instead.
"""

from __future__ import annotations

import asyncio
import ipaddress
import logging
import re
from typing import Dict, Iterable, List, Optional

import httpx

from common.config import Settings

from ..core.cache import FallbackCache
from ..geo import MAX_BATCH_SIZE, GeoLocator
from ..schemas import GeoLocation, dump

logger = logging.getLogger(__name__)

GEO_CACHE_KEY_PREFIX = "geo:"
BATCH_DELAY_SECONDS = 0.1

_IPV4_RE = re.compile(r"^(\d{1,3}\.){3}\d{1,3}$")

PRIVATE_NETWORKS = tuple(
    ipaddress.ip_network(cidr)
    for cidr in (
        "0.0.0.0/8",        # "this" network
        "10.0.0.0/8",       # RFC1918
        "127.0.0.0/8",      # loopback
        "169.254.0.0/16",   # link-local
        "172.16.0.0/12",    # RFC1918
        "192.168.0.0/16",   # RFC1918
    )
)

PRIVATE_IP_GEO = GeoLocation(
    lat=48.8566,
    lng=2.3522,
    country="France",
    country_code="FR",
    region="Île-de-France",
    city="Paris",
)


def extract_ip(address: Optional[str]) -> Optional[str]:
    """Bare IPv4 from ``ip`` or ``ip:port``; None if it does not look like one."""
    if not address:
        return None
    ip = address.split(":")[0].strip()
    if not _IPV4_RE.match(ip):
        return None
    return ip


def is_private_ip(ip: str) -> bool:
    try:
        addr = ipaddress.IPv4Address(ip)
    except ValueError:
        return True
    return any(addr in net for net in PRIVATE_NETWORKS)


def _chunks(items: List[str], size: int) -> Iterable[List[str]]:
    for start in range(0, len(items), size):
        yield items[start:start + size]


class GeoService:
    """Resolución cacheada sobre el GeoLocator."""

    def __init__(self, locator: GeoLocator, geo_cache: FallbackCache, settings: Settings):
        self._locator = locator
        self._cache = geo_cache
        self._settings = settings

    async def _get_cached(self, ip: str) -> Optional[GeoLocation]:
        cached = await self._cache.get(f"{GEO_CACHE_KEY_PREFIX}{ip}")
        if not isinstance(cached, dict):
            return None
        try:
            return GeoLocation.model_validate(cached)
        except Exception:
            return None

    async def _store(self, ip: str, geo: GeoLocation) -> None:
        await self._cache.set(f"{GEO_CACHE_KEY_PREFIX}{ip}", dump(geo), self._settings.geo_cache_ttl_seconds)

    async def resolve_ip(self, ip: str) -> Optional[GeoLocation]:
        if is_private_ip(ip):
            return PRIVATE_IP_GEO

        cached = await self._get_cached(ip)
        if cached is not None:
            return cached

        try:
            geo = await self._locator.lookup(ip)
        except Exception as e:
            logger.debug("[GEO] Lookup failed ip=%s: %s", ip, e)
            return None

        if geo is not None:
            await self._store(ip, geo)
        return geo

    async def resolve_node_geo(self, address: Optional[str]) -> Optional[GeoLocation]:
        ip = extract_ip(address)
        if ip is None:
            return None
        return await self.resolve_ip(ip)

    async def batch_resolve(self, addresses: Iterable[Optional[str]]) -> Dict[str, GeoLocation]:
        """Map of bare IP → location for every address that resolved."""
        results: Dict[str, GeoLocation] = {}
        public_ips: List[str] = []
        seen = set()
        for address in addresses:
            ip = extract_ip(address)
            if ip is None or ip in results or ip in seen:
                continue
            seen.add(ip)
            if is_private_ip(ip):
                results[ip] = PRIVATE_IP_GEO
            else:
                public_ips.append(ip)

        uncached: List[str] = []
        for ip in public_ips:
            cached = await self._get_cached(ip)
            if cached is not None:
                results[ip] = cached
            else:
                uncached.append(ip)

        if not uncached:
            return results

        size = max(1, min(self._settings.geo_batch_size, MAX_BATCH_SIZE))
        batches = list(_chunks(uncached, size))
        for index, batch in enumerate(batches):
            try:
                resolved = await self._locator.lookup_batch(batch)
            except httpx.TimeoutException:
                logger.warning("[GEO] Batch lookup timed out size=%d", len(batch))
                resolved = {}
            except Exception as e:
                logger.error("[GEO] Batch lookup error size=%d: %s", len(batch), e)
                resolved = {}

            for ip, geo in resolved.items():
                results[ip] = geo
                await self._store(ip, geo)

            if index + 1 < len(batches):
                await asyncio.sleep(BATCH_DELAY_SECONDS)

        logger.debug("[GEO] Resolved %d IPs (%d looked up via API)", len(results), len(uncached))
        return results
