"""Cliente de geolocalización IP (ip-api.com, sin API key).

Single lookups hit ``/json/<ip>``; bulk lookups POST up to 100 IPs to
``/batch``. Entries reported with ``status == "fail"`` or without
coordinates are left out of the result.
"""

from __future__ import annotations

import logging
from typing import Dict, List, Optional

import httpx

from ..schemas import GeoLocation

logger = logging.getLogger(__name__)

LOOKUP_FIELDS = "status,message,country,countryCode,regionName,city,lat,lon"
BATCH_FIELDS = "status,message,query,country,countryCode,regionName,city,lat,lon"
MAX_BATCH_SIZE = 100


def parse_geo(item: dict) -> Optional[GeoLocation]:
    """GeoLocation from one ip-api entry, or None if it did not resolve."""
    if not isinstance(item, dict) or item.get("status") == "fail":
        return None
    lat, lon, country = item.get("lat"), item.get("lon"), item.get("country")
    if not lat or not lon or not country:
        return None
    try:
        return GeoLocation(
            lat=float(lat),
            lng=float(lon),
            country=country,
            country_code=item.get("countryCode") or "XX",
            region=item.get("regionName") or "Unknown",
            city=item.get("city") or None,
        )
    except (TypeError, ValueError):
        return None


class GeoLocator:
    """Wrapper del API externo de geolocalización."""

    def __init__(
        self,
        base_url: str = "http://ip-api.com",
        timeout: float = 5.0,
        batch_timeout: float = 10.0,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self._base_url = base_url.rstrip("/")
        self._timeout = timeout
        self._batch_timeout = batch_timeout
        self._transport = transport

    async def lookup(self, ip: str) -> Optional[GeoLocation]:
        url = f"{self._base_url}/json/{ip}"
        async with httpx.AsyncClient(timeout=self._timeout, transport=self._transport) as client:
            resp = await client.get(url, params={"fields": LOOKUP_FIELDS}, headers={"Accept": "application/json"})
            if resp.status_code != 200:
                logger.debug("[GEO] Lookup ip=%s HTTP %d", ip, resp.status_code)
                return None
            return parse_geo(resp.json())

    async def lookup_batch(self, ips: List[str]) -> Dict[str, GeoLocation]:
        """Resolve up to 100 IPs in one call; unresolved IPs are absent."""
        if not ips:
            return {}
        if len(ips) > MAX_BATCH_SIZE:
            raise ValueError(f"batch too large: {len(ips)} > {MAX_BATCH_SIZE}")

        url = f"{self._base_url}/batch"
        async with httpx.AsyncClient(timeout=self._batch_timeout, transport=self._transport) as client:
            resp = await client.post(url, params={"fields": BATCH_FIELDS}, json=ips)
            resp.raise_for_status()
            data = resp.json()

        results: Dict[str, GeoLocation] = {}
        for item in data if isinstance(data, list) else []:
            geo = parse_geo(item)
            ip = item.get("query") if isinstance(item, dict) else None
            if geo is not None and ip:
                results[ip] = geo
        return results
