"""Tests de geolocalización y vistas de mapa."""

from dataclasses import replace

import httpx
import pytest

from monitor_api.geo import GeoLocator, parse_geo
from monitor_api.schemas import GeoLocation, MapNode, NodeStatus
from monitor_api.services.analytics import AnalyticsService
from monitor_api.services.discovery import DiscoveryService
from monitor_api.services.geo import PRIVATE_IP_GEO, GeoService, extract_ip, is_private_ip
from monitor_api.services.map import MapService, build_country_stats

from conftest import NOW, PRIMARY, FakeGeoLocator, make_pod

US = GeoLocation(lat=37.75, lng=-97.82, country="United States", country_code="US", region="Kansas")
DE = GeoLocation(lat=50.11, lng=8.68, country="Germany", country_code="DE", region="Hesse")


class TestIpHelpers:

    def test_extract_ip(self):
        assert extract_ip("1.2.3.4:9001") == "1.2.3.4"
        assert extract_ip("1.2.3.4") == "1.2.3.4"
        assert extract_ip("") is None
        assert extract_ip("node.example.org:9001") is None

    @pytest.mark.parametrize("ip", ["10.0.0.1", "127.0.0.1", "172.20.1.1", "192.168.1.5", "169.254.0.9", "0.1.2.3"])
    def test_private_ranges(self, ip):
        assert is_private_ip(ip) is True

    def test_public_ip(self):
        assert is_private_ip("8.8.8.8") is False
        assert is_private_ip("172.32.0.1") is False


class TestGeoService:

    @pytest.mark.asyncio
    async def test_private_ip_gets_placeholder_without_lookup(self, make_cache, settings):
        locator = FakeGeoLocator()
        geo = GeoService(locator, make_cache("geo"), settings)

        result = await geo.batch_resolve(["192.168.1.5:9001"])

        assert result == {"192.168.1.5": PRIVATE_IP_GEO}
        assert locator.batches == []

    @pytest.mark.asyncio
    async def test_resolved_ips_are_cached(self, make_cache, settings):
        locator = FakeGeoLocator({"8.8.8.8": US})
        geo = GeoService(locator, make_cache("geo"), settings)

        await geo.batch_resolve(["8.8.8.8:9001", "8.8.8.8:9002"])
        result = await geo.batch_resolve(["8.8.8.8:9001"])

        assert result["8.8.8.8"].country_code == "US"
        assert locator.batches == [["8.8.8.8"]]

    @pytest.mark.asyncio
    async def test_batches_respect_configured_size(self, make_cache, settings):
        locator = FakeGeoLocator()
        geo = GeoService(locator, make_cache("geo"), replace(settings, geo_batch_size=2))

        await geo.batch_resolve([f"8.8.8.{i}" for i in range(1, 6)])

        assert [len(b) for b in locator.batches] == [2, 2, 1]

    @pytest.mark.asyncio
    async def test_lookup_failure_yields_no_results(self, make_cache, settings):
        locator = FakeGeoLocator(error=httpx.ReadTimeout("timed out"))
        geo = GeoService(locator, make_cache("geo"), settings)

        assert await geo.batch_resolve(["8.8.8.8"]) == {}
        assert await geo.resolve_ip("8.8.8.8") is None


@pytest.fixture
def map_service(factory, make_cache, settings, clock):
    analytics_cache = make_cache("analytics")
    discovery = DiscoveryService(
        factory, make_cache("nodes"), make_cache("stats"), analytics_cache, settings, clock=clock,
    )
    analytics = AnalyticsService(discovery, analytics_cache, settings, clock=clock)
    locator = FakeGeoLocator({"8.8.8.8": US, "8.8.4.4": US, "9.9.9.9": DE})
    return MapService(discovery, analytics, GeoService(locator, make_cache("geo"), settings))


class TestMapService:

    @pytest.mark.asyncio
    async def test_unresolved_nodes_are_dropped(self, factory, map_service):
        factory.responses[PRIMARY] = {
            "get-pods-with-stats": [
                make_pod("a", address="8.8.8.8:9001"),
                make_pod("b", address="4.4.4.4:9001"),
            ],
        }

        nodes = await map_service.get_map_nodes()

        assert [n.pubkey for n in nodes] == ["a"]
        assert nodes[0].country_code == "US"
        assert nodes[0].health_score == 60.0

    @pytest.mark.asyncio
    async def test_choropleth(self, factory, map_service):
        factory.responses[PRIMARY] = {
            "get-pods-with-stats": [
                make_pod("de", address="9.9.9.9:9001"),
                make_pod("us1", address="8.8.8.8:9001"),
                make_pod("us2", address="8.8.4.4:9001", last_seen_timestamp=NOW - 3600),
            ],
        }

        choropleth = await map_service.get_country_choropleth()

        assert choropleth.total_nodes == 3
        assert choropleth.total_countries == 2
        us, de = choropleth.countries
        assert us.country_code == "US"
        assert us.node_count == 2
        assert us.online_count == 1
        assert us.offline_count == 1
        # (60 + 40) / 2
        assert us.avg_health_score == 50.0
        assert de.node_count == 1

    @pytest.mark.asyncio
    async def test_geo_summary(self, factory, map_service):
        factory.responses[PRIMARY] = {
            "get-pods-with-stats": [
                make_pod("de", address="9.9.9.9:9001"),
                make_pod("us1", address="8.8.8.8:9001"),
                make_pod("us2", address="8.8.4.4:9001"),
            ],
        }

        summary = await map_service.get_geo_summary()

        assert [(c.country, c.count) for c in summary.countries] == [("United States", 2), ("Germany", 1)]
        assert [(r.region, r.count) for r in summary.regions] == [("Kansas", 2), ("Hesse", 1)]


class TestCountryStats:

    def test_averages_rounded_to_one_decimal(self):
        def node(score):
            return MapNode(
                pubkey=str(score), lat=0.0, lng=0.0, country="Germany", country_code="DE",
                region="Hesse", status=NodeStatus.ONLINE, health_score=score,
                version="0.8.0", last_seen="2023-11-14T22:13:20.000Z",
            )

        [stats] = build_country_stats([node(60.0), node(60.0), node(61.0)])

        assert stats.avg_health_score == 60.3


# =============================================================================
# RESPUESTAS DEL API DE GEOLOCALIZACIÓN
# =============================================================================

IP_API_OK = {
    "status": "success", "query": "8.8.8.8", "country": "United States", "countryCode": "US",
    "regionName": "Virginia", "city": "Ashburn", "lat": 39.03, "lon": -77.5,
}


class TestParseGeo:

    def test_success(self):
        geo = parse_geo(IP_API_OK)

        assert geo.lat == 39.03
        assert geo.lng == -77.5
        assert geo.country_code == "US"
        assert geo.region == "Virginia"
        assert geo.city == "Ashburn"

    def test_failed_lookup(self):
        assert parse_geo({"status": "fail", "message": "private range", "query": "10.0.0.1"}) is None

    @pytest.mark.parametrize("missing", ["lat", "lon", "country"])
    def test_missing_required_field(self, missing):
        item = {k: v for k, v in IP_API_OK.items() if k != missing}
        assert parse_geo(item) is None

    def test_optional_fields_defaulted(self):
        geo = parse_geo({"status": "success", "country": "Germany", "lat": 50.1, "lon": 8.7})

        assert geo.country_code == "XX"
        assert geo.region == "Unknown"
        assert geo.city is None

    def test_not_an_object(self):
        assert parse_geo("oops") is None
        assert parse_geo({"status": "success", "country": "X", "lat": "north", "lon": 1}) is None


class TestGeoLocator:

    @pytest.mark.asyncio
    async def test_batch_keeps_resolved_entries(self):
        seen = []

        def handler(request: httpx.Request) -> httpx.Response:
            seen.append(request)
            return httpx.Response(200, json=[IP_API_OK, {"status": "fail", "query": "4.4.4.4"}])

        locator = GeoLocator(base_url="http://geo.test", transport=httpx.MockTransport(handler))
        result = await locator.lookup_batch(["8.8.8.8", "4.4.4.4"])

        assert list(result) == ["8.8.8.8"]
        assert seen[0].method == "POST"
        assert seen[0].url.path == "/batch"

    @pytest.mark.asyncio
    async def test_batch_size_limit(self):
        locator = GeoLocator(transport=httpx.MockTransport(lambda request: httpx.Response(200, json=[])))

        with pytest.raises(ValueError):
            await locator.lookup_batch([f"8.8.{i // 256}.{i % 256}" for i in range(101)])

    @pytest.mark.asyncio
    async def test_single_lookup_http_error_is_none(self):
        locator = GeoLocator(transport=httpx.MockTransport(lambda request: httpx.Response(429)))

        assert await locator.lookup("8.8.8.8") is None
