"""Tests de la API HTTP (FastAPI TestClient sobre un contexto con fakes)."""

import time
from unittest.mock import AsyncMock

import pytest
from fastapi.testclient import TestClient

from monitor_api.context import build_context
from monitor_api.main import create_app
from monitor_api.schemas import NodeStats

from conftest import PRIMARY, FakeClientFactory, FakeGeoLocator, make_pod


@pytest.fixture
def factory():
    # Online status is judged against wall-clock time here.
    now = int(time.time())
    return FakeClientFactory({
        PRIMARY: {
            "get-pods-with-stats": [
                make_pod("abc", address="8.8.8.8:9001", last_seen_timestamp=now - 10),
                make_pod("off", address="9.9.9.9:9001", last_seen_timestamp=now - 3600),
            ],
        },
        "8.8.8.8": {"get-stats": NodeStats(ram_used=512, ram_total=1024, cpu_percent=3.5)},
    })


@pytest.fixture
def ctx(settings, factory):
    return build_context(settings, client_factory=factory, geo_locator=FakeGeoLocator())


@pytest.fixture
def client(ctx):
    with TestClient(create_app(context=ctx, start_jobs=False)) as c:
        yield c


# =============================================================================
# HEALTH
# =============================================================================

class TestHealth:

    def test_liveness(self, client):
        assert client.get("/health").json() == {"status": "ok"}

    def test_ready_reports_redis_state(self, client):
        body = client.get("/ready").json()

        assert body["status"] == "ready"
        assert body["redis"] == "disabled"
        assert body["enrichment_scheduled"] is False

    def test_cache_health_lists_namespaces(self, client):
        client.get("/pnodes")
        body = client.get("/health/cache").json()

        assert set(body["caches"]) == {"nodes", "stats", "analytics", "geo"}
        assert body["caches"]["nodes"]["writes"] >= 1
        assert body["enrichment"]["state"] == "idle"

    def test_prometheus_exposition(self, client):
        client.get("/pnodes")
        resp = client.get("/metrics")

        assert resp.status_code == 200
        assert "pnode_cache_operations_total" in resp.text


# =============================================================================
# PNODES
# =============================================================================

class TestPNodes:

    def test_list_is_camel_case(self, client):
        nodes = client.get("/pnodes").json()

        assert [n["pubkey"] for n in nodes] == ["abc", "off"]
        assert nodes[0]["status"] == "online"
        assert nodes[0]["storageTotal"] == 1_000_000_000_000
        assert "ramUsed" not in nodes[0]

    def test_unknown_pubkey_is_404(self, client):
        assert client.get("/pnodes/nope").status_code == 404

    def test_single_node(self, client):
        assert client.get("/pnodes/abc").json()["pubkey"] == "abc"

    def test_stats_for_online_node(self, client):
        body = client.get("/pnodes/abc/stats").json()

        assert body["ram_used"] == 512
        assert body["timestamp"].endswith("Z")

    def test_stats_for_offline_node_is_404(self, client):
        assert client.get("/pnodes/off/stats").status_code == 404

    def test_stats_feed_ram_into_node_list(self, client):
        client.get("/pnodes/abc/stats")
        nodes = {n["pubkey"]: n for n in client.get("/pnodes").json()}

        assert nodes["abc"]["ramUsed"] == 512
        assert nodes["abc"]["ramTotal"] == 1024

    def test_refresh(self, client, factory):
        client.get("/pnodes")
        factory.responses[PRIMARY]["get-pods-with-stats"].append(
            make_pod("new", address="7.7.7.7:9001", last_seen_timestamp=int(time.time())),
        )

        nodes = client.post("/pnodes/refresh").json()

        assert [n["pubkey"] for n in nodes] == ["abc", "off", "new"]

    def test_map_never_fails(self, client, ctx):
        ctx.map.get_map_nodes = AsyncMock(side_effect=RuntimeError("geo exploded"))

        resp = client.get("/pnodes/map")

        assert resp.status_code == 200
        assert resp.json() == []


# =============================================================================
# ANALYTICS
# =============================================================================

class TestAnalytics:

    def test_summary(self, client):
        body = client.get("/analytics/summary").json()

        assert body["totalPNodes"] == 2
        assert body["onlinePNodes"] == 1
        assert body["onlinePercentage"] == 50.0
        assert body["networkHealth"] == "unstable"

    def test_top_nodes_limit(self, client):
        top = client.get("/analytics/top-nodes", params={"limit": 1}).json()

        assert len(top) == 1
        assert top[0]["pubkey"] == "abc"
        assert top[0]["healthScore"] == 60.0

    def test_node_metrics_shape(self, client):
        [first, _] = client.get("/analytics/node-metrics").json()

        assert set(first) == {"pubkey", "healthScore", "uptime24h", "storageUtilization", "tier"}

    def test_empty_network_is_zeroed(self, settings):
        ctx = build_context(settings, client_factory=FakeClientFactory(), geo_locator=FakeGeoLocator())
        with TestClient(create_app(context=ctx, start_jobs=False)) as c:
            body = c.get("/analytics/extended-summary").json()
            assert c.get("/pnodes").json() == []
            assert c.get("/pnodes/map").json() == []

        assert body["totalPNodes"] == 0
        assert body["networkHealth"] == "unstable"

    def test_unexpected_error_is_500(self, client, ctx):
        ctx.analytics.get_storage_pressure = AsyncMock(side_effect=RuntimeError("boom"))

        resp = client.get("/analytics/storage-pressure")

        assert resp.status_code == 500
        assert resp.json()["detail"] == "Failed to compute storage pressure"
