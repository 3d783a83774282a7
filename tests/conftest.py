"""Fixtures compartidos: fakes del cliente pRPC, del geolocalizador y caches."""

from __future__ import annotations

from typing import Any, Callable, Dict, List, Optional

import pytest

from common.config import Settings
from monitor_api.core.cache import CacheBackend, FallbackCache, LocalCache, RemoteCacheError
from monitor_api.gossip import PrpcConnectionError
from monitor_api.schemas import GeoLocation, NodeStats, PodsResponse

NOW = 1_700_000_000

PRIMARY = "10.1.0.1"
SEED_B = "10.1.0.2"
SEED_C = "10.1.0.3"


def make_pod(pubkey: str, address: str = "1.2.3.4:9001", **fields: Any) -> dict:
    pod = {
        "pubkey": pubkey,
        "address": address,
        "version": "0.8.0",
        "last_seen_timestamp": NOW - 10,
        "uptime": 43200,
        "storage_used": 500_000_000_000,
        "storage_committed": 1_000_000_000_000,
    }
    pod.update(fields)
    return pod


# =============================================================================
# FAKES
# =============================================================================

class FakePrpcClient:
    """Responde según un dict method → resultado (lista de pods, NodeStats o excepción)."""

    def __init__(self, ip: str, responses: Dict[str, Any], calls: List[tuple]):
        self.ip = ip
        self._responses = responses
        self._calls = calls

    async def _answer(self, method: str) -> Any:
        self._calls.append((self.ip, method))
        result = self._responses.get(method)
        if result is None:
            raise PrpcConnectionError(f"{method} unreachable: Connection refused", self.ip, method)
        if isinstance(result, BaseException):
            raise result
        return result

    async def get_pods(self) -> PodsResponse:
        return PodsResponse(pods=await self._answer("get-pods"))

    async def get_pods_with_stats(self) -> PodsResponse:
        return PodsResponse(pods=await self._answer("get-pods-with-stats"))

    async def get_stats(self) -> NodeStats:
        return await self._answer("get-stats")


class FakeClientFactory:
    def __init__(self, responses: Optional[Dict[str, Dict[str, Any]]] = None):
        self.responses: Dict[str, Dict[str, Any]] = responses or {}
        self.calls: List[tuple] = []

    def create(self, ip: str, timeout: Optional[float] = None) -> FakePrpcClient:
        return FakePrpcClient(ip, self.responses.setdefault(ip, {}), self.calls)


class FakeGeoLocator:
    def __init__(self, known: Optional[Dict[str, GeoLocation]] = None, error: Optional[Exception] = None):
        self.known = known or {}
        self.error = error
        self.batches: List[List[str]] = []

    async def lookup(self, ip: str) -> Optional[GeoLocation]:
        if self.error is not None:
            raise self.error
        return self.known.get(ip)

    async def lookup_batch(self, ips: List[str]) -> Dict[str, GeoLocation]:
        self.batches.append(list(ips))
        if self.error is not None:
            raise self.error
        return {ip: self.known[ip] for ip in ips if ip in self.known}


class FailingRemote(CacheBackend):
    """Tier remoto que falla en cada operación."""

    name = "remote"

    def __init__(self):
        self.attempts = 0

    async def get(self, key: str) -> Optional[str]:
        self.attempts += 1
        raise RemoteCacheError("get", key, ConnectionError("Connection refused"))

    async def set(self, key: str, value: str, ttl_seconds: float) -> None:
        self.attempts += 1
        raise RemoteCacheError("set", key, ConnectionError("Connection refused"))

    async def delete(self, key: str) -> None:
        self.attempts += 1
        raise RemoteCacheError("delete", key, ConnectionError("Connection refused"))


class FakeClock:
    def __init__(self, now: float = 0.0):
        self.now = now

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


# =============================================================================
# FIXTURES
# =============================================================================

@pytest.fixture
def settings() -> Settings:
    """Settings de test: sin Redis, tres seeds privadas, job apagado."""
    return Settings(
        redis_enabled=False,
        seed_ips=(PRIMARY, SEED_B, SEED_C),
        enrichment_enabled=False,
        enrichment_batch_delay_seconds=0.0,
    )


@pytest.fixture
def make_cache() -> Callable[..., FallbackCache]:
    def _make(namespace: str = "test", remote: Optional[CacheBackend] = None, clock=None) -> FallbackCache:
        local = LocalCache(clock=clock) if clock is not None else LocalCache()
        return FallbackCache(remote, local, namespace=namespace, key_prefix=f"xandeum:{namespace}:")
    return _make


@pytest.fixture
def factory() -> FakeClientFactory:
    return FakeClientFactory()


@pytest.fixture
def clock() -> Callable[[], float]:
    return lambda: float(NOW)
