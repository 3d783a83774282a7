"""Cliente pRPC (JSON-RPC 2.0 sobre HTTP) para los nodos de la red.

Every node exposes the same endpoint, so the same client reaches the
gossip roster through a seed and runtime stats through a node's own IP.
"""

from __future__ import annotations

import asyncio
import itertools
import logging
from typing import Any, Optional

import httpx
from pydantic import ValidationError

from ..schemas import NodeStats, PodsResponse
from .errors import PrpcConnectionError, PrpcResponseError, PrpcTimeoutError

logger = logging.getLogger(__name__)

DEFAULT_PORT = 6000
DEFAULT_TIMEOUT_SECONDS = 10.0

METHOD_GET_PODS = "get-pods"
METHOD_GET_PODS_WITH_STATS = "get-pods-with-stats"
METHOD_GET_STATS = "get-stats"

_request_ids = itertools.count(1)


class PrpcClient:
    """Cliente para un único nodo.

    Uso:
        client = PrpcClient("173.212.220.65", timeout=10.0)
        response = await client.get_pods_with_stats()
        for raw in response.pods:
            ...
    """

    def __init__(
        self,
        ip: str,
        port: int = DEFAULT_PORT,
        timeout: float = DEFAULT_TIMEOUT_SECONDS,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self.ip = ip
        self.port = port
        self.timeout = timeout
        self._transport = transport

    @property
    def url(self) -> str:
        return f"http://{self.ip}:{self.port}/rpc"

    async def get_pods(self) -> PodsResponse:
        return self._parse_pods(await self._call(METHOD_GET_PODS), METHOD_GET_PODS)

    async def get_pods_with_stats(self) -> PodsResponse:
        result = await self._call(METHOD_GET_PODS_WITH_STATS)
        return self._parse_pods(result, METHOD_GET_PODS_WITH_STATS)

    async def get_stats(self) -> NodeStats:
        result = await self._call(METHOD_GET_STATS)
        if not isinstance(result, dict):
            raise PrpcResponseError("get-stats returned no object", self.ip, METHOD_GET_STATS)
        try:
            return NodeStats.model_validate(result)
        except ValidationError as e:
            raise PrpcResponseError(f"invalid stats payload: {e}", self.ip, METHOD_GET_STATS) from e

    def _parse_pods(self, result: Any, method: str) -> PodsResponse:
        if not isinstance(result, dict):
            raise PrpcResponseError(f"{method} returned no object", self.ip, method)
        pods = result.get("pods") or []
        if not isinstance(pods, list):
            raise PrpcResponseError(f"{method} returned invalid pods", self.ip, method)
        # Records are validated one by one downstream so a bad one stays isolated.
        return PodsResponse(
            pods=[p for p in pods if isinstance(p, dict)],
            total_count=result.get("total_count"),
        )

    async def _call(self, method: str) -> Any:
        payload = {"jsonrpc": "2.0", "method": method, "id": next(_request_ids)}
        logger.debug("[PRPC] %s -> %s", method, self.url)
        try:
            return await asyncio.wait_for(self._post(payload), timeout=self.timeout)
        except asyncio.TimeoutError as e:
            raise PrpcTimeoutError(f"{method} timed out after {self.timeout}s", self.ip, method) from e
        except httpx.TimeoutException as e:
            raise PrpcTimeoutError(f"{method} timed out: {e}", self.ip, method) from e
        except httpx.NetworkError as e:
            raise PrpcConnectionError(f"{method} unreachable: {e}", self.ip, method) from e
        except httpx.HTTPStatusError as e:
            raise PrpcResponseError(
                f"{method} HTTP {e.response.status_code}", self.ip, method,
            ) from e
        except ValueError as e:
            raise PrpcResponseError(f"{method} invalid JSON: {e}", self.ip, method) from e

    async def _post(self, payload: dict) -> Any:
        async with httpx.AsyncClient(timeout=self.timeout, transport=self._transport) as client:
            resp = await client.post(self.url, json=payload)
            resp.raise_for_status()
            body = resp.json()

        if not isinstance(body, dict):
            raise PrpcResponseError("response is not a JSON object", self.ip, payload["method"])
        if body.get("error"):
            error = body["error"]
            message = error.get("message") if isinstance(error, dict) else str(error)
            raise PrpcResponseError(f"rpc error: {message}", self.ip, payload["method"])
        return body.get("result")


class PrpcClientFactory:
    """Construye clientes contra una IP arbitraria.

    Services never instantiate PrpcClient directly, so tests can swap the
    factory for one returning fakes.
    """

    def __init__(
        self,
        port: int = DEFAULT_PORT,
        default_timeout: float = DEFAULT_TIMEOUT_SECONDS,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self._port = port
        self._default_timeout = default_timeout
        self._transport = transport

    def create(self, ip: str, timeout: Optional[float] = None) -> PrpcClient:
        return PrpcClient(
            ip, port=self._port, timeout=timeout or self._default_timeout, transport=self._transport,
        )

