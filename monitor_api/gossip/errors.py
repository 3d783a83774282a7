"""Errores del cliente pRPC y clasificación de fallos de red."""

from __future__ import annotations

import asyncio

import httpx

# Message fragments of failures that are routine on a volunteer network.
NETWORK_ERROR_SIGNATURES = (
    "timeout",
    "timed out",
    "econnrefused",
    "enotfound",
    "ehostunreach",
    "etimedout",
    "connection refused",
    "name or service not known",
    "no route to host",
    "network is unreachable",
)


class PrpcError(Exception):
    """Fallo de una llamada pRPC."""

    def __init__(self, message: str, ip: str = "", method: str = ""):
        self.ip = ip
        self.method = method
        super().__init__(message)


class PrpcTimeoutError(PrpcError):
    """La llamada excedió su timeout."""


class PrpcConnectionError(PrpcError):
    """No se pudo alcanzar el nodo (DNS, conexión rechazada, host inalcanzable)."""


class PrpcResponseError(PrpcError):
    """Respuesta HTTP no exitosa o error JSON-RPC."""


def is_network_error(error: BaseException) -> bool:
    """True for expected, transient network failures.

    Those are logged at debug level only; anything else is unexpected.
    """
    if isinstance(error, (PrpcTimeoutError, PrpcConnectionError)):
        return True
    if isinstance(error, (httpx.TimeoutException, httpx.NetworkError, asyncio.TimeoutError)):
        return True
    if isinstance(error, OSError):
        return True
    message = str(error).lower()
    return any(signature in message for signature in NETWORK_ERROR_SIGNATURES)
