"""Gossip layer - cliente pRPC y clasificación de errores de red."""

from .client import (
    METHOD_GET_PODS,
    METHOD_GET_PODS_WITH_STATS,
    METHOD_GET_STATS,
    PrpcClient,
    PrpcClientFactory,
)
from .errors import (
    PrpcConnectionError,
    PrpcError,
    PrpcResponseError,
    PrpcTimeoutError,
    is_network_error,
)

__all__ = [
    "METHOD_GET_PODS",
    "METHOD_GET_PODS_WITH_STATS",
    "METHOD_GET_STATS",
    "PrpcClient",
    "PrpcClientFactory",
    "PrpcConnectionError",
    "PrpcError",
    "PrpcResponseError",
    "PrpcTimeoutError",
    "is_network_error",
]
