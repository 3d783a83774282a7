"""Errores de los tiers de cache. Nunca salen de FallbackCache."""

from __future__ import annotations


class CacheTierError(Exception):
    """Fallo de un tier de cache."""


class RemoteCacheUnavailable(CacheTierError):
    """El tier remoto está marcado como caído; no se intentó la operación."""


class RemoteCacheError(CacheTierError):
    """La operación contra el tier remoto falló."""

    def __init__(self, operation: str, key: str, cause: BaseException):
        self.operation = operation
        self.key = key
        self.cause = cause
        super().__init__(f"remote {operation} failed for key={key}: {cause}")
