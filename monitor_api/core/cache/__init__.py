"""Cache de dos niveles.

Contiene:
- CacheBackend: contrato de un tier
- LocalCache: tier en memoria del proceso
- RemoteCache: tier Redis compartido
- FallbackCache: composición remoto → local con namespace por prefijo
"""

from .base import CacheBackend
from .errors import CacheTierError, RemoteCacheError, RemoteCacheUnavailable
from .fallback import FallbackCache
from .local import LocalCache
from .remote import RemoteCache
from .stats import CacheStats

__all__ = [
    "CacheBackend",
    "CacheTierError",
    "RemoteCacheError",
    "RemoteCacheUnavailable",
    "FallbackCache",
    "LocalCache",
    "RemoteCache",
    "CacheStats",
]
