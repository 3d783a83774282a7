from __future__ import annotations

from abc import ABC, abstractmethod
from typing import Optional


class CacheBackend(ABC):
    """A single storage tier holding serialized values with a TTL.

    Values cross this boundary as JSON text; encoding is the caller's job.
    ``get`` returns None on a miss or an expired entry.
    """

    name: str = "backend"

    @abstractmethod
    async def get(self, key: str) -> Optional[str]:
        ...

    @abstractmethod
    async def set(self, key: str, value: str, ttl_seconds: float) -> None:
        ...

    @abstractmethod
    async def delete(self, key: str) -> None:
        ...
