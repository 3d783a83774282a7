"""In-process cache tier (fallback only, lost on restart)."""

from __future__ import annotations

import time
from typing import Callable, Dict, Optional, Tuple

from .base import CacheBackend


class LocalCache(CacheBackend):
    """Dict-backed tier with an explicit expiry timestamp per entry.

    Expired entries are dropped when read; there is no eviction sweep.
    """

    name = "local"

    def __init__(self, clock: Callable[[], float] = time.monotonic):
        self._clock = clock
        self._entries: Dict[str, Tuple[str, float]] = {}

    async def get(self, key: str) -> Optional[str]:
        entry = self._entries.get(key)
        if entry is None:
            return None
        value, expires_at = entry
        if self._clock() >= expires_at:
            self._entries.pop(key, None)
            return None
        return value

    async def set(self, key: str, value: str, ttl_seconds: float) -> None:
        self._entries[key] = (value, self._clock() + ttl_seconds)

    async def delete(self, key: str) -> None:
        self._entries.pop(key, None)

    def __len__(self) -> int:
        return len(self._entries)
