"""Conexión asíncrona a Redis con estado de salud explícito."""

from __future__ import annotations

import asyncio
import logging
from enum import Enum
from typing import Optional

import redis.asyncio as aioredis

logger = logging.getLogger(__name__)

RECONNECT_STEP_SECONDS = 0.05
RECONNECT_MAX_DELAY_SECONDS = 2.0


class ConnectionState(str, Enum):
    """Estados de la conexión al tier remoto."""
    DISABLED = "disabled"
    DISCONNECTED = "disconnected"
    CONNECTED = "connected"
    RECONNECTING = "reconnecting"


class RedisConnection:
    """Gestiona la conexión a Redis.

    Health transitions never block callers: a failed operation flips the
    state to DISCONNECTED and a background task pings until Redis answers
    again. While the state is not CONNECTED, callers skip the remote tier.
    """

    def __init__(
        self,
        url: str = "redis://localhost:6379/0",
        enabled: bool = True,
        socket_timeout: float = 5.0,
    ):
        self._url = url
        self._enabled = enabled
        self._socket_timeout = socket_timeout
        self._client: Optional[aioredis.Redis] = None
        self._state = ConnectionState.DISCONNECTED if enabled else ConnectionState.DISABLED
        self._reconnect_task: Optional[asyncio.Task] = None
        self._closed = False

        # Stats
        self._disconnects = 0
        self._reconnects = 0

    @property
    def client(self) -> Optional[aioredis.Redis]:
        return self._client

    @property
    def state(self) -> ConnectionState:
        return self._state

    @property
    def is_connected(self) -> bool:
        return self._state == ConnectionState.CONNECTED and self._client is not None

    @property
    def safe_url(self) -> str:
        return self._url.split("@")[-1]

    async def connect(self) -> bool:
        """Conecta a Redis. Nunca lanza; retorna False si no hay conexión."""
        if not self._enabled:
            logger.info("[REDIS] Disabled by REDIS_ENABLED=false, using in-process cache only")
            return False

        try:
            self._client = aioredis.Redis.from_url(
                self._url,
                decode_responses=True,
                socket_timeout=self._socket_timeout,
                socket_connect_timeout=self._socket_timeout,
            )
            await self._client.ping()
            self._state = ConnectionState.CONNECTED
            self._closed = False
            logger.info("[REDIS] Connected: %s", self.safe_url)
            return True
        except Exception as e:
            logger.warning(
                "[REDIS] Not available, falling back to in-process cache: %s", e,
            )
            self._state = ConnectionState.DISCONNECTED
            await self._dispose_client()
            return False

    def mark_failed(self, error: BaseException) -> None:
        """Registra un fallo de operación y programa la reconexión."""
        if self._state != ConnectionState.CONNECTED:
            return

        self._disconnects += 1
        self._state = ConnectionState.DISCONNECTED
        logger.warning("[REDIS] Connection error: %s", error)
        self._schedule_reconnect()

    def _schedule_reconnect(self) -> None:
        if self._closed or self._client is None:
            return
        if self._reconnect_task is not None and not self._reconnect_task.done():
            return
        try:
            loop = asyncio.get_running_loop()
        except RuntimeError:
            return
        self._state = ConnectionState.RECONNECTING
        self._reconnect_task = loop.create_task(self._reconnect_loop())

    async def _reconnect_loop(self) -> None:
        attempt = 0
        while not self._closed and self._client is not None:
            attempt += 1
            delay = min(attempt * RECONNECT_STEP_SECONDS, RECONNECT_MAX_DELAY_SECONDS)
            await asyncio.sleep(delay)
            try:
                await self._client.ping()
            except Exception as e:
                logger.debug("[REDIS] Reconnect attempt=%d failed: %s", attempt, e)
                continue

            self._state = ConnectionState.CONNECTED
            self._reconnects += 1
            logger.info("[REDIS] Reconnected after attempts=%d", attempt)
            return

    async def close(self) -> None:
        """Desconecta de Redis."""
        self._closed = True
        if self._reconnect_task is not None and not self._reconnect_task.done():
            self._reconnect_task.cancel()
            try:
                await self._reconnect_task
            except asyncio.CancelledError:
                pass
        self._reconnect_task = None
        if self._client is not None:
            await self._dispose_client()
            logger.info("[REDIS] Connection closed")
        if self._enabled:
            self._state = ConnectionState.DISCONNECTED

    async def _dispose_client(self) -> None:
        client, self._client = self._client, None
        if client is None:
            return
        try:
            await client.aclose()
        except Exception as e:
            logger.debug("[REDIS] Error closing client: %s", e)

    def get_stats(self) -> dict:
        return {
            "state": self._state.value,
            "url": self.safe_url,
            "disconnects": self._disconnects,
            "reconnects": self._reconnects,
        }
