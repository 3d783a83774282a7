"""Redis layer - conexión al tier remoto de cache."""

from .connection import ConnectionState, RedisConnection

__all__ = ["ConnectionState", "RedisConnection"]
