"""Módulo de endpoints HTTP.

Contiene los routers de la API del monitor organizados por función.
"""

from .analytics import router as analytics_router
from .health import router as health_router
from .pnodes import router as pnodes_router

__all__ = [
    "analytics_router",
    "health_router",
    "pnodes_router",
]
