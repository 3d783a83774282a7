"""Configuración y logging compartidos por la API y los jobs."""

from .config import Settings, get_settings
from .log_config import configure_logging

__all__ = ["Settings", "get_settings", "configure_logging"]
