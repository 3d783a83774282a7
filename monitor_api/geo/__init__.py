"""Geolocalización de IPs (colaborador externo)."""

from .locator import GeoLocator, MAX_BATCH_SIZE, parse_geo

__all__ = ["GeoLocator", "MAX_BATCH_SIZE", "parse_geo"]
