"""Monitoring layer - Salud y observabilidad."""

from .health import HealthChecker, HealthStatus

__all__ = ["HealthChecker", "HealthStatus"]
