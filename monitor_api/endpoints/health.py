"""Health, readiness and metrics endpoints."""

from fastapi import APIRouter, Depends, Response
from prometheus_client import CONTENT_TYPE_LATEST, generate_latest

from ..context import ServiceContext
from ..core.monitoring import HealthChecker
from .deps import get_context

router = APIRouter(tags=["health"])


def _checker(ctx: ServiceContext) -> HealthChecker:
    return HealthChecker(redis_conn=ctx.redis, caches=ctx.caches.all())


@router.get("/health")
def health():
    """Liveness check: always returns ok if process is running."""
    return {"status": "ok"}


@router.get("/ready")
def ready(ctx: ServiceContext = Depends(get_context)):
    """Readiness check.

    Siempre 200: sin Redis el servicio sigue respondiendo desde la
    caché en memoria, así que solo se reporta el estado.
    """
    status = _checker(ctx).get_status(enrichment_state=ctx.enrichment_job.state.value)
    return {
        "status": "ready",
        "redis": status.redis_state,
        "enrichment_scheduled": ctx.enrichment_job.is_scheduled,
    }


@router.get("/health/cache")
def cache_health(ctx: ServiceContext = Depends(get_context)):
    status = _checker(ctx).get_status(enrichment_state=ctx.enrichment_job.state.value)
    return {
        **status.to_dict(),
        "redis": ctx.redis.get_stats(),
        "discovery": ctx.discovery.stats,
        "node_stats": ctx.node_stats.stats,
        "enrichment": ctx.enrichment_job.get_stats(),
    }


@router.get("/metrics")
def metrics():
    """Prometheus exposition."""
    return Response(content=generate_latest(), media_type=CONTENT_TYPE_LATEST)
