"""Analytics endpoints: thin handlers over AnalyticsService / MapService."""

import logging
from typing import List

from fastapi import APIRouter, Depends, HTTPException, Query

from ..context import ServiceContext
from ..schemas import (
    AnalyticsSummary,
    CountryChoropleth,
    ExtendedSummary,
    GeoSummary,
    NodeMetrics,
    StorageAnalytics,
    StoragePressure,
    TopNode,
    VersionDistribution,
)
from .deps import get_context

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/analytics", tags=["analytics"])


def _failed(what: str) -> HTTPException:
    logger.exception("[API] Failed to compute %s", what)
    return HTTPException(status_code=500, detail=f"Failed to compute {what}")


@router.get("/summary", response_model=AnalyticsSummary)
async def summary(ctx: ServiceContext = Depends(get_context)):
    try:
        return await ctx.analytics.get_summary()
    except Exception:
        raise _failed("summary")


@router.get("/extended-summary", response_model=ExtendedSummary)
async def extended_summary(ctx: ServiceContext = Depends(get_context)):
    try:
        return await ctx.analytics.get_extended_summary()
    except Exception:
        raise _failed("extended summary")


@router.get("/storage", response_model=List[StorageAnalytics])
async def storage(ctx: ServiceContext = Depends(get_context)):
    try:
        return await ctx.analytics.get_storage_analytics()
    except Exception:
        raise _failed("storage analytics")


@router.get("/versions", response_model=List[VersionDistribution])
async def versions(ctx: ServiceContext = Depends(get_context)):
    try:
        return await ctx.analytics.get_version_distribution()
    except Exception:
        raise _failed("version distribution")


@router.get("/node-metrics", response_model=List[NodeMetrics])
async def node_metrics(ctx: ServiceContext = Depends(get_context)):
    try:
        return await ctx.analytics.get_node_metrics()
    except Exception:
        raise _failed("node metrics")


@router.get("/top-nodes", response_model=List[TopNode])
async def top_nodes(
    limit: int = Query(10, ge=1, le=500),
    ctx: ServiceContext = Depends(get_context),
):
    try:
        return await ctx.analytics.get_top_nodes(limit)
    except Exception:
        raise _failed("top nodes")


@router.get("/storage-pressure", response_model=StoragePressure)
async def storage_pressure(ctx: ServiceContext = Depends(get_context)):
    try:
        return await ctx.analytics.get_storage_pressure()
    except Exception:
        raise _failed("storage pressure")


@router.get("/geo-summary", response_model=GeoSummary)
async def geo_summary(ctx: ServiceContext = Depends(get_context)):
    try:
        return await ctx.map.get_geo_summary()
    except Exception:
        raise _failed("geo summary")


@router.get("/country-choropleth", response_model=CountryChoropleth)
async def country_choropleth(ctx: ServiceContext = Depends(get_context)):
    try:
        return await ctx.map.get_country_choropleth()
    except Exception:
        raise _failed("country choropleth")
