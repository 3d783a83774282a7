"""Endpoints de pNodes."""

import logging
from typing import List

from fastapi import APIRouter, Depends, HTTPException

from ..context import ServiceContext
from ..schemas import MapNode, Node, NodeStats
from .deps import get_context

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/pnodes", tags=["pnodes"])


@router.get("", response_model=List[Node], response_model_exclude_none=True)
async def list_pnodes(ctx: ServiceContext = Depends(get_context)):
    try:
        return await ctx.discovery.get_all_nodes()
    except Exception:
        logger.exception("[API] Failed to list pNodes")
        raise HTTPException(status_code=500, detail="Failed to fetch pNodes")


@router.get("/map", response_model=List[MapNode], response_model_exclude_none=True)
async def list_map_nodes(ctx: ServiceContext = Depends(get_context)):
    """Nodos geolocalizados. Nunca 500: ante cualquier error devuelve []."""
    try:
        return await ctx.map.get_map_nodes()
    except Exception:
        logger.exception("[API] Failed to build map nodes")
        return []


@router.post("/refresh", response_model=List[Node], response_model_exclude_none=True)
async def refresh_pnodes(ctx: ServiceContext = Depends(get_context)):
    try:
        return await ctx.discovery.refresh()
    except Exception:
        logger.exception("[API] Failed to refresh pNodes")
        raise HTTPException(status_code=500, detail="Failed to refresh pNodes")


@router.get("/{pubkey}", response_model=Node, response_model_exclude_none=True)
async def get_pnode(pubkey: str, ctx: ServiceContext = Depends(get_context)):
    try:
        node = await ctx.discovery.get_node_by_pubkey(pubkey)
    except Exception:
        logger.exception("[API] Failed to fetch pNode pubkey=%s", pubkey)
        raise HTTPException(status_code=500, detail="Failed to fetch pNode")
    if node is None:
        raise HTTPException(status_code=404, detail="pNode not found")
    return node


@router.get("/{pubkey}/stats", response_model=NodeStats, response_model_exclude_none=True)
async def get_pnode_stats(pubkey: str, ctx: ServiceContext = Depends(get_context)):
    try:
        stats = await ctx.node_stats.get_node_stats(pubkey)
    except Exception:
        logger.exception("[API] Failed to fetch stats pubkey=%s", pubkey)
        raise HTTPException(status_code=500, detail="Failed to fetch node stats")
    if stats is None:
        raise HTTPException(status_code=404, detail="Stats not available for this node")
    return stats
