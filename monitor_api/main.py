from __future__ import annotations

import logging
from contextlib import asynccontextmanager
from typing import Optional

from fastapi import FastAPI

from common.config import get_settings
from common.log_config import configure_logging

from . import __version__
from .context import ServiceContext, build_context
from .endpoints import analytics_router, health_router, pnodes_router

logger = logging.getLogger(__name__)


def create_app(context: Optional[ServiceContext] = None, start_jobs: Optional[bool] = None) -> FastAPI:
    """Build the API.

    When `context` is given (tests) it is used as-is; otherwise one is
    built from the environment at startup.
    """

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        ctx = context
        if ctx is None:
            settings = get_settings()
            configure_logging(settings.log_level)
            ctx = build_context(settings)
        app.state.context = ctx
        await ctx.startup(start_jobs=start_jobs)
        logger.info("[API] pNode monitor started version=%s", __version__)
        try:
            yield
        finally:
            await ctx.shutdown()
            logger.info("[API] pNode monitor stopped")

    app = FastAPI(title="pNode Monitor", version=__version__, lifespan=lifespan)
    if context is not None:
        app.state.context = context

    app.include_router(health_router)
    app.include_router(pnodes_router)
    app.include_router(analytics_router)
    return app


app = create_app()
