"""Dependencias compartidas por los routers."""

from fastapi import Request

from ..context import ServiceContext


def get_context(request: Request) -> ServiceContext:
    return request.app.state.context
