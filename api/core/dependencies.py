"""
FastAPI dependencies shared by feature routers.
"""

from __future__ import annotations

import asyncpg
from fastapi import Request

from .log import RequestContext


def get_db_pool(request: Request) -> asyncpg.Pool:
    # Same object for every request; never copied.
    pool = getattr(request.app.state, "db_pool", None)
    if pool is None:
        raise RuntimeError("DB pool is not attached to the app. Build it with startup.build_app().")
    return pool


def get_request_context(request: Request) -> RequestContext:
    context = getattr(request.state, "context", None)
    if context is None:
        # Only reachable when the app is mounted without RequestLoggingMiddleware.
        context = RequestContext()
        request.state.context = context
    return context
