"""
Server bootstrap: wires the shared pool, request logging and routes into a
FastAPI app and wraps it, together with a pre-bound listener, in a handle.

Order matters:
1. attach the pool to app state (shared by reference)
2. add request logging around the whole pipeline
3. include the fixed routes
4. adopt the listener into a not-yet-running ServerHandle, which freezes
   the routes into its route table
"""

from __future__ import annotations

import socket

import asyncpg
from fastapi import FastAPI

from core.middleware import RequestLoggingMiddleware
from core.server import ServerHandle
from health import router as health_router
from subscriptions import router as subscriptions_router


def build_app(db_pool: asyncpg.Pool) -> FastAPI:
    # No generated docs routes: the route table is exactly what we register.
    app = FastAPI(openapi_url=None, docs_url=None, redoc_url=None)

    app.state.db_pool = db_pool

    app.add_middleware(RequestLoggingMiddleware)

    app.include_router(health_router.router, tags=["health"])
    app.include_router(subscriptions_router.router, tags=["subscriptions"])

    return app


def run(
    listener: socket.socket,
    db_pool: asyncpg.Pool,
    *,
    graceful_shutdown_timeout: float | None = None,
) -> ServerHandle:
    """
    Build a server handle for `listener`. The handle is not started.

    Ownership of `listener` moves to the handle. Raises ConfigurationError
    if the listener cannot be adopted or the routes clash.
    """
    app = build_app(db_pool)
    return ServerHandle(
        app,
        listener,
        graceful_shutdown_timeout=graceful_shutdown_timeout,
    )
