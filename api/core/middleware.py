"""
Request logging middleware.

Wraps the whole dispatch pipeline: every request gets a fresh correlation id,
one `request_started` line on entry and exactly one `request_finished` line
on the way out, including when the handler raises.
"""

from __future__ import annotations

import logging

from fastapi import Request
from fastapi.responses import JSONResponse
from starlette.middleware.base import BaseHTTPMiddleware, RequestResponseEndpoint
from starlette.responses import Response

from .log import RequestContext, bind

logger = logging.getLogger(__name__)

REQUEST_ID_HEADER = "X-Request-ID"


def outcome_for_status(status_code: int) -> str:
    if status_code >= 500:
        return "server_error"
    if status_code >= 400:
        return "client_error"
    return "success"


class RequestLoggingMiddleware(BaseHTTPMiddleware):
    async def dispatch(self, request: Request, call_next: RequestResponseEndpoint) -> Response:
        context = RequestContext()
        request.state.context = context
        log = bind(logger, context)

        log.info("request_started method=%s path=%s", request.method, request.url.path)
        try:
            response = await call_next(request)
        except Exception:
            log.error(
                "request_finished method=%s path=%s status=%s outcome=%s latency_ms=%.2f",
                request.method,
                request.url.path,
                500,
                "server_error",
                context.elapsed_ms(),
                exc_info=True,
            )
            response = JSONResponse(status_code=500, content={"detail": "Internal Server Error."})
            response.headers[REQUEST_ID_HEADER] = context.request_id
            return response

        outcome = outcome_for_status(response.status_code)
        log.log(
            logging.WARNING if outcome == "server_error" else logging.INFO,
            "request_finished method=%s path=%s status=%s outcome=%s latency_ms=%.2f",
            request.method,
            request.url.path,
            response.status_code,
            outcome,
            context.elapsed_ms(),
        )
        response.headers[REQUEST_ID_HEADER] = context.request_id
        return response
