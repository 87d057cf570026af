"""
Logging setup and per-request log context.

Log lines follow the `event key=value ...` convention. Request-scoped lines
also carry a `request_id` attribute on the LogRecord so handlers/formatters
can correlate them without parsing the message.
"""

from __future__ import annotations

import logging
import time
import uuid
from dataclasses import dataclass, field
from typing import Any

LOG_FORMAT = "%(asctime)s %(levelname)s %(name)s %(message)s"


def configure_logging(level: str = "INFO") -> None:
    """
    Install the process-wide handler. Call once from the entrypoint.
    """
    logging.basicConfig(
        level=getattr(logging, level.upper(), logging.INFO),
        format=LOG_FORMAT,
        force=True,
    )


def new_request_id() -> str:
    return uuid.uuid4().hex


@dataclass(frozen=True)
class RequestContext:
    request_id: str = field(default_factory=new_request_id)
    started_at: float = field(default_factory=time.perf_counter)

    def elapsed_ms(self) -> float:
        return (time.perf_counter() - self.started_at) * 1000.0


class RequestLoggerAdapter(logging.LoggerAdapter):
    """
    Appends `request_id=...` to every message and sets it as a record attribute.
    """

    def process(self, msg: Any, kwargs: Any) -> tuple[Any, Any]:
        request_id = self.extra["request_id"]
        extra = dict(kwargs.get("extra") or {})
        extra.setdefault("request_id", request_id)
        kwargs["extra"] = extra
        return f"{msg} request_id={request_id}", kwargs


def bind(logger: logging.Logger, context: RequestContext) -> RequestLoggerAdapter:
    return RequestLoggerAdapter(logger, {"request_id": context.request_id})
