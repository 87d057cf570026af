"""
Process-level settings read from environment variables.

Database settings live next to the pool in `core/db.py`.
"""

from __future__ import annotations

import os


def _env_int(name: str, default: int) -> int:
    raw = os.environ.get(name, "").strip()
    if not raw:
        return default
    try:
        return int(raw)
    except ValueError:
        return default


def _env_float(name: str, default: float | None) -> float | None:
    raw = os.environ.get(name, "").strip()
    if not raw:
        return default
    try:
        return float(raw)
    except ValueError:
        return default


def app_host() -> str:
    return os.environ.get("APP_HOST", "127.0.0.1").strip() or "127.0.0.1"


def app_port() -> int:
    return _env_int("APP_PORT", 8000)


def log_level() -> str:
    return os.environ.get("LOG_LEVEL", "INFO").strip().upper() or "INFO"


def graceful_shutdown_timeout_s() -> float | None:
    # Unset means in-flight requests may take as long as they need.
    timeout = _env_float("GRACEFUL_SHUTDOWN_TIMEOUT_S", None)
    if timeout is not None and timeout < 0:
        return None
    return timeout
