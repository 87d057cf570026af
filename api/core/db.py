"""
Async database access helpers (raw SQL) using asyncpg.

The process entrypoint creates exactly one pool (`create_pool`) and hands it
to `startup.run`, which stores the reference on `app.state`. Helpers here take
the pool explicitly instead of reaching for a module-level global.

SQL parameter style:
- asyncpg uses positional placeholders: $1, $2, $3, ...
"""

from __future__ import annotations

import os
from typing import Any
from urllib.parse import parse_qsl, urlencode, urlsplit, urlunsplit

import asyncpg

from .settings import _env_float, _env_int


def _sanitize_database_url(url: str) -> str:
    parts = urlsplit(url)
    if not parts.query:
        return url

    params = [(k, v) for (k, v) in parse_qsl(parts.query, keep_blank_values=True) if k != "sslmode"]
    query = urlencode(params)
    return urlunsplit((parts.scheme, parts.netloc, parts.path, query, parts.fragment))


def database_url() -> str:
    url = os.environ.get("DATABASE_URL", "").strip()
    if not url:
        raise RuntimeError("DATABASE_URL is not set.")
    return _sanitize_database_url(url)


def pool_min_size() -> int:
    return max(_env_int("DB_POOL_MIN_SIZE", 1), 0)


def pool_max_size() -> int:
    return max(_env_int("DB_POOL_MAX_SIZE", 5), pool_min_size(), 1)


def command_timeout_s() -> float:
    return _env_float("DB_COMMAND_TIMEOUT_S", 30.0) or 30.0


async def create_pool() -> asyncpg.Pool:
    return await asyncpg.create_pool(
        dsn=database_url(),
        min_size=pool_min_size(),
        max_size=pool_max_size(),
        command_timeout=command_timeout_s(),
    )


def _record_to_dict(record: asyncpg.Record) -> dict[str, Any]:
    return dict(record)


async def fetch_one(pool: asyncpg.Pool, sql: str, *args: Any) -> dict[str, Any] | None:
    """
    Run a query and return a single row as a dict (or None).
    """
    row = await pool.fetchrow(sql, *args)
    return _record_to_dict(row) if row is not None else None
