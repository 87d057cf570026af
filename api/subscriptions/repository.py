"""
Subscription persistence (raw SQL).
"""

from __future__ import annotations

from datetime import datetime, timezone
from uuid import uuid4

import asyncpg

from core import db


async def insert_subscription(pool: asyncpg.Pool, *, email: str, name: str) -> dict:
    row = await db.fetch_one(
        pool,
        """
        INSERT INTO subscriptions (id, email, name, subscribed_at)
        VALUES ($1, $2, $3, $4)
        RETURNING id, email, name, subscribed_at
        """,
        uuid4(),
        email,
        name,
        datetime.now(timezone.utc),
    )
    if row is None:
        raise RuntimeError("Failed to insert subscription.")
    return row

