"""
Subscription endpoint.
"""

from __future__ import annotations

import logging

import asyncpg
from fastapi import APIRouter, Depends, Form, HTTPException, status

from core import log
from core.dependencies import get_db_pool, get_request_context
from core.log import RequestContext

from . import repository, service

logger = logging.getLogger(__name__)

router = APIRouter()


@router.post("/subscriptions")
async def subscribe(
    name: str = Form(...),
    email: str = Form(...),
    pool: asyncpg.Pool = Depends(get_db_pool),
    context: RequestContext = Depends(get_request_context),
) -> dict:
    request_log = log.bind(logger, context)
    subscriber = service.parse_new_subscriber(name=name, email=email)

    request_log.info("subscription_saving email=%s", subscriber.email)
    try:
        row = await repository.insert_subscription(pool, email=subscriber.email, name=subscriber.name)
    except asyncpg.UniqueViolationError as exc:
        raise HTTPException(
            status_code=status.HTTP_409_CONFLICT,
            detail="Email is already subscribed.",
        ) from exc
    except asyncpg.PostgresError as exc:
        request_log.error("subscription_failed email=%s error=%s", subscriber.email, exc)
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Failed to save subscription.",
        ) from exc

    subscription_id = str(row["id"])
    request_log.info("subscription_saved subscription_id=%s", subscription_id)
    return {"ok": True, "subscription_id": subscription_id}
