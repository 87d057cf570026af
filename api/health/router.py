"""
Liveness endpoint.

Answers from the listener alone; never touches the DB pool.
"""

from __future__ import annotations

from fastapi import APIRouter, Response, status

router = APIRouter()


@router.get("/health_check")
async def health_check() -> Response:
    return Response(status_code=status.HTTP_200_OK)
