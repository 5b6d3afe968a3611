"""
Shared FastAPI dependencies.

Centralizes common dependencies so routers import from a single place
(pagination, settlement intake key).
"""

from __future__ import annotations

import secrets
from typing import Optional, TypedDict

from fastapi import Header, Query

from config import settings
from domain.errors import UnauthorizedError


class Pagination(TypedDict):
    limit: int
    offset: int


def pagination_params(
    limit: int = Query(50, ge=1, le=200),
    offset: int = Query(0, ge=0, le=100_000),
) -> Pagination:
    return {"limit": limit, "offset": offset}


async def require_settlement_key(
    x_settlement_key: Optional[str] = Header(None, alias="X-Settlement-Key"),
) -> bool:
    """
    Guard for settlement intake.

    Only the service that verified the chain transfer may submit it. When no
    key is configured (development) the check is skipped.

    Returns:
        True when the caller presented the configured key
    """
    expected = settings.settlement_api_key
    if not expected:
        return False
    if not x_settlement_key or not secrets.compare_digest(x_settlement_key, expected):
        raise UnauthorizedError("Missing or invalid X-Settlement-Key.")
    return True
