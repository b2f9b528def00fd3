"""Auth dependencies — Bearer token extraction and JWT validation."""

from __future__ import annotations

import logging

from fastapi import Depends, Request
from sqlalchemy.ext.asyncio import AsyncSession

from restapi.auth.models import User
from restapi.auth.service import decode_access_token, get_active_user
from restapi.common.exceptions import UnauthorizedException
from restapi.database import get_db

logger = logging.getLogger(__name__)


def _extract_bearer(request: Request) -> str:
    """Extract Bearer token from Authorization header."""
    auth_header = request.headers.get("Authorization")
    if not auth_header:
        raise UnauthorizedException("Authorization required", "Authorization header is missing")

    parts = auth_header.split(" ", 1)
    if len(parts) != 2 or parts[0].lower() != "bearer" or not parts[1].strip():
        raise UnauthorizedException(
            "Invalid authorization format",
            "Authorization header must be in format 'Bearer <token>'",
        )
    return parts[1].strip()


# ── Core dependency ─────────────────────────────────────────────────

async def get_current_user(
    request: Request,
    db: AsyncSession = Depends(get_db),
) -> User:
    """Validate JWT and return the authenticated User."""
    token = _extract_bearer(request)
    payload = decode_access_token(token)

    user = await get_active_user(db, payload["user_id"])
    if user is None:
        logger.warning("JWT token refers to non-existent user", extra={"user_id": payload["user_id"]})
        raise UnauthorizedException("Invalid token", "User associated with token not found")

    request.state.user_id = user.id
    logger.debug(
        "User authenticated successfully",
        extra={"user_id": user.id, "endpoint": request.url.path},
    )
    return user
