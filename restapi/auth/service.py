"""Auth service — password hashing, JWT management, registration and login."""

from __future__ import annotations

import asyncio
import logging
from datetime import datetime, timedelta, timezone
from typing import Any, Optional

import bcrypt
from jose import ExpiredSignatureError, JWTError, jwt
from sqlalchemy import or_, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from restapi.auth.models import User
from restapi.common.exceptions import ConflictException, UnauthorizedException
from restapi.config import settings

logger = logging.getLogger(__name__)

# Compared against when the username is unknown so both failure paths cost a bcrypt check
_DUMMY_HASH = bcrypt.hashpw(b"dummy-password-for-timing", bcrypt.gensalt()).decode()


# ── Passwords ───────────────────────────────────────────────────────

def hash_password(password: str) -> str:
    return bcrypt.hashpw(password.encode(), bcrypt.gensalt()).decode()


def verify_password(plain: str, hashed: str) -> bool:
    try:
        return bcrypt.checkpw(plain.encode(), hashed.encode())
    except ValueError:
        # Malformed stored hash, or input over the bcrypt byte limit
        return False


# ── JWT helpers ─────────────────────────────────────────────────────

def create_access_token(user: User) -> tuple[str, int]:
    """Return (encoded_jwt, expires_in_seconds)."""
    now = datetime.now(timezone.utc)
    expires_in = settings.JWT_EXPIRY_MINUTES * 60
    payload = {
        "sub": str(user.id),
        "user_id": user.id,
        "email": user.email,
        "iss": settings.JWT_ISSUER,
        "iat": now,
        "exp": now + timedelta(minutes=settings.JWT_EXPIRY_MINUTES),
    }
    token = jwt.encode(payload, settings.JWT_SECRET, algorithm=settings.JWT_ALGORITHM)
    return token, expires_in


def decode_access_token(token: str) -> dict[str, Any]:
    """Verify signature, expiry and issuer; return the claims."""
    try:
        payload = jwt.decode(
            token,
            settings.JWT_SECRET,
            algorithms=[settings.JWT_ALGORITHM],
            issuer=settings.JWT_ISSUER,
        )
    except ExpiredSignatureError:
        raise UnauthorizedException("Invalid or expired token", "Token has expired")
    except JWTError as exc:
        raise UnauthorizedException("Invalid or expired token", str(exc))

    if not isinstance(payload.get("user_id"), int):
        raise UnauthorizedException("Invalid or expired token", "Token is missing the user id")
    return payload


# ── Users ───────────────────────────────────────────────────────────

async def get_active_user(db: AsyncSession, user_id: int) -> Optional[User]:
    result = await db.execute(
        select(User).where(User.id == user_id, User.deleted_at.is_(None)),
    )
    return result.scalars().first()


async def register_user(
    db: AsyncSession,
    username: str,
    email: str,
    password: str,
) -> User:
    """Create a user, or raise 409 if the username or email is taken."""
    result = await db.execute(
        select(User.id).where(or_(User.username == username, User.email == email)),
    )
    if result.first() is not None:
        logger.warning(
            "Attempt to register with existing username or email",
            extra={"username": username, "email": email},
        )
        raise ConflictException("User already exists", "Username or email already exists")

    password_hash = await asyncio.to_thread(hash_password, password)
    user = User(username=username, email=email, password_hash=password_hash)
    db.add(user)
    try:
        await db.flush()
    except IntegrityError:
        # Lost a race with a concurrent registration
        await db.rollback()
        raise ConflictException("User already exists", "Username or email already exists")

    logger.info(
        "User registered successfully",
        extra={"user_id": user.id, "username": user.username},
    )
    return user


async def authenticate_user(db: AsyncSession, username: str, password: str) -> User:
    """Return the user for valid credentials, or raise 401."""
    result = await db.execute(
        select(User).where(User.username == username, User.deleted_at.is_(None)),
    )
    user = result.scalars().first()

    if user is None:
        await asyncio.to_thread(verify_password, password, _DUMMY_HASH)
        logger.warning("Login attempt with non-existent username", extra={"username": username})
        raise UnauthorizedException("Invalid credentials", "Username or password is incorrect")

    if not await asyncio.to_thread(verify_password, password, user.password_hash):
        logger.warning(
            "Login attempt with incorrect password",
            extra={"username": username, "user_id": user.id},
        )
        raise UnauthorizedException("Invalid credentials", "Username or password is incorrect")

    logger.info("User logged in successfully", extra={"user_id": user.id, "username": user.username})
    return user
