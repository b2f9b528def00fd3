"""Auth router — registration, login and JWT-protected profile endpoints."""

from __future__ import annotations

from fastapi import APIRouter, Depends
from fastapi.responses import JSONResponse
from sqlalchemy.ext.asyncio import AsyncSession

from restapi.auth.dependencies import get_current_user
from restapi.auth.models import User
from restapi.auth.schemas import (
    AuthResponse,
    LoginRequest,
    ProtectedResponse,
    RegisterRequest,
    UserSafeResponse,
)
from restapi.auth.service import authenticate_user, create_access_token, register_user
from restapi.common.rate_limit import enforce_auth_rate_limit
from restapi.common.responses import APIResponse, success_response
from restapi.database import get_db

router = APIRouter(dependencies=[Depends(enforce_auth_rate_limit)], tags=["auth"])
protected_router = APIRouter(dependencies=[Depends(get_current_user)], tags=["protected"])
users_router = APIRouter(dependencies=[Depends(get_current_user)], tags=["users"])


# ── POST /register ──────────────────────────────────────────────────

@router.post("/register", status_code=201, response_model=APIResponse[UserSafeResponse])
async def register(
    body: RegisterRequest,
    db: AsyncSession = Depends(get_db),
) -> JSONResponse:
    user = await register_user(db, body.username, body.email, body.password)
    return success_response(
        UserSafeResponse.model_validate(user),
        "User registered successfully",
        status_code=201,
    )


# ── POST /login ─────────────────────────────────────────────────────

@router.post("/login", response_model=APIResponse[AuthResponse])
async def login(
    body: LoginRequest,
    db: AsyncSession = Depends(get_db),
) -> JSONResponse:
    user = await authenticate_user(db, body.username, body.password)
    token, expires_in = create_access_token(user)
    return success_response(
        AuthResponse(
            token=token,
            expires_in=expires_in,
            user=UserSafeResponse.model_validate(user),
        ),
        "Login successful",
    )


# ── Protected endpoints ─────────────────────────────────────────────

@protected_router.get("/", response_model=APIResponse[ProtectedResponse])
async def protected(user: User = Depends(get_current_user)) -> JSONResponse:
    return success_response(
        ProtectedResponse(user_id=user.id, username=user.username, email=user.email),
        "Access granted to protected resource",
    )


async def _profile(user: User = Depends(get_current_user)) -> JSONResponse:
    return success_response(
        UserSafeResponse.model_validate(user),
        "User profile retrieved successfully",
    )


for _router, _path in ((protected_router, "/profile"), (users_router, "/me")):
    _router.add_api_route(
        _path, _profile, methods=["GET"], response_model=APIResponse[UserSafeResponse],
    )
