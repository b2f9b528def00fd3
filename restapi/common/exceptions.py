"""Custom exceptions and envelope-style error handlers."""

from __future__ import annotations

import logging
from typing import Optional

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from restapi.common.responses import error_body

logger = logging.getLogger(__name__)


# ── Exception hierarchy ─────────────────────────────────────────────

class AppException(Exception):
    """Base for all application exceptions → {"success": false, "error": {...}}."""

    def __init__(
        self,
        status_code: int,
        code: str,
        message: str,
        details: Optional[str] = None,
        headers: Optional[dict[str, str]] = None,
    ) -> None:
        self.status_code = status_code
        self.code = code
        self.message = message
        self.details = details
        self.headers = headers
        super().__init__(message)


class BadRequestException(AppException):
    """400 — malformed request."""

    def __init__(self, message: str = "Bad request", details: Optional[str] = None) -> None:
        super().__init__(400, "BAD_REQUEST", message, details)


class UnauthorizedException(AppException):
    """401 — missing or invalid credentials."""

    def __init__(self, message: str = "Unauthorized", details: Optional[str] = None) -> None:
        super().__init__(
            401, "UNAUTHORIZED", message, details,
            headers={"WWW-Authenticate": "Bearer"},
        )


class ConflictException(AppException):
    """409 — unique-constraint / duplicate."""

    def __init__(self, message: str, details: Optional[str] = None) -> None:
        super().__init__(409, "CONFLICT", message, details)


class RateLimitExceededException(AppException):
    """429 — client exhausted its token bucket."""

    def __init__(
        self,
        code: str = "RATE_LIMIT_EXCEEDED",
        message: str = "Rate limit exceeded",
        details: str = "Too many requests from your IP address",
    ) -> None:
        super().__init__(429, code, message, details)


class ServiceUnavailableException(AppException):
    """503 — a backing service is down."""

    def __init__(self, message: str, details: Optional[str] = None) -> None:
        super().__init__(503, "SERVICE_UNAVAILABLE", message, details)


# ── FastAPI handlers ────────────────────────────────────────────────

_STATUS_CODES = {
    400: "BAD_REQUEST",
    401: "UNAUTHORIZED",
    403: "FORBIDDEN",
    404: "NOT_FOUND",
    405: "METHOD_NOT_ALLOWED",
    409: "CONFLICT",
    429: "RATE_LIMIT_EXCEEDED",
}


async def _handle_app_exception(
    request: Request,
    exc: AppException,
) -> JSONResponse:
    return JSONResponse(
        status_code=exc.status_code,
        content=error_body(exc.code, exc.message, exc.details),
        headers=exc.headers,
    )


async def _handle_validation_error(
    request: Request,
    exc: RequestValidationError,
) -> JSONResponse:
    messages: list[str] = []
    for err in exc.errors():
        loc = [str(p) for p in err.get("loc", ()) if p != "body"]
        msg = err.get("msg", "Invalid value").removeprefix("Value error, ")
        messages.append(f"{'.'.join(loc)}: {msg}" if loc else msg)

    logger.info("Request validation failed", extra={"path": request.url.path, "errors": messages})
    return JSONResponse(
        status_code=400,
        content=error_body("VALIDATION_ERROR", "Validation failed", "; ".join(messages)),
    )


async def _handle_http_exception(
    request: Request,
    exc: StarletteHTTPException,
) -> JSONResponse:
    code = _STATUS_CODES.get(exc.status_code, "HTTP_ERROR")
    detail = exc.detail if isinstance(exc.detail, str) else None
    return JSONResponse(
        status_code=exc.status_code,
        content=error_body(code, detail or "HTTP error", None),
        headers=getattr(exc, "headers", None),
    )


async def _handle_unexpected(request: Request, exc: Exception) -> JSONResponse:
    logger.exception(
        "Unhandled exception",
        extra={"path": request.url.path, "method": request.method},
    )
    return JSONResponse(
        status_code=500,
        content=error_body(
            "INTERNAL_SERVER_ERROR",
            "Internal server error",
            "An unexpected error occurred",
        ),
    )


# ── Registration helper (called from main.py) ──────────────────────

def register_exception_handlers(app: FastAPI) -> None:
    """Attach all custom exception handlers to the FastAPI app."""
    app.add_exception_handler(AppException, _handle_app_exception)              # type: ignore[arg-type]
    app.add_exception_handler(RequestValidationError, _handle_validation_error)  # type: ignore[arg-type]
    app.add_exception_handler(StarletteHTTPException, _handle_http_exception)    # type: ignore[arg-type]
    app.add_exception_handler(Exception, _handle_unexpected)
