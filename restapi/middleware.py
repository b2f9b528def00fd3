"""HTTP middleware and request-level dependencies.

- request id propagation (``X-Request-ID`` echoed or generated)
- request logging with latency
- security headers on every response
- JSON Content-Type enforcement for write requests
"""

from __future__ import annotations

import logging
import time
import uuid

from fastapi import FastAPI, Request, Response

from restapi.common.exceptions import BadRequestException
from restapi.common.rate_limit import get_client_ip
from restapi.logging_config import set_request_id

logger = logging.getLogger("restapi.access")

REQUEST_ID_HEADER = "X-Request-ID"

SECURITY_HEADERS = {
    "X-Content-Type-Options": "nosniff",
    "X-Frame-Options": "DENY",
    "X-XSS-Protection": "1; mode=block",
    "Strict-Transport-Security": "max-age=31536000; includeSubDomains",
    "Referrer-Policy": "strict-origin-when-cross-origin",
    "Content-Security-Policy": "default-src 'self'",
}

_BODY_METHODS = {"POST", "PUT", "PATCH"}


async def request_context_middleware(request: Request, call_next) -> Response:
    """Tag the request with an id, log it, and add security headers."""
    request_id = request.headers.get(REQUEST_ID_HEADER) or f"req_{uuid.uuid4().hex}"
    request.state.request_id = request_id
    set_request_id(request_id)
    start = time.perf_counter()
    try:
        response: Response = await call_next(request)
    finally:
        set_request_id(None)

    latency_ms = (time.perf_counter() - start) * 1000
    logger.info(
        "HTTP Request",
        extra={
            "request_id": request_id,
            "client_ip": get_client_ip(request),
            "method": request.method,
            "path": request.url.path,
            "status_code": response.status_code,
            "latency_ms": round(latency_ms, 2),
            "user_agent": request.headers.get("user-agent"),
        },
    )

    response.headers[REQUEST_ID_HEADER] = request_id
    for name, value in SECURITY_HEADERS.items():
        response.headers.setdefault(name, value)
    return response


def register_middleware(app: FastAPI) -> None:
    app.middleware("http")(request_context_middleware)


async def validate_content_type(request: Request) -> None:
    """Reject write requests whose body is not JSON."""
    if request.method not in _BODY_METHODS:
        return
    content_type = request.headers.get("content-type", "")
    media_type = content_type.split(";", 1)[0].strip().lower()
    if media_type != "application/json":
        raise BadRequestException("Invalid Content-Type", "Content-Type must be application/json")
