"""Common module — shared utilities for the REST API."""

from restapi.common.exceptions import (
    AppException,
    BadRequestException,
    ConflictException,
    RateLimitExceededException,
    ServiceUnavailableException,
    UnauthorizedException,
    register_exception_handlers,
)
from restapi.common.rate_limit import (
    IPRateLimiter,
    RateLimitPolicy,
    TokenBucket,
    enforce_auth_rate_limit,
    enforce_rate_limit,
)
from restapi.common.responses import APIError, APIResponse, error_body, success_response
from restapi.common.validators import (
    validate_email,
    validate_login_password,
    validate_password,
    validate_username,
)

__all__ = [
    # Exceptions
    "AppException",
    "BadRequestException",
    "ConflictException",
    "RateLimitExceededException",
    "ServiceUnavailableException",
    "UnauthorizedException",
    "register_exception_handlers",
    # Rate limiting
    "IPRateLimiter",
    "RateLimitPolicy",
    "TokenBucket",
    "enforce_auth_rate_limit",
    "enforce_rate_limit",
    # Responses
    "APIError",
    "APIResponse",
    "error_body",
    "success_response",
    # Validators
    "validate_email",
    "validate_login_password",
    "validate_password",
    "validate_username",
]
