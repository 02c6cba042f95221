"""
Domain errors and global exception handlers for the FastAPI application.
"""

import json
import traceback
from typing import Any, Union

import structlog
from fastapi import Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from pydantic import ValidationError
from starlette.exceptions import HTTPException as StarletteHTTPException

from .config import get_settings

logger = structlog.get_logger(__name__)

_NO_STORE_HEADERS = {
    "Cache-Control": "no-store, no-cache, must-revalidate, private",
    "Pragma": "no-cache",
    "Expires": "0",
}


def _auth_headers(request: Request) -> dict:
    if request.url.path.startswith("/api/auth"):
        return dict(_NO_STORE_HEADERS)
    return {}


# Custom exception classes with Problem Details support (RFC 7807)
class APIError(Exception):
    """Base API exception with Problem Details support."""

    def __init__(
        self,
        detail: str,
        status_code: int = status.HTTP_500_INTERNAL_SERVER_ERROR,
        code: str = "API_ERROR",
        title: str | None = None
    ):
        self.detail = detail
        self.status_code = status_code
        self.code = code
        self.title = title or detail
        super().__init__(detail)


class DatabaseError(APIError):
    """Key-value store operation error."""

    def __init__(self, detail: str = "Storage operation failed", code: str = "DATABASE_ERROR"):
        super().__init__(detail, status.HTTP_500_INTERNAL_SERVER_ERROR, code)


class BadRequestError(APIError):
    """Input validation / bad request error."""

    def __init__(self, detail: Any = "Bad request", code: str = "VALIDATION_ERROR"):
        super().__init__(detail, status.HTTP_400_BAD_REQUEST, code)


class AuthenticationError(APIError):
    """Caller is not logged in or the session expired."""

    def __init__(self, detail: str = "Authentication failed", code: str = "AUTHENTICATION_FAILED"):
        super().__init__(detail, status.HTTP_401_UNAUTHORIZED, code)


class InvalidCredentialsError(AuthenticationError):
    """Wrong password or unknown e-mail; the two cases are indistinguishable."""

    def __init__(self, detail: str = "Invalid email or password"):
        super().__init__(detail, code="INVALID_CREDENTIALS")


class AuthorizationError(APIError):
    """Ownership mismatch on a project or audit."""

    def __init__(self, detail: str = "Insufficient permissions", code: str = "INSUFFICIENT_PERMISSIONS"):
        super().__init__(detail, status.HTTP_403_FORBIDDEN, code)


class NotFoundError(APIError):
    """Resource not found error."""

    def __init__(self, detail: str = "Resource not found", code: str = "NOT_FOUND"):
        super().__init__(detail, status.HTTP_404_NOT_FOUND, code)


class ConflictError(APIError):
    """Resource conflict error."""

    def __init__(self, detail: str = "Resource conflict", code: str = "CONFLICT"):
        super().__init__(detail, status.HTTP_409_CONFLICT, code)


class RateLimitedError(APIError):
    """Login lockout; carries the remaining wait."""

    def __init__(self, retry_after_seconds: int, detail: str | None = None):
        self.retry_after_seconds = retry_after_seconds
        minutes_left = max(1, -(-retry_after_seconds // 60))
        super().__init__(
            detail or f"Too many login attempts. Please try again in {minutes_left} minutes.",
            status.HTTP_429_TOO_MANY_REQUESTS,
            "RATE_LIMITED",
        )


class OracleError(APIError):
    """The external violation oracle failed or returned an unusable answer."""

    def __init__(self, detail: str = "Violation analysis failed", code: str = "ORACLE_ERROR"):
        super().__init__(detail, status.HTTP_502_BAD_GATEWAY, code)


async def validation_exception_handler(request: Request, exc: Union[RequestValidationError, ValidationError]) -> JSONResponse:
    """Handle validation errors."""
    errors = []
    for error in exc.errors():
        error_dict = {
            "loc": error.get("loc", []),
            "msg": error.get("msg", ""),
            "type": error.get("type", ""),
        }
        if "input" in error:
            try:
                json.dumps(error["input"])
                error_dict["input"] = error["input"]
            except (TypeError, ValueError):
                pass
        errors.append(error_dict)

    logger.warning(
        "Validation error",
        path=request.url.path,
        method=request.method,
        errors=errors,
    )

    return JSONResponse(
        status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
        content={
            "type": "about:blank#validation_error",
            "title": "Validation Error",
            "status": status.HTTP_422_UNPROCESSABLE_ENTITY,
            "detail": "Input validation failed",
            "code": "VALIDATION_ERROR",
            "errors": errors,
            "instance": request.url.path,
        },
        headers=_auth_headers(request),
    )


async def http_exception_handler(request: Request, exc: StarletteHTTPException) -> JSONResponse:
    """Handle HTTP exceptions."""
    logger.warning(
        "HTTP exception",
        path=request.url.path,
        method=request.method,
        status_code=exc.status_code,
        detail=exc.detail,
    )

    return JSONResponse(
        status_code=exc.status_code,
        content={
            "detail": exc.detail,
            "status_code": exc.status_code,
            "type": "http_error"
        }
    )


async def general_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    """Handle general exceptions."""
    settings = get_settings()

    logger.error(
        "Unhandled exception",
        path=request.url.path,
        method=request.method,
        error=str(exc),
        error_type=type(exc).__name__,
        traceback=traceback.format_exc() if settings.debug else None,
    )

    content = {
        "detail": "Internal server error",
        "type": "internal_error"
    }
    if settings.debug:
        content["error"] = str(exc)
        content["error_type"] = type(exc).__name__

    return JSONResponse(status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, content=content)


async def api_exception_handler(request: Request, exc: APIError) -> JSONResponse:
    """Handle custom API exceptions with Problem Details format (RFC 7807)."""
    logger.warning(
        "API exception",
        path=request.url.path,
        method=request.method,
        status_code=exc.status_code,
        code=exc.code,
        detail=exc.detail,
        error_type=type(exc).__name__,
    )

    response_content = {
        "type": f"about:blank#{exc.code.lower()}",
        "title": exc.title,
        "status": exc.status_code,
        "detail": exc.detail,
        "code": exc.code,
        "instance": request.url.path
    }

    headers = _auth_headers(request)
    if isinstance(exc, RateLimitedError):
        response_content["retry_after"] = exc.retry_after_seconds
        headers["Retry-After"] = str(exc.retry_after_seconds)

    return JSONResponse(
        status_code=exc.status_code,
        content=response_content,
        headers=headers
    )
