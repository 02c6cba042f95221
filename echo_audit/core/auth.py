"""
Authentication and service dependencies for FastAPI endpoints.
"""

from typing import Optional

from fastapi import Depends, Request
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
import structlog

from .exceptions import AuthenticationError
from ..models.user import User
from ..services.audit_pipeline import AuditPipeline
from ..services.auth_service import AuthService
from ..services.repository import AuditRepository

logger = structlog.get_logger(__name__)

optional_security = HTTPBearer(auto_error=False)


def get_auth_service(request: Request) -> AuthService:
    return request.app.state.auth_service


def get_repository(request: Request) -> AuditRepository:
    return request.app.state.repository


def get_pipeline(request: Request) -> AuditPipeline:
    return request.app.state.pipeline


async def get_current_user(
    request: Request,
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(optional_security),
    auth: AuthService = Depends(get_auth_service),
) -> User:
    """
    Dependency to get the user of the live session.

    The caller sends the session's csrfToken as a bearer token.

    Raises:
        AuthenticationError: 401 if the token is missing, does not match the
            live session, or the session expired
    """
    if credentials is None:
        raise AuthenticationError("Not authenticated", code="NOT_AUTHENTICATED")

    user = await auth.current_user(credentials.credentials)
    if user is None:
        raise AuthenticationError("Not authenticated", code="NOT_AUTHENTICATED")

    request.state.user = user
    return user
