"""
Authentication routes for the Echo-Audit API.
"""

from fastapi import APIRouter, Depends, Response, status

from ..core.auth import get_auth_service, get_current_user
from ..models.user import User
from ..schemas.auth import AuthResponse, ChangePasswordRequest, LoginRequest, SignupRequest
from ..schemas.user import UserProfile
from ..services.auth_service import AuthService

router = APIRouter(prefix="/auth", tags=["auth"])


async def _open_session(auth: AuthService, user: User) -> AuthResponse:
    session = await auth.start_session(user)
    return AuthResponse(
        user=UserProfile.from_user(user),
        csrf_token=session.csrf_token,
        session_timeout=auth.sessions.timeout_ms // 1000,
    )


@router.post("/signup", response_model=AuthResponse, status_code=status.HTTP_201_CREATED)
async def signup(
    payload: SignupRequest,
    auth: AuthService = Depends(get_auth_service),
) -> AuthResponse:
    """Register a new user and log them in."""
    user = await auth.create_account(
        payload.email,
        payload.password,
        payload.display_name,
        confirm_password=payload.confirm_password,
    )
    return await _open_session(auth, user)


@router.post("/login", response_model=AuthResponse)
async def login(
    payload: LoginRequest,
    auth: AuthService = Depends(get_auth_service),
) -> AuthResponse:
    """Verify credentials and replace the current session."""
    user = await auth.login(payload.email, payload.password)
    return await _open_session(auth, user)


@router.post("/logout", status_code=status.HTTP_204_NO_CONTENT)
async def logout(
    current_user: User = Depends(get_current_user),
    auth: AuthService = Depends(get_auth_service),
) -> Response:
    """End the caller's session."""
    await auth.logout()
    return Response(status_code=status.HTTP_204_NO_CONTENT)


@router.get("/me", response_model=UserProfile)
async def me(current_user: User = Depends(get_current_user)) -> UserProfile:
    return UserProfile.from_user(current_user)


@router.post("/change-password", response_model=UserProfile)
async def change_password(
    payload: ChangePasswordRequest,
    current_user: User = Depends(get_current_user),
    auth: AuthService = Depends(get_auth_service),
) -> UserProfile:
    user = await auth.change_password(
        current_user.user_id,
        payload.current_password,
        payload.new_password,
        confirm_password=payload.confirm_password,
    )
    return UserProfile.from_user(user)
