"""
Account creation, credential checks and the current session.
"""

from __future__ import annotations

from typing import Callable, Optional

import structlog

from ..core import keys
from ..core.config import Settings
from ..core.exceptions import (
    BadRequestError,
    ConflictError,
    InvalidCredentialsError,
    NotFoundError,
)
from ..core.kv_store import KeyNotFoundError, KeyValueStore
from ..core.security import (
    generate_id,
    hash_password,
    normalize_email,
    sanitize_input,
    utc_now,
    verify_password,
)
from ..models.user import User
from .rate_limiter import LoginRateLimiter
from .saga import Saga
from .session import SessionManager, SessionRecord

logger = structlog.get_logger(__name__)


class AuthService:
    """Users, logins and the single active session of a store."""

    def __init__(
        self,
        store: KeyValueStore,
        rate_limiter: LoginRateLimiter,
        sessions: SessionManager,
        *,
        password_salt: str,
        password_iterations: int,
        password_min_length: int = 8,
        clock: Callable = utc_now,
    ):
        self.store = store
        self.rate_limiter = rate_limiter
        self.sessions = sessions
        self.password_salt = password_salt
        self.password_iterations = password_iterations
        self.password_min_length = password_min_length
        self.clock = clock

    @classmethod
    def from_settings(
        cls,
        settings: Settings,
        store: KeyValueStore,
        rate_limiter: LoginRateLimiter,
    ) -> "AuthService":
        return cls(
            store,
            rate_limiter,
            SessionManager(store, timeout_seconds=settings.session_timeout_seconds),
            password_salt=settings.password_hash_salt,
            password_iterations=settings.password_hash_iterations,
            password_min_length=settings.password_min_length,
        )

    def _hash(self, password: str) -> str:
        return hash_password(password, self.password_salt, self.password_iterations)

    def _validate_password(self, password: str, confirm_password: Optional[str]) -> None:
        if len(password) < self.password_min_length:
            raise BadRequestError(
                f"Password must be at least {self.password_min_length} characters",
                code="WEAK_PASSWORD",
            )
        if confirm_password is not None and password != confirm_password:
            raise BadRequestError("Passwords do not match", code="PASSWORD_MISMATCH")

    async def get_user(self, user_id: str) -> Optional[User]:
        try:
            raw = await self.store.get(keys.user_key(user_id))
        except KeyNotFoundError:
            return None
        try:
            return User.from_json(raw)
        except ValueError:
            logger.warning("Corrupted user record treated as missing", user_id=user_id)
            return None

    async def _lookup_user_id(self, email: str) -> Optional[str]:
        try:
            return await self.store.get(keys.user_email_key(email))
        except KeyNotFoundError:
            return None

    async def create_account(
        self,
        email: str,
        password: str,
        display_name: str,
        confirm_password: Optional[str] = None,
    ) -> User:
        """Register a new user; the e-mail index entry guards uniqueness."""
        normalized_email = normalize_email(email)
        if not normalized_email:
            raise BadRequestError("Email is required")
        self._validate_password(password, confirm_password)

        if await self._lookup_user_id(normalized_email) is not None:
            logger.warning("Email already exists", email=normalized_email)
            raise ConflictError("An account with this email already exists", code="DUPLICATE_EMAIL")

        now = self.clock()
        user = User(
            user_id=generate_id("user"),
            email=normalized_email,
            password_hash=self._hash(password),
            display_name=sanitize_input(display_name),
            created_at=now,
            last_login_at=now,
        )
        user_key = keys.user_key(user.user_id)

        saga = Saga("create_account", user_id=user.user_id)
        saga.add_step(
            "write_user",
            lambda: self.store.set(user_key, user.to_json()),
            compensate=lambda: self.store.delete(user_key),
        )
        saga.add_step(
            "index_email",
            lambda: self.store.set(keys.user_email_key(normalized_email), user.user_id),
        )
        await saga.run()

        logger.info("User registered", user_id=user.user_id, email=normalized_email)
        return user

    async def login(self, email: str, password: str) -> User:
        """
        Verify credentials for ``email``.

        Unknown e-mails and wrong passwords raise the same
        :class:`InvalidCredentialsError` and both count towards lockout.
        """
        normalized_email = normalize_email(email)
        await self.rate_limiter.check(normalized_email)

        user = None
        user_id = await self._lookup_user_id(normalized_email)
        if user_id is not None:
            user = await self.get_user(user_id)

        if user is None or not verify_password(
            password, user.password_hash, self.password_salt, self.password_iterations
        ):
            failures = await self.rate_limiter.record_failure(normalized_email)
            logger.warning("Invalid credentials", email=normalized_email, failures=failures)
            raise InvalidCredentialsError()

        await self.rate_limiter.reset(normalized_email)

        user = user.model_copy(update={"last_login_at": self.clock()})
        await self.store.set(keys.user_key(user.user_id), user.to_json())
        logger.info("User logged in", user_id=user.user_id)
        return user

    async def change_password(
        self,
        user_id: str,
        current_password: str,
        new_password: str,
        confirm_password: Optional[str] = None,
    ) -> User:
        user = await self.get_user(user_id)
        if user is None:
            raise NotFoundError("User not found", code="USER_NOT_FOUND")
        if not verify_password(current_password, user.password_hash, self.password_salt, self.password_iterations):
            raise InvalidCredentialsError("Current password is incorrect")
        self._validate_password(new_password, confirm_password)

        user = user.model_copy(update={"password_hash": self._hash(new_password)})
        await self.store.set(keys.user_key(user.user_id), user.to_json())
        logger.info("Password changed", user_id=user.user_id)
        return user

    async def start_session(self, user: User) -> SessionRecord:
        return await self.sessions.start(user.user_id)

    async def current_user(self, token: Optional[str]) -> Optional[User]:
        """The user of the live session if ``token`` is its csrfToken, else None."""
        user_id = await self.sessions.resolve_user_id(token)
        if user_id is None:
            return None
        return await self.get_user(user_id)

    async def logout(self) -> None:
        await self.sessions.end()
