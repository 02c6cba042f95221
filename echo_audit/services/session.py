"""
Single active session stored under ``current_session``.

Two payload formats exist in stores:

* legacy: the bare user id, either as a plain string or a JSON string
* current: ``{"userId": ..., "lastActivity": <epoch ms>, "csrfToken": ...}``

The format is detected once by ``parse_session``. Callers prove they own
the session by presenting its csrfToken; only current sessions expire.
"""

from __future__ import annotations

import json
import time
from dataclasses import dataclass
from typing import Callable, Optional, Union

import structlog
from passlib.utils import consteq

from ..core.keys import CURRENT_SESSION_KEY
from ..core.kv_store import KeyNotFoundError, KeyValueStore
from ..core.security import generate_csrf_token

logger = structlog.get_logger(__name__)


@dataclass(frozen=True)
class LegacySession:
    user_id: str


@dataclass(frozen=True)
class SessionRecord:
    user_id: str
    last_activity: int
    csrf_token: Optional[str] = None

    def to_json(self) -> str:
        payload = {"userId": self.user_id, "lastActivity": self.last_activity}
        if self.csrf_token:
            payload["csrfToken"] = self.csrf_token
        return json.dumps(payload)


Session = Union[LegacySession, SessionRecord]


def parse_session(raw: str) -> Optional[Session]:
    """Decode a stored session payload; returns None for unusable payloads."""
    text = raw.strip()
    if not text:
        return None

    if text.startswith("{"):
        try:
            data = json.loads(text)
        except ValueError:
            return None
        user_id = data.get("userId")
        if not isinstance(user_id, str) or not user_id:
            return None
        last_activity = data.get("lastActivity")
        if not isinstance(last_activity, (int, float)):
            last_activity = 0
        csrf_token = data.get("csrfToken")
        return SessionRecord(
            user_id=user_id,
            last_activity=int(last_activity),
            csrf_token=csrf_token if isinstance(csrf_token, str) else None,
        )

    if text.startswith('"'):
        try:
            value = json.loads(text)
        except ValueError:
            return None
        return LegacySession(value) if isinstance(value, str) and value else None

    return LegacySession(text)


class SessionManager:
    """Reads, refreshes and expires the current session."""

    def __init__(
        self,
        store: KeyValueStore,
        timeout_seconds: float = 24 * 60 * 60,
        clock: Callable[[], float] = time.time,
    ):
        self.store = store
        self.timeout_ms = int(timeout_seconds * 1000)
        self.clock = clock

    def _now_ms(self) -> int:
        return int(self.clock() * 1000)

    async def start(self, user_id: str, csrf_token: Optional[str] = None) -> SessionRecord:
        session = SessionRecord(
            user_id=user_id,
            last_activity=self._now_ms(),
            csrf_token=csrf_token or generate_csrf_token(),
        )
        await self.store.set(CURRENT_SESSION_KEY, session.to_json())
        return session

    async def read(self) -> Optional[Session]:
        try:
            raw = await self.store.get(CURRENT_SESSION_KEY)
        except KeyNotFoundError:
            return None
        return parse_session(raw)

    async def end(self) -> None:
        await self.store.delete(CURRENT_SESSION_KEY)

    async def resolve_user_id(self, token: Optional[str]) -> Optional[str]:
        """
        Return the session's user id when ``token`` matches its csrfToken.

        Returns None when there is no live session or the token is missing
        or wrong. Legacy sessions carry no token, so no caller can present
        one; they stay in the store until the next login replaces them.
        Reading an active session refreshes its ``lastActivity``; an idle
        one is torn down.
        """
        if not token:
            return None

        session = await self.read()
        if session is None:
            return None

        if isinstance(session, LegacySession) or not session.csrf_token:
            logger.info("Session has no token to match", user_id=session.user_id)
            return None

        if not consteq(token, session.csrf_token):
            logger.warning("Session token mismatch")
            return None

        idle_ms = self._now_ms() - session.last_activity
        if idle_ms > self.timeout_ms:
            logger.info("Session expired", user_id=session.user_id, idle_seconds=idle_ms // 1000)
            await self.end()
            return None

        await self.start(session.user_id, csrf_token=session.csrf_token)
        return session.user_id
