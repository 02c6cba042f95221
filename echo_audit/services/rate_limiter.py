"""
Failed-login tracking per e-mail address.

State lives in the limiter instance, which the auth service receives at
construction. ``InMemoryLoginRateLimiter`` only covers one process;
deployments running several workers should use
``RedisLoginRateLimiter`` so every worker sees the same counters.
"""

from __future__ import annotations

import math
import time
from abc import ABC, abstractmethod
from collections import OrderedDict
from dataclasses import dataclass
from typing import Callable, Optional

import redis.asyncio as redis
import structlog

from ..core.exceptions import RateLimitedError

logger = structlog.get_logger(__name__)


@dataclass
class LoginAttempts:
    count: int
    last_attempt: float


class LoginRateLimiter(ABC):
    """Locks an e-mail out after ``max_attempts`` failures within ``lockout_seconds``."""

    def __init__(
        self,
        max_attempts: int = 5,
        lockout_seconds: float = 15 * 60,
        clock: Callable[[], float] = time.time,
    ):
        self.max_attempts = max_attempts
        self.lockout_seconds = lockout_seconds
        self.clock = clock

    @abstractmethod
    async def _get(self, email: str) -> Optional[LoginAttempts]: ...

    @abstractmethod
    async def _put(self, email: str, attempts: LoginAttempts) -> None: ...

    @abstractmethod
    async def reset(self, email: str) -> None:
        """Forget all failures for ``email``."""

    async def check(self, email: str) -> None:
        """Raise :class:`RateLimitedError` while ``email`` is locked out."""
        attempts = await self._get(email)
        if attempts is None or attempts.count < self.max_attempts:
            return

        elapsed = self.clock() - attempts.last_attempt
        if elapsed < self.lockout_seconds:
            remaining = math.ceil(self.lockout_seconds - elapsed)
            logger.warning("Login locked out", email=email, retry_after=remaining)
            raise RateLimitedError(retry_after_seconds=remaining)

        await self.reset(email)

    async def record_failure(self, email: str) -> int:
        """Count one failed attempt and return the new total."""
        current = await self._get(email)
        count = (current.count if current else 0) + 1
        await self._put(email, LoginAttempts(count=count, last_attempt=self.clock()))
        return count


class InMemoryLoginRateLimiter(LoginRateLimiter):
    """
    Process-lifetime counters.

    Entries are kept in order of their last failure, so those idle for a
    full ``lockout_seconds`` are dropped from the front on each access.
    """

    def __init__(self, *args, **kwargs):
        super().__init__(*args, **kwargs)
        self._attempts: OrderedDict[str, LoginAttempts] = OrderedDict()

    def _prune(self) -> None:
        cutoff = self.clock() - self.lockout_seconds
        while self._attempts:
            email, attempts = next(iter(self._attempts.items()))
            if attempts.last_attempt > cutoff:
                break
            del self._attempts[email]

    async def _get(self, email: str) -> Optional[LoginAttempts]:
        self._prune()
        return self._attempts.get(email)

    async def _put(self, email: str, attempts: LoginAttempts) -> None:
        self._attempts[email] = attempts
        self._attempts.move_to_end(email)

    async def reset(self, email: str) -> None:
        self._attempts.pop(email, None)


class RedisLoginRateLimiter(LoginRateLimiter):
    """Counters shared across processes through Redis hashes."""

    key_prefix = "login_attempts:"

    def __init__(self, client: redis.Redis, *args, **kwargs):
        super().__init__(*args, **kwargs)
        self.client = client

    def _key(self, email: str) -> str:
        return f"{self.key_prefix}{email}"

    async def _get(self, email: str) -> Optional[LoginAttempts]:
        data = await self.client.hgetall(self._key(email))
        if not data:
            return None
        return LoginAttempts(count=int(data["count"]), last_attempt=float(data["last_attempt"]))

    async def _put(self, email: str, attempts: LoginAttempts) -> None:
        key = self._key(email)
        await self.client.hset(key, mapping={"count": attempts.count, "last_attempt": attempts.last_attempt})
        await self.client.expire(key, int(self.lockout_seconds) * 2)

    async def reset(self, email: str) -> None:
        await self.client.delete(self._key(email))
