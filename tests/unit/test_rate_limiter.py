"""
Tests for services/rate_limiter.py - login lockout bookkeeping
"""

from unittest.mock import AsyncMock

import pytest

from echo_audit.core.exceptions import RateLimitedError
from echo_audit.services.rate_limiter import InMemoryLoginRateLimiter, RedisLoginRateLimiter


@pytest.fixture
def limiter(clock):
    return InMemoryLoginRateLimiter(max_attempts=3, lockout_seconds=120, clock=clock)


class TestInMemoryLoginRateLimiter:

    @pytest.mark.asyncio
    async def test_allows_until_threshold(self, limiter):
        for expected in (1, 2):
            assert await limiter.record_failure("a@example.com") == expected
            await limiter.check("a@example.com")

        assert await limiter.record_failure("a@example.com") == 3
        with pytest.raises(RateLimitedError) as exc_info:
            await limiter.check("a@example.com")
        assert exc_info.value.retry_after_seconds == 120

    @pytest.mark.asyncio
    async def test_counters_are_per_email(self, limiter):
        for _ in range(3):
            await limiter.record_failure("a@example.com")

        await limiter.check("b@example.com")

    @pytest.mark.asyncio
    async def test_remaining_time_rounds_up(self, limiter, clock):
        for _ in range(3):
            await limiter.record_failure("a@example.com")
        clock.advance(59.5)

        with pytest.raises(RateLimitedError) as exc_info:
            await limiter.check("a@example.com")
        assert exc_info.value.retry_after_seconds == 61

    @pytest.mark.asyncio
    async def test_expired_lockout_is_cleared(self, limiter, clock):
        for _ in range(3):
            await limiter.record_failure("a@example.com")
        clock.advance(120)

        await limiter.check("a@example.com")
        assert await limiter.record_failure("a@example.com") == 1

    @pytest.mark.asyncio
    async def test_reset(self, limiter):
        for _ in range(3):
            await limiter.record_failure("a@example.com")
        await limiter.reset("a@example.com")

        await limiter.check("a@example.com")

    @pytest.mark.asyncio
    async def test_idle_entries_are_dropped(self, limiter, clock):
        for i in range(50):
            await limiter.record_failure(f"user{i}@example.com")
        clock.advance(121)

        await limiter.record_failure("fresh@example.com")

        assert list(limiter._attempts) == ["fresh@example.com"]

    @pytest.mark.asyncio
    async def test_recent_entries_survive_pruning(self, limiter, clock):
        await limiter.record_failure("old@example.com")
        clock.advance(100)
        await limiter.record_failure("recent@example.com")
        clock.advance(30)

        await limiter.check("recent@example.com")

        assert list(limiter._attempts) == ["recent@example.com"]
        assert await limiter.record_failure("recent@example.com") == 2


class TestRedisLoginRateLimiter:

    @pytest.fixture
    def client(self):
        client = AsyncMock()
        client.hgetall.return_value = {}
        return client

    @pytest.mark.asyncio
    async def test_record_failure_writes_hash_with_expiry(self, client, clock):
        limiter = RedisLoginRateLimiter(client, max_attempts=5, lockout_seconds=900, clock=clock)

        assert await limiter.record_failure("a@example.com") == 1

        client.hset.assert_awaited_once_with(
            "login_attempts:a@example.com",
            mapping={"count": 1, "last_attempt": clock()},
        )
        client.expire.assert_awaited_once_with("login_attempts:a@example.com", 1800)

    @pytest.mark.asyncio
    async def test_check_reads_shared_counter(self, client, clock):
        client.hgetall.return_value = {"count": "5", "last_attempt": str(clock())}
        limiter = RedisLoginRateLimiter(client, max_attempts=5, lockout_seconds=900, clock=clock)

        with pytest.raises(RateLimitedError):
            await limiter.check("a@example.com")

    @pytest.mark.asyncio
    async def test_reset_deletes_key(self, client, clock):
        limiter = RedisLoginRateLimiter(client, clock=clock)
        await limiter.reset("a@example.com")

        client.delete.assert_awaited_once_with("login_attempts:a@example.com")
