"""Tests for FixedWindowThrottle with a mocked Redis client."""

from unittest.mock import AsyncMock

from src.bd_common.redis_client import FixedWindowThrottle


def _redis(count: int) -> AsyncMock:
    redis = AsyncMock()
    redis.incr.return_value = count
    return redis


class TestFixedWindowThrottle:
    async def test_first_hit_sets_expiry(self) -> None:
        redis = _redis(1)
        throttle = FixedWindowThrottle(redis)

        assert await throttle.allow("k", 5, 60) is True
        redis.incr.assert_awaited_once_with("k")
        redis.expire.assert_awaited_once_with("k", 60)

    async def test_later_hits_do_not_reset_window(self) -> None:
        redis = _redis(3)
        assert await FixedWindowThrottle(redis).allow("k", 5, 60) is True
        redis.expire.assert_not_awaited()

    async def test_limit_is_inclusive(self) -> None:
        assert await FixedWindowThrottle(_redis(5)).allow("k", 5, 60) is True

    async def test_over_limit_denied(self) -> None:
        assert await FixedWindowThrottle(_redis(6)).allow("k", 5, 60) is False
