"""
Rate Limiting Module

Sliding-window rate limiting for the public authentication endpoints, backed
by Redis sorted sets. Falls back to in-memory storage when Redis is not
connected.

Limits applied:
- Signup: bounds how many OTP emails one address can trigger
- OTP verification: bounds brute forcing of a six-digit code
- Login: bounds password guessing
"""

import logging
import time

from fastapi import HTTPException, status
from redis.asyncio import Redis
from redis.exceptions import RedisError

from beacon_api.core.redis import get_redis

logger = logging.getLogger(__name__)

# In-memory fallback storage: {key: [timestamp, ...]}
_memory_store: dict[str, list[float]] = {}

SIGNUP_LIMIT = (5, 3600)
VERIFY_OTP_LIMIT = (10, 600)
LOGIN_LIMIT = (10, 300)


class RateLimitExceeded(HTTPException):
    """Exception raised when rate limit is exceeded."""

    def __init__(self, limit: int, window_seconds: int):
        super().__init__(
            status_code=status.HTTP_429_TOO_MANY_REQUESTS,
            detail={
                "error": "RATE_LIMIT_EXCEEDED",
                "message": f"Rate limit exceeded. Maximum {limit} requests per {window_seconds} seconds.",
                "retry_after_seconds": window_seconds,
            },
            headers={"Retry-After": str(window_seconds)},
        )


async def _check_rate_limit_redis(
    client: Redis,
    key: str,
    limit: int,
    window_seconds: int,
) -> bool:
    """
    Check rate limit using a Redis sorted set.

    Args:
        client: Redis client
        key: Rate limit key (e.g., "rate_limit:signup:user@example.com")
        limit: Maximum requests allowed
        window_seconds: Time window in seconds

    Returns:
        True if request is allowed, False if rate limit exceeded
    """
    now = time.time()
    window_start = now - window_seconds

    pipe = client.pipeline()
    pipe.zremrangebyscore(key, 0, window_start)
    pipe.zcard(key)
    pipe.zadd(key, {str(now): now})
    pipe.expire(key, window_seconds)

    results = await pipe.execute()
    current_count = results[1]

    return current_count < limit


def _check_rate_limit_memory(key: str, limit: int, window_seconds: int) -> bool:
    """
    Check rate limit using in-memory storage.

    Does not coordinate across multiple server instances.
    """
    now = time.time()
    window_start = now - window_seconds

    timestamps = [ts for ts in _memory_store.get(key, []) if ts > window_start]

    if len(timestamps) >= limit:
        _memory_store[key] = timestamps
        return False

    timestamps.append(now)
    _memory_store[key] = timestamps
    return True


async def check_rate_limit(key: str, limit: int, window_seconds: int) -> bool:
    """
    Check if a request is within rate limits.

    Tries Redis first, falls back to in-memory storage.

    Returns:
        True if request is allowed, False if rate limit exceeded
    """
    client = get_redis()

    if client is not None:
        try:
            return await _check_rate_limit_redis(client, key, limit, window_seconds)
        except RedisError as e:
            logger.warning(f"Redis rate limit check failed, using memory: {e}")

    return _check_rate_limit_memory(key, limit, window_seconds)


async def enforce_rate_limit(action: str, identity: str, limit_window: tuple[int, int]) -> None:
    """
    Raise RateLimitExceeded when ``identity`` has exhausted its budget for ``action``.

    Args:
        action: Action name (e.g., "signup", "verify_otp")
        identity: Who is being limited, usually a normalized email
        limit_window: (limit, window_seconds)
    """
    limit, window_seconds = limit_window
    key = f"rate_limit:{action}:{identity}"

    if not await check_rate_limit(key, limit, window_seconds):
        logger.warning(f"Rate limit exceeded for {action}: {limit}/{window_seconds}s")
        raise RateLimitExceeded(limit, window_seconds)


def reset_memory_store() -> None:
    """Clear the in-memory fallback store."""
    _memory_store.clear()


__all__ = [
    "LOGIN_LIMIT",
    "SIGNUP_LIMIT",
    "VERIFY_OTP_LIMIT",
    "RateLimitExceeded",
    "check_rate_limit",
    "enforce_rate_limit",
    "reset_memory_store",
]
