"""
Fixed-window request limits kept in Redis.

Each (prefix, client) pair owns one counter key that expires with its window,
so every worker process shares the same budget.
"""

import logging
from typing import Optional

import redis
from fastapi import HTTPException, Request, status

from .config import RATE_LIMIT_ENABLED, REDIS_URL

logger = logging.getLogger(__name__)

_redis_client: Optional[redis.Redis] = None


def get_redis_client() -> redis.Redis:
    """Lazily connect on first use so imports never need a running Redis"""
    global _redis_client

    if _redis_client is None:
        logger.info("🔄 Connecting to Redis for rate limiting...")
        client = redis.from_url(
            REDIS_URL,
            decode_responses=True,
            socket_connect_timeout=5,
            socket_timeout=5,
            health_check_interval=30,
        )
        client.ping()
        _redis_client = client
        logger.info("Redis connected")

    return _redis_client


def client_identifier(request: Request) -> str:
    # First hop of X-Forwarded-For when running behind a proxy
    forwarded = request.headers.get("X-Forwarded-For")
    if forwarded:
        return forwarded.split(",")[0].strip()
    return request.client.host if request.client else "unknown"


def register_hit(client: redis.Redis, key: str, window_seconds: int) -> tuple[int, int]:
    """
    Count one request against the key's current window.

    Returns:
        Tuple of (requests in this window, seconds until the window resets)
    """
    pipe = client.pipeline()
    pipe.incr(key)
    pipe.ttl(key)
    count, ttl = pipe.execute()
    if ttl < 0:
        # First hit of the window, or a key that lost its expiry
        client.expire(key, window_seconds)
        ttl = window_seconds
    return int(count), int(ttl)


def create_rate_limiter(limit: int, window_seconds: int, key_prefix: str = "rate_limit"):
    """
    Build a dependency that allows `limit` requests per client per window.

    Example:
        login_limiter = create_rate_limiter(limit=20, window_seconds=300, key_prefix="login")

        @router.post("/login")
        async def login(data: LoginRequest, _: None = Depends(login_limiter)):
            ...
    """

    async def rate_limiter(request: Request) -> None:
        if not RATE_LIMIT_ENABLED:
            return

        key = f"{key_prefix}:{client_identifier(request)}"
        try:
            count, ttl = register_hit(get_redis_client(), key, window_seconds)
        except redis.RedisError as e:
            # Fail closed: login and register stay protected while Redis is down
            logger.error(f"❌ Rate limit check failed for {key}: {e}")
            raise HTTPException(
                status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
                detail="Rate limiting service temporarily unavailable",
            ) from e

        if count > limit:
            logger.warning(f"🚫 Rate limit exceeded for {key} ({count}/{limit})")
            raise HTTPException(
                status_code=status.HTTP_429_TOO_MANY_REQUESTS,
                detail=f"Too many requests. Maximum {limit} requests per {window_seconds} seconds.",
                headers={"Retry-After": str(ttl)},
            )

    return rate_limiter
