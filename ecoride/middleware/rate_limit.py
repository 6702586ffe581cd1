"""
Rate Limit Middleware

Distributed rate limiting using a Redis sorted-set sliding window.
"""

import logging
import time
import uuid
from typing import Callable, Optional, Tuple

import redis.asyncio as redis
from fastapi import Request, Response, status
from fastapi.responses import JSONResponse
from starlette.middleware.base import BaseHTTPMiddleware

from ecoride.config import settings
from ecoride.database import get_redis

logger = logging.getLogger(__name__)


class RateLimitMiddleware(BaseHTTPMiddleware):
    """
    Rate limiting middleware using sliding window algorithm.

    Uses IP-based limiting for anonymous requests and user-based limiting
    for requests carrying X-User-Id. Counters live in Redis so every worker
    shares them. When Redis is unavailable requests are let through.
    """

    EXEMPT_PATHS = ("/health", "/", "/docs", "/redoc", "/openapi.json")

    def __init__(self, app, redis_client: Optional[redis.Redis] = None):
        super().__init__(app)
        self._redis = redis_client
        self.window_size = 60  # 1 minute window

    @property
    def redis(self) -> redis.Redis:
        return self._redis if self._redis is not None else get_redis()

    def _get_key(self, request: Request) -> Tuple[str, int]:
        """
        Get rate limit key and limit based on request.

        Returns (key, limit) tuple.
        """
        user_id = request.headers.get("X-User-Id")
        if user_id:
            return f"ratelimit:user:{user_id}", settings.rate_limit_auth_per_minute

        # Fall back to IP-based limiting
        forwarded = request.headers.get("X-Forwarded-For")
        if forwarded:
            client_ip = forwarded.split(",")[0].strip()
        else:
            client_ip = request.client.host if request.client else "unknown"

        return f"ratelimit:ip:{client_ip}", settings.rate_limit_per_minute

    async def _is_rate_limited(self, key: str, limit: int) -> bool:
        """Record this request and report whether the window is over the limit."""
        now = time.time()
        window_start = now - self.window_size
        member = f"{now}:{uuid.uuid4().hex[:8]}"

        pipe = self.redis.pipeline(transaction=True)
        pipe.zremrangebyscore(key, 0, window_start)
        pipe.zadd(key, {member: now})
        pipe.zcard(key)
        pipe.expire(key, self.window_size)
        results = await pipe.execute()

        if results[2] > limit:
            # Rejected requests do not consume the window
            await self.redis.zrem(key, member)
            return True
        return False

    async def dispatch(self, request: Request, call_next: Callable) -> Response:
        """Process request with rate limiting."""
        if request.url.path in self.EXEMPT_PATHS:
            return await call_next(request)

        key, limit = self._get_key(request)

        try:
            limited = await self._is_rate_limited(key, limit)
        except (RuntimeError, redis.RedisError) as e:
            logger.warning(f"Rate limiter unavailable, allowing request: {e}")
            limited = False

        if limited:
            return JSONResponse(
                status_code=status.HTTP_429_TOO_MANY_REQUESTS,
                content={
                    "detail": "Rate limit exceeded. Please try again later.",
                    "retry_after_seconds": self.window_size
                },
                headers={"Retry-After": str(self.window_size)}
            )

        return await call_next(request)
