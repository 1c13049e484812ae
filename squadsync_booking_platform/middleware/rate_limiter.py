"""
Rate limiting middleware with Redis backend.
"""

import logging
import time
from typing import Dict, Tuple

from fastapi import Request
from starlette.middleware.base import BaseHTTPMiddleware
from starlette.responses import JSONResponse

from ..cache import get_cache
from ..utils.exceptions import RateLimitError

logger = logging.getLogger(__name__)

EXEMPT_PATHS = {"/", "/health", "/health/detailed", "/docs", "/redoc", "/openapi.json"}


class RateLimiterMiddleware(BaseHTTPMiddleware):
    """
    Sliding-window rate limiting per client IP and endpoint group.

    When Redis is unavailable every request is allowed.
    """

    def __init__(
        self,
        app,
        default_limit: int = 100,
        default_window: int = 60,
        burst_limit: int = 20,
        burst_window: int = 1
    ):
        super().__init__(app)
        self.default_limit = default_limit
        self.default_window = default_window
        self.burst_limit = burst_limit
        self.burst_window = burst_window
        self.cache = get_cache()

        self.endpoint_limits: Dict[str, Dict[str, int]] = {
            "/api/v1/bookings": {"limit": 30, "window": 60},
            "/api/v1/auth/login": {"limit": 5, "window": 300},
            "/api/v1/auth/class-login": {"limit": 5, "window": 300},
            "/api/v1/auth/register": {"limit": 3, "window": 300},
            "/api/v1/classes/register": {"limit": 3, "window": 300},
        }

    async def dispatch(self, request: Request, call_next):
        if request.url.path in EXEMPT_PATHS or not self.cache.available:
            return await call_next(request)

        client_ip = self._get_client_ip(request)
        endpoint = self._get_endpoint_pattern(request.url.path)

        exceeded, retry_after = await self._check(
            f"rate_limit:burst:{client_ip}", self.burst_limit, self.burst_window
        )
        if exceeded:
            return self._create_rate_limit_response(self.burst_limit, self.burst_window, retry_after)

        limit, window = self._limit_for(endpoint)
        key = f"rate_limit:{endpoint}:ip:{client_ip}"
        exceeded, retry_after = await self._check(key, limit, window)
        if exceeded:
            return self._create_rate_limit_response(limit, window, retry_after)

        response = await call_next(request)
        await self._add_rate_limit_headers(response, key, limit, window)
        return response

    def _get_client_ip(self, request: Request) -> str:
        forwarded_for = request.headers.get("x-forwarded-for")
        if forwarded_for:
            return forwarded_for.split(",")[0].strip()

        real_ip = request.headers.get("x-real-ip")
        if real_ip:
            return real_ip

        return request.client.host if request.client else "unknown"

    def _get_endpoint_pattern(self, path: str) -> str:
        for pattern in self.endpoint_limits:
            if path.startswith(pattern):
                return pattern
        return "default"

    def _limit_for(self, endpoint: str) -> Tuple[int, int]:
        config = self.endpoint_limits.get(endpoint)
        if config is None:
            return self.default_limit, self.default_window
        return config["limit"], config["window"]

    async def _check(self, key: str, limit: int, window: int) -> Tuple[bool, int]:
        """Record this request and report whether the window was already full."""
        now = time.time()
        current_count = await self.cache.record_hit(key, now, window)
        if current_count < limit:
            return False, 0

        oldest = await self.cache.zrange(key, 0, 0, withscores=True)
        if oldest:
            retry_after = max(1, int(oldest[0][1] + window - now))
        else:
            retry_after = window
        return True, retry_after

    async def _add_rate_limit_headers(self, response, key: str, limit: int, window: int) -> None:
        current_count = await self.cache.zcard(key)
        response.headers["X-RateLimit-Limit"] = str(limit)
        response.headers["X-RateLimit-Remaining"] = str(max(0, limit - current_count))
        response.headers["X-RateLimit-Window"] = str(window)

    def _create_rate_limit_response(self, limit: int, window: int, retry_after: int) -> JSONResponse:
        error = RateLimitError(limit, window, retry_after)
        logger.warning(f"Rate limit exceeded: {limit} per {window}s")

        return JSONResponse(
            status_code=429,
            content={"error": error.to_dict()},
            headers={
                "Retry-After": str(retry_after),
                "X-RateLimit-Limit": str(limit),
                "X-RateLimit-Window": str(window)
            }
        )
