"""Middleware components for the SquadSync Booking Platform."""

from .error_handler import ErrorHandlerMiddleware
from .rate_limiter import RateLimiterMiddleware
from .logging import LoggingMiddleware

__all__ = [
    "ErrorHandlerMiddleware",
    "RateLimiterMiddleware",
    "LoggingMiddleware"
]
