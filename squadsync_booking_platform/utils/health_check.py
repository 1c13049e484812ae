"""
Health check utilities for monitoring service dependencies.
"""

import asyncio
import logging
import smtplib
import ssl
import time
from typing import Any, Dict, List, Optional

from sqlalchemy import text

from ..cache import get_cache
from ..config import get_settings
from ..database import get_db_session
from .time_utils import utcnow

logger = logging.getLogger(__name__)

STARTED_AT = time.time()


class HealthCheckResult:
    """Result of a health check."""

    def __init__(
        self,
        service: str,
        healthy: bool,
        response_time: float,
        details: Optional[Dict[str, Any]] = None,
        critical: bool = True
    ):
        self.service = service
        self.healthy = healthy
        self.response_time = response_time
        self.details = details or {}
        self.critical = critical
        self.timestamp = utcnow().isoformat()

    def to_dict(self) -> Dict[str, Any]:
        return {
            "service": self.service,
            "healthy": self.healthy,
            "critical": self.critical,
            "response_time": round(self.response_time, 4),
            "details": self.details,
            "timestamp": self.timestamp
        }


async def check_database_health() -> HealthCheckResult:
    """Check database connectivity."""
    start_time = time.time()

    try:
        async with get_db_session() as db:
            result = await db.execute(text("SELECT 1"))
            value = result.scalar_one()

        return HealthCheckResult(
            service="database",
            healthy=value == 1,
            response_time=time.time() - start_time,
            details={"query": "SELECT 1"}
        )
    except Exception as e:
        logger.error(f"Database health check failed: {e}")
        return HealthCheckResult(
            service="database",
            healthy=False,
            response_time=time.time() - start_time,
            details={"error": str(e), "error_type": type(e).__name__}
        )


async def check_redis_health() -> HealthCheckResult:
    """
    Check Redis with a set/get/delete round trip.

    Redis only backs caching, locks and rate limits, so it is not critical.
    """
    start_time = time.time()
    cache = get_cache()

    if not cache.available:
        return HealthCheckResult(
            service="redis",
            healthy=False,
            response_time=0.0,
            details={"error": "Redis not connected; caching and locks disabled"},
            critical=False
        )

    test_key = "health_check:test"
    test_value = "health_check_value"

    await cache.set(test_key, test_value, ttl=10)
    retrieved_value = await cache.get(test_key)
    await cache.delete(test_key)

    return HealthCheckResult(
        service="redis",
        healthy=retrieved_value == test_value,
        response_time=time.time() - start_time,
        details={"operations": ["set", "get", "delete"]},
        critical=False
    )


async def check_celery_health() -> HealthCheckResult:
    """Check that at least one Celery worker answers."""
    start_time = time.time()

    try:
        from ..tasks.celery_app import celery_app

        stats = await asyncio.to_thread(lambda: celery_app.control.inspect(timeout=1.0).stats())
        if stats:
            return HealthCheckResult(
                service="celery",
                healthy=True,
                response_time=time.time() - start_time,
                details={"active_workers": len(stats), "workers": list(stats.keys())},
                critical=False
            )
        return HealthCheckResult(
            service="celery",
            healthy=False,
            response_time=time.time() - start_time,
            details={"error": "No active Celery workers found"},
            critical=False
        )
    except Exception as e:
        logger.error(f"Celery health check failed: {e}")
        return HealthCheckResult(
            service="celery",
            healthy=False,
            response_time=time.time() - start_time,
            details={"error": str(e), "error_type": type(e).__name__},
            critical=False
        )


def _probe_smtp() -> None:
    settings = get_settings()
    with smtplib.SMTP(settings.smtp_server, settings.smtp_port, timeout=5) as server:
        if settings.smtp_use_tls:
            server.starttls(context=ssl.create_default_context())
        if settings.smtp_username and settings.smtp_password:
            server.login(settings.smtp_username, settings.smtp_password)


async def check_smtp_health() -> HealthCheckResult:
    """Check SMTP server connectivity."""
    start_time = time.time()
    settings = get_settings()

    try:
        await asyncio.to_thread(_probe_smtp)
        return HealthCheckResult(
            service="smtp",
            healthy=True,
            response_time=time.time() - start_time,
            details={"server": settings.smtp_server, "port": settings.smtp_port},
            critical=False
        )
    except (smtplib.SMTPException, OSError) as e:
        logger.error(f"SMTP health check failed: {e}")
        return HealthCheckResult(
            service="smtp",
            healthy=False,
            response_time=time.time() - start_time,
            details={"error": str(e), "error_type": type(e).__name__},
            critical=False
        )


async def get_health_status() -> Dict[str, Any]:
    """
    Get health status of all dependencies.

    The service is ``healthy`` when every check passes, ``degraded`` when only
    non-critical checks fail and ``unhealthy`` when the database is down.
    """
    start_time = time.time()

    checks: List[HealthCheckResult] = list(await asyncio.gather(
        check_database_health(),
        check_redis_health(),
        check_celery_health(),
    ))
    if get_settings().smtp_server:
        checks.append(await check_smtp_health())

    if all(check.healthy for check in checks):
        overall = "healthy"
    elif all(check.healthy for check in checks if check.critical):
        overall = "degraded"
    else:
        overall = "unhealthy"

    results = [check.to_dict() for check in checks]
    return {
        "status": overall,
        "timestamp": utcnow().isoformat(),
        "uptime_seconds": round(time.time() - STARTED_AT, 1),
        "total_check_time": round(time.time() - start_time, 4),
        "services": results,
        "summary": {
            "total_services": len(results),
            "healthy_services": sum(1 for r in results if r["healthy"]),
            "unhealthy_services": sum(1 for r in results if not r["healthy"])
        }
    }
