"""
Health check utilities for verifying service dependencies.
"""
import asyncio
from typing import Any, Dict, Optional

from config import settings
from src.utils import get_logger

logger = get_logger(__name__)


async def check_reasoning_api() -> Dict[str, Any]:
    """Check that the reasoning provider is configured."""
    if not settings.reasoning_api_key:
        return {"status": False, "error": "API key not configured"}
    if len(settings.reasoning_api_key) < 10:
        return {"status": False, "error": "API key appears invalid"}
    return {"status": True, "message": "API key configured"}


async def check_image_api() -> Dict[str, Any]:
    """Check that the image provider is configured."""
    if not settings.image_api_key:
        return {"status": False, "error": "API key not configured"}
    if len(settings.image_api_key) < 10:
        return {"status": False, "error": "API key appears invalid"}
    return {"status": True, "message": "API key configured"}


async def check_image_storage() -> Dict[str, Any]:
    """Check that durable image hosting is configured."""
    if not settings.storage_url or not settings.storage_service_key:
        return {"status": False, "error": "Storage not configured"}
    return {"status": True, "message": f"Bucket {settings.storage_bucket}"}


async def check_database(pool: Optional[Any] = None) -> Dict[str, Any]:
    """Check the database pool with a trivial query."""
    if pool is None:
        return {"status": False, "error": "Database not connected (in-memory cache)"}
    try:
        async with pool.acquire() as conn:
            await conn.fetchval("SELECT 1")
        return {"status": True, "message": "Database reachable"}
    except Exception as e:
        logger.error("health.database.failed", error=str(e))
        return {"status": False, "error": str(e)}


async def perform_health_checks(pool: Optional[Any] = None) -> Dict[str, Dict[str, Any]]:
    """
    Perform all health checks concurrently.

    Returns:
        Dictionary with health check results for each service
    """
    names = ("reasoning_api", "image_api", "image_storage", "database")
    results = await asyncio.gather(
        check_reasoning_api(),
        check_image_api(),
        check_image_storage(),
        check_database(pool),
        return_exceptions=True,
    )

    checks = {
        name: result if not isinstance(result, Exception) else {"status": False, "error": str(result)}
        for name, result in zip(names, results)
    }

    logger.info(
        "health.checks.completed",
        all_healthy=all(check.get("status", False) for check in checks.values()),
        **{name: check.get("status") for name, check in checks.items()}
    )
    return checks
