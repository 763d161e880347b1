"""
Database client module.

Provides the application-wide asyncpg pool with connection lifecycle
management. The overlay pack store borrows this pool; it does not close it.
"""
import asyncio
from typing import Optional

import asyncpg

from config import settings
from overlay_packs.services.cache_store import OVERLAY_PACKS_DDL
from src.utils import get_logger

logger = get_logger(__name__)

# Global pool instance, set by connect_db()
_pool: Optional[asyncpg.Pool] = None


async def connect_db(dsn: Optional[str] = None, max_retries: int = 3, retry_delay: float = 2.0) -> Optional[asyncpg.Pool]:
    """
    Create the connection pool and ensure the overlay_packs schema exists.

    Should be called once during application startup. Retries with
    exponential backoff; when every attempt fails the application starts
    without a database and cache operations fall back to misses.
    """
    global _pool

    dsn = dsn or settings.database_url
    if not dsn:
        logger.warning("database.not_configured")
        return None

    for attempt in range(max_retries):
        try:
            logger.info("database.connecting", attempt=attempt + 1, max_retries=max_retries)
            pool = await asyncpg.create_pool(dsn, min_size=1, max_size=10)
            async with pool.acquire() as conn:
                await conn.execute(OVERLAY_PACKS_DDL)
            _pool = pool
            logger.info("database.connected", attempt=attempt + 1)
            return _pool

        except (OSError, asyncpg.PostgresError) as e:
            logger.warning(
                "database.connect_failed",
                attempt=attempt + 1,
                error=str(e),
                error_type=type(e).__name__,
            )
            if attempt < max_retries - 1:
                await asyncio.sleep(retry_delay * (2 ** attempt))

    logger.error("database.unavailable", max_retries=max_retries)
    return None


async def disconnect_db() -> None:
    """
    Close the connection pool.

    Should be called once during application shutdown.
    """
    global _pool

    if _pool is None:
        return
    await _pool.close()
    _pool = None
    logger.info("database.disconnected")


def get_pool() -> Optional[asyncpg.Pool]:
    """
    Get the connection pool, or None when the database is not connected.
    """
    return _pool
