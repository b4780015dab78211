# db.py
import logging

from fastapi import HTTPException
from psycopg_pool import AsyncConnectionPool
from psycopg.rows import dict_row

from config import DATABASE_URL

logger = logging.getLogger(__name__)

# Global pool, created on first use
_pool: AsyncConnectionPool | None = None


async def getDB():
    """
    FastAPI dependency.

    1. Opens the connection pool lazily on the first request.
    2. Lends one connection per request (rows come back as dicts).
    3. The `async with` block commits when the request finishes cleanly and
       rolls back when it raised, then returns the connection to the pool.
    """
    global _pool

    if _pool is None:
        logger.info("Initializing connection pool")
        _pool = AsyncConnectionPool(
            conninfo=DATABASE_URL,
            kwargs={"row_factory": dict_row},
            open=False,  # opened explicitly below so failures surface here
        )
        try:
            await _pool.open()
            logger.info("Connection pool opened")
        except Exception as e:
            logger.error("Could not open connection pool: %s", e)
            _pool = None
            raise

    if _pool is None:
        raise HTTPException(status_code=500, detail="Database connection pool is not available.")

    async with _pool.connection() as conn:
        yield conn


async def close_pool():
    """Close the pool on shutdown (no-op if it was never opened)."""
    global _pool
    if _pool is not None:
        await _pool.close()
        _pool = None
        logger.info("Connection pool closed")
