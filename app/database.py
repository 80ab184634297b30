import asyncio
import asyncpg
from contextlib import asynccontextmanager
from app.config import settings
from app.core.exceptions import TransientStoreError
import logging

logger = logging.getLogger(__name__)

# Failures worth surfacing as "try again": the transaction has already been rolled back
TRANSIENT_DB_ERRORS = (
    asyncpg.exceptions.PostgresConnectionError,
    asyncpg.exceptions.DeadlockDetectedError,
    asyncpg.exceptions.LockNotAvailableError,
    asyncpg.exceptions.SerializationError,
    asyncpg.exceptions.QueryCanceledError,
    ConnectionError,
    asyncio.TimeoutError,
)

class DatabasePool:
    _pool = None

    @classmethod
    async def create_pool(cls):
        if cls._pool is None:
            try:
                cls._pool = await asyncpg.create_pool(
                    **settings.db_connection_params,
                    min_size=settings.db_pool_min_size,
                    max_size=settings.db_pool_max_size,
                    command_timeout=settings.db_command_timeout
                )
                logger.info(f"✅ Database pool created: {settings.db_name}@{settings.db_host}")
            except Exception as e:
                logger.error(f"❌ Failed to create database pool: {e}")
                raise
        return cls._pool

    @classmethod
    async def close_pool(cls):
        if cls._pool:
            await cls._pool.close()
            cls._pool = None
            logger.info("Database pool closed")

@asynccontextmanager
async def get_db_connection():
    """
    Acquire a pooled connection with an open transaction.

    Everything executed on the connection commits when the block exits
    normally and rolls back on any exception. Connection, lock and
    serialization failures are re-raised as TransientStoreError once the
    rollback has happened; nothing is retried here.

    Usage:
    async with get_db_connection() as conn:
        row = await conn.fetchrow("SELECT * FROM ingredients WHERE id = $1", ingredient_id)
    """
    pool = await DatabasePool.create_pool()
    try:
        async with pool.acquire() as connection:
            async with connection.transaction():
                yield connection
    except TRANSIENT_DB_ERRORS as e:
        logger.warning(f"⚠️ Transient database failure, transaction rolled back: {e}")
        raise TransientStoreError(f"Database temporarily unavailable: {e.__class__.__name__}") from e
