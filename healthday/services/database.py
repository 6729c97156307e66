"""asyncpg connection pool for the Postgres record store.

The pool is created once at app startup (``init_pool``) and drained at
shutdown (``close_pool``).  Only initialized when ``record_store`` is
``"postgres"``.
"""

from __future__ import annotations

import logging

import asyncpg

from healthday.config import Settings, get_settings

logger = logging.getLogger("healthday.db")

# Module-level connection pool, initialized once at app startup
_pool: asyncpg.Pool | None = None

SCHEMA = """
CREATE TABLE IF NOT EXISTS day_records (
    user_id    TEXT        NOT NULL,
    date       DATE        NOT NULL,
    source     TEXT,
    sleep      JSONB,
    heart      JSONB,
    workout    JSONB,
    stress     JSONB,
    events     JSONB       NOT NULL DEFAULT '[]'::jsonb,
    updated_at TIMESTAMPTZ NOT NULL DEFAULT now(),
    PRIMARY KEY (user_id, date)
)
"""


async def init_pool(settings: Settings | None = None) -> asyncpg.Pool:
    """Create the asyncpg connection pool and ensure the schema exists."""
    global _pool
    s = settings or get_settings()
    if not s.database_url:
        raise RuntimeError("record_store is 'postgres' but DATABASE_URL is not set")
    _pool = await asyncpg.create_pool(
        s.database_url,
        min_size=s.db_pool_min_size,
        max_size=s.db_pool_max_size,
        command_timeout=30,
    )
    async with _pool.acquire() as conn:
        await conn.execute(SCHEMA)
    logger.info(
        "Database pool initialized (min=%d, max=%d)", s.db_pool_min_size, s.db_pool_max_size
    )
    return _pool


async def close_pool() -> None:
    """Drain the pool. Call at app shutdown."""
    global _pool
    if _pool:
        await _pool.close()
        _pool = None
        logger.info("Database pool closed")


def get_pool() -> asyncpg.Pool:
    if _pool is None:
        raise RuntimeError("Database pool not initialized; call init_pool() first")
    return _pool

