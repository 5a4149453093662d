"""Database utilities for connection management.

Provides:
- Connection pool factory with production configuration
- Health check utilities
- Connection and transaction context managers with timeouts
"""

from __future__ import annotations

import asyncio

from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager
from typing import Any

import asyncpg

from utils.logger import logger


class PoolError(Exception):
    """Base exception for connection pool operations."""

    pass


class ConnectionPoolExhausted(PoolError):
    """Raised when connection pool is exhausted and timeout expires."""

    pass


async def create_database_pool(
    dsn: str,
    *,
    min_size: int = 2,
    max_size: int = 10,
    command_timeout: float = 60.0,
    connection_timeout: float = 10.0,
    statement_cache_size: int = 100,
    max_inactive_connection_lifetime: float = 300.0,
) -> asyncpg.Pool:
    """Create a production-configured database connection pool.

    Args:
        dsn: PostgreSQL connection string
        min_size: Minimum connections to maintain
        max_size: Maximum connections allowed
        command_timeout: Default query timeout in seconds
        connection_timeout: Timeout for establishing the initial connections
        statement_cache_size: Prepared statement cache per connection
        max_inactive_connection_lifetime: Close idle connections after this time

    Returns:
        Configured asyncpg connection pool

    Raises:
        ConnectionPoolExhausted: If initial connections cannot be established
    """

    async def init_connection(conn: asyncpg.Connection) -> None:
        """Initialize each connection with statement and lock timeouts."""
        await conn.execute(f"SET statement_timeout = '{int(command_timeout * 1000)}'")
        await conn.execute(f"SET lock_timeout = '{int(command_timeout * 1000)}'")

    try:
        pool = await asyncio.wait_for(
            asyncpg.create_pool(
                dsn=dsn,
                min_size=min_size,
                max_size=max_size,
                command_timeout=command_timeout,
                statement_cache_size=statement_cache_size,
                max_inactive_connection_lifetime=max_inactive_connection_lifetime,
                init=init_connection,
            ),
            timeout=connection_timeout,
        )

        if pool is None:
            raise ConnectionPoolExhausted("Failed to create connection pool")

        return pool

    except asyncio.TimeoutError as e:
        raise ConnectionPoolExhausted(f"Connection pool creation timed out after {connection_timeout}s") from e
    except ConnectionPoolExhausted:
        raise
    except Exception as e:
        raise ConnectionPoolExhausted(f"Failed to create connection pool: {e}") from e


@asynccontextmanager
async def acquire_connection(
    pool: asyncpg.Pool,
    *,
    timeout: float | None = None,
) -> AsyncGenerator[asyncpg.Connection, None]:
    """Acquire a database connection with timeout and proper error handling.

    Raises:
        ConnectionPoolExhausted: If connection cannot be acquired within timeout
    """
    try:
        async with pool.acquire(timeout=timeout) as conn:
            yield conn
    except asyncio.TimeoutError as e:
        raise ConnectionPoolExhausted(
            f"Could not acquire database connection within {timeout}s - pool may be exhausted"
        ) from e


@asynccontextmanager
async def transaction(
    pool: asyncpg.Pool,
    *,
    timeout: float | None = None,
    isolation: str = "read_committed",
) -> AsyncGenerator[asyncpg.Connection, None]:
    """Execute operations within a database transaction.

    Example:
        async with transaction(pool) as conn:
            await conn.execute("INSERT INTO ...")
            await conn.execute("UPDATE ...")
    """
    async with acquire_connection(pool, timeout=timeout) as conn, conn.transaction(isolation=isolation):
        yield conn


async def check_pool_health(pool: asyncpg.Pool) -> dict[str, Any]:
    """Check database pool health and return statistics.

    Returns:
        Dict with pool statistics and health status
    """
    try:
        async with acquire_connection(pool, timeout=5.0) as conn:
            result = await conn.fetchval("SELECT 1")
            is_healthy = result == 1
    except Exception as e:
        logger.warning(f"Database health check failed: {e}")
        is_healthy = False

    return {
        "healthy": is_healthy,
        "pool_size": pool.get_size(),
        "pool_min_size": pool.get_min_size(),
        "pool_max_size": pool.get_max_size(),
        "free_connections": pool.get_idle_size(),
        "used_connections": pool.get_size() - pool.get_idle_size(),
    }


async def graceful_pool_close(pool: asyncpg.Pool, timeout: float = 10.0) -> None:
    """Gracefully close the connection pool.

    Waits for active connections to be released before closing.

    Args:
        pool: The pool to close
        timeout: Maximum time to wait for connections to drain
    """
    loop = asyncio.get_running_loop()
    start = loop.time()
    while pool.get_size() > pool.get_idle_size():
        if loop.time() - start > timeout:
            logger.warning(
                f"Timeout waiting for connections to drain, "
                f"forcing close ({pool.get_size() - pool.get_idle_size()} active)"
            )
            break
        await asyncio.sleep(0.1)

    await pool.close()
