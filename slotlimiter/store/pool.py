"""Redis connection pool construction."""

from __future__ import annotations

import time

from redis.asyncio import BlockingConnectionPool, ConnectionPool, Redis

from ..config import StoreSettings
from ..errors import ConfigurationError


def create_connection_pool(settings: StoreSettings) -> ConnectionPool:
    """Build a bounded pool that makes callers wait when every connection is busy.

    A `pool_timeout` of zero lets callers wait for a connection indefinitely.
    """

    try:
        return BlockingConnectionPool.from_url(
            settings.redis_url,
            max_connections=settings.connection_pool_size,
            timeout=settings.pool_timeout or None,
        )
    except ValueError as exc:
        raise ConfigurationError(
            f"Invalid Redis URL `{settings.redis_url}`: {exc}",
            hint="Use a URL such as `redis://127.0.0.1:6379/0`.",
        ) from exc


def create_client(pool: ConnectionPool) -> Redis:
    """Wrap a pool in a client that checks out one connection per command."""

    return Redis(connection_pool=pool)


def now_millis() -> int:
    """Return the wall clock as integer milliseconds since the epoch."""

    return time.time_ns() // 1_000_000
