"""Distributed token bucket exposed as an async context manager."""

from __future__ import annotations

import asyncio
from types import TracebackType
from typing import Awaitable, Callable

from loguru import logger
from redis.asyncio import ConnectionPool

from .config import BucketConfig, StoreSettings
from .errors import ConfigurationError
from .scheduler import ExecutionSnapshot, schedule_and_sleep
from .store.allocator import BucketState, SlotAllocator
from .store.pool import create_client, create_connection_pool, now_millis
from .telemetry.logger import SlotLogger


class TokenBucket:
    """Async context manager limiting traffic to `n` requests per `m` seconds.

    Every `async with bucket:` consumes one token from a bucket stored in
    Redis and waits until the slot assigned to it arrives, so any number of
    processes sharing the same bucket name and Redis instance are limited
    together. For example, to send at most one request per minute:

        bucket = TokenBucket("api", capacity=1, refill_frequency=60, refill_amount=1)
        async with bucket:
            await client.get(...)
    """

    def __init__(
        self,
        name: str,
        capacity: int,
        refill_frequency: float,
        refill_amount: int,
        redis_url: str | None = None,
        max_sleep: float | None = None,
        connection_pool_size: int | None = None,
        *,
        connection_pool: ConnectionPool | None = None,
        clock: Callable[[], int] = now_millis,
        sleeper: Callable[[float], Awaitable[None]] = asyncio.sleep,
        event_logger: SlotLogger | None = None,
    ) -> None:
        """Validate parameters and build the connection pool.

        `connection_pool` replaces the pool built from `redis_url` and
        `connection_pool_size`, so it cannot be combined with either.

        Raises:
            ConfigurationError: If any parameter is invalid, including a
                `refill_frequency` that is not greater than zero.
        """

        logger.debug("Creating new TokenBucket instance")
        self._config = BucketConfig.create(
            name=name,
            capacity=capacity,
            refill_frequency=refill_frequency,
            refill_amount=refill_amount,
            max_sleep=max_sleep,
        )
        if connection_pool is not None and (
            redis_url is not None or connection_pool_size is not None
        ):
            raise ConfigurationError(
                "`connection_pool` cannot be combined with `redis_url` or "
                "`connection_pool_size`.",
                hint="Configure the URL and size on the pool you pass in.",
            )
        if connection_pool is None:
            settings = StoreSettings.resolve(
                cli={"redis_url": redis_url, "connection_pool_size": connection_pool_size},
                env={},
            )
            connection_pool = create_connection_pool(settings)
        self._allocator = SlotAllocator(create_client(connection_pool))
        self._clock = clock
        self._sleeper = sleeper
        self._event_logger = event_logger or SlotLogger()

    @property
    def config(self) -> BucketConfig:
        return self._config

    @property
    def name(self) -> str:
        return self._config.name

    @property
    def key(self) -> str:
        """Return the namespaced Redis key holding this bucket's state."""

        return self._config.key

    @property
    def capacity(self) -> int:
        return self._config.capacity

    @property
    def refill_frequency(self) -> float:
        return self._config.refill_frequency

    @property
    def refill_amount(self) -> int:
        return self._config.refill_amount

    @property
    def max_sleep(self) -> float:
        return self._config.max_sleep

    def snapshot(self) -> ExecutionSnapshot:
        """Copy the per-call state so waits never hold on to this handle."""

        return ExecutionSnapshot(
            config=self._config,
            allocator=self._allocator,
            clock=self._clock,
            sleeper=self._sleeper,
            event_logger=self._event_logger,
        )

    async def acquire(self) -> float:
        """Consume one token and wait for its slot, returning the seconds slept."""

        return await schedule_and_sleep(self.snapshot())

    async def state(self) -> BucketState | None:
        """Return the bucket's stored counters without modifying them."""

        return await self._allocator.read_state(self._config.key)

    async def __aenter__(self) -> None:
        """Wait until this call's slot arrives, or raise without waiting."""

        await self.acquire()

    async def __aexit__(
        self,
        exc_type: type[BaseException] | None,
        exc: BaseException | None,
        traceback: TracebackType | None,
    ) -> None:
        """Do nothing on exit; the token was already consumed on entry."""

        return None

    def __repr__(self) -> str:
        return f"Token bucket instance for queue {self._config.key}"
