"""Command-line interface for slotlimiter.

Responsibilities:
- Expose operator commands for acquiring slots and inspecting buckets.
- Convert CLI arguments and environment values into store settings.

Key public functions:
- `app`: Typer application instance.
- `main`: invoke the Typer application.
"""

from __future__ import annotations

import asyncio
import os
import sys
from typing import Annotated

import typer
from loguru import logger

from .cli_rendering import echo_acquisition, echo_bucket_state, exit_with_command_error
from .config import REDIS_KEY_PREFIX, StoreSettings
from .store.allocator import BucketState, SlotAllocator
from .store.pool import create_client, create_connection_pool
from .telemetry.logger import SlotLogger
from .token_bucket import TokenBucket

app = typer.Typer(
    name="slotlimiter",
    no_args_is_help=True,
    help="slotlimiter CLI.",
)

RedisUrlOption = Annotated[
    str | None,
    typer.Option(
        "--redis-url",
        help="Redis URL. Defaults to `SLOTLIMITER_REDIS_URL` or `redis://127.0.0.1:6379`.",
    ),
]


def _resolve_store_settings(
    redis_url: str | None, pool_size: int | None = None
) -> StoreSettings:
    """Resolve store settings from explicit options, then the environment."""

    return StoreSettings.resolve(
        cli={"redis_url": redis_url, "connection_pool_size": pool_size},
        env=os.environ,
    )


def _configure_logging(verbose: bool) -> SlotLogger:
    """Route bucket events to stderr when verbose output is requested."""

    if not verbose:
        return SlotLogger()
    logger.remove()
    return SlotLogger(sink=sys.stderr, level="DEBUG")


async def _acquire_many(
    name: str,
    capacity: int,
    refill_frequency: float,
    refill_amount: int,
    max_sleep: float,
    count: int,
    settings: StoreSettings,
    event_logger: SlotLogger,
) -> None:
    """Enter the bucket `count` times in sequence, printing each wait."""

    pool = create_connection_pool(settings)
    try:
        bucket = TokenBucket(
            name,
            capacity,
            refill_frequency,
            refill_amount,
            max_sleep=max_sleep,
            connection_pool=pool,
            event_logger=event_logger,
        )
        for call_index in range(1, count + 1):
            slept_seconds = await bucket.acquire()
            echo_acquisition(call_index, count, slept_seconds)
    finally:
        await pool.disconnect()


async def _read_bucket_state(key: str, settings: StoreSettings) -> BucketState | None:
    """Read stored counters for a bucket key without modifying them."""

    pool = create_connection_pool(settings)
    try:
        return await SlotAllocator(create_client(pool)).read_state(key)
    finally:
        await pool.disconnect()


@app.command("acquire")
def acquire_command(
    name: Annotated[str, typer.Argument(help="Bucket name shared by every limited client.")],
    capacity: Annotated[
        int, typer.Option("--capacity", help="Maximum number of tokens in the bucket.")
    ],
    refill_frequency: Annotated[
        float, typer.Option("--refill-frequency", help="Seconds between refills.")
    ],
    refill_amount: Annotated[
        int, typer.Option("--refill-amount", help="Tokens added per refill.")
    ],
    max_sleep: Annotated[
        float,
        typer.Option("--max-sleep", help="Fail instead of waiting longer than this. 0 disables."),
    ] = 0.0,
    count: Annotated[
        int, typer.Option("--count", min=1, help="Number of sequential acquisitions.")
    ] = 1,
    redis_url: RedisUrlOption = None,
    pool_size: Annotated[
        int | None,
        typer.Option("--pool-size", help="Connection pool size. Defaults to 30."),
    ] = None,
    verbose: Annotated[
        bool, typer.Option("--verbose", help="Print bucket events to stderr.")
    ] = False,
) -> None:
    """Consume tokens from a bucket, waiting for each assigned slot."""

    event_logger = _configure_logging(verbose)
    try:
        settings = _resolve_store_settings(redis_url, pool_size)
        asyncio.run(
            _acquire_many(
                name=name,
                capacity=capacity,
                refill_frequency=refill_frequency,
                refill_amount=refill_amount,
                max_sleep=max_sleep,
                count=count,
                settings=settings,
                event_logger=event_logger,
            )
        )
    except Exception as exc:
        exit_with_command_error("acquire", exc)
    finally:
        event_logger.close()


@app.command("inspect")
def inspect_command(
    name: Annotated[str, typer.Argument(help="Bucket name to inspect.")],
    redis_url: RedisUrlOption = None,
) -> None:
    """Show stored counters for a bucket without consuming a token."""

    key = f"{REDIS_KEY_PREFIX}{name}"
    try:
        settings = _resolve_store_settings(redis_url)
        state = asyncio.run(_read_bucket_state(key, settings))
    except Exception as exc:
        exit_with_command_error("inspect", exc)

    echo_bucket_state(key, state)


def main() -> None:
    """CLI entrypoint for console scripts."""
    app()


if __name__ == "__main__":
    main()
