"""Per-call slot scheduling.

Responsibilities:
- Turn an allocated slot into a wait measured against the client wall clock.
- Reject waits above the configured bound before sleeping.
- Suspend only the calling task while waiting for the slot.

Key types:
- `ExecutionSnapshot`: the immutable per-call copy of everything a call needs.
- `schedule_and_sleep`: run one call from slot request to slot arrival.
"""

from __future__ import annotations

import asyncio
from dataclasses import dataclass
from typing import Awaitable, Callable, Protocol

from .config import BucketConfig
from .errors import MaxSleepExceeded, SlotLimiterError
from .store.pool import now_millis
from .telemetry.logger import SlotLogger


class Allocator(Protocol):
    """Anything that consumes one token for a bucket and returns its slot in ms."""

    async def allocate(self, config: BucketConfig) -> int: ...


@dataclass(frozen=True, slots=True)
class ExecutionSnapshot:
    """Everything one call needs, detached from the long-lived bucket handle.

    Attributes:
        config: Bucket parameters.
        allocator: Slot allocator sharing the handle's connection pool.
        clock: Wall clock returning milliseconds since the epoch.
        sleeper: Awaitable sleep taking seconds.
        event_logger: Structured event logger.
    """

    config: BucketConfig
    allocator: Allocator
    clock: Callable[[], int] = now_millis
    sleeper: Callable[[float], Awaitable[None]] = asyncio.sleep
    event_logger: SlotLogger | None = None


def compute_sleep_seconds(slot_ms: int, now_ms: int) -> float:
    """Return seconds until the slot, or zero when it has already passed."""

    if slot_ms <= now_ms:
        return 0.0
    return (slot_ms - now_ms) / 1000.0


async def schedule_and_sleep(snapshot: ExecutionSnapshot) -> float:
    """Allocate a slot, then sleep until it arrives.

    Returns:
        Seconds slept.

    Raises:
        MaxSleepExceeded: If the wait is above `max_sleep`. The token is not refunded.
        ConnectivityError: If Redis cannot be reached.
        ScriptExecutionError: If the allocation script fails.
    """

    config = snapshot.config
    event_logger = snapshot.event_logger or SlotLogger()
    try:
        slot = await snapshot.allocator.allocate(config)
    except SlotLimiterError as exc:
        event_logger.log_failure(config.key, type(exc).__name__)
        raise

    sleep_seconds = compute_sleep_seconds(slot, snapshot.clock())
    if config.max_sleep > 0 and sleep_seconds > config.max_sleep:
        event_logger.log_rejected(config.key, sleep_seconds, config.max_sleep)
        raise MaxSleepExceeded(sleep_seconds=sleep_seconds, max_sleep=config.max_sleep)

    event_logger.log_slot(config.key, slot, sleep_seconds)
    await snapshot.sleeper(sleep_seconds)
    return sleep_seconds
