"""Unit tests for per-call slot scheduling with a fake clock and sleeper."""

from __future__ import annotations

import asyncio

import pytest

from slotlimiter.config import BucketConfig
from slotlimiter.errors import ConnectivityError, MaxSleepExceeded
from slotlimiter.scheduler import ExecutionSnapshot, compute_sleep_seconds, schedule_and_sleep

_NOW_MS = 1_700_000_000_000


class _StubAllocator:
    """Allocator test double returning predefined slots."""

    def __init__(self, *slots: int) -> None:
        """Initialize the queue of slots to hand out."""

        self.slots = list(slots)
        self.configs: list[BucketConfig] = []

    async def allocate(self, config: BucketConfig) -> int:
        """Record the config and return the next slot."""

        self.configs.append(config)
        return self.slots.pop(0)


class _FailingAllocator:
    """Allocator test double that always fails to reach Redis."""

    async def allocate(self, config: BucketConfig) -> int:
        """Raise a connectivity failure."""

        raise ConnectivityError("connection refused")


class _RecordingSleeper:
    """Sleeper test double that records requested waits without sleeping."""

    def __init__(self) -> None:
        """Initialize recording storage."""

        self.waits: list[float] = []

    async def __call__(self, seconds: float) -> None:
        """Record one wait."""

        self.waits.append(seconds)


def _snapshot(
    allocator: object,
    sleeper: _RecordingSleeper,
    max_sleep: float = 0.0,
) -> ExecutionSnapshot:
    config = BucketConfig.create(
        "api", capacity=1, refill_frequency=1.0, refill_amount=1, max_sleep=max_sleep
    )
    return ExecutionSnapshot(
        config=config,
        allocator=allocator,  # type: ignore[arg-type]
        clock=lambda: _NOW_MS,
        sleeper=sleeper,
    )


@pytest.mark.parametrize(
    ("slot_ms", "expected"),
    [(_NOW_MS - 5, 0.0), (_NOW_MS, 0.0), (_NOW_MS + 1, 0.001), (_NOW_MS + 2500, 2.5)],
)
def test_compute_sleep_seconds_clamps_past_slots_to_zero(slot_ms: int, expected: float) -> None:
    """Slots at or before now should not wait; future slots wait the difference."""

    assert compute_sleep_seconds(slot_ms, _NOW_MS) == pytest.approx(expected)


def test_schedule_sleeps_until_future_slot() -> None:
    """A slot in the future should be slept for exactly its distance from now."""

    allocator = _StubAllocator(_NOW_MS + 1500)
    sleeper = _RecordingSleeper()

    slept = asyncio.run(schedule_and_sleep(_snapshot(allocator, sleeper)))

    assert slept == pytest.approx(1.5)
    assert sleeper.waits == [pytest.approx(1.5)]
    assert allocator.configs[0].key == "__self-limiters:api"


def test_schedule_does_not_wait_for_past_slot() -> None:
    """A slot that already passed should yield a zero wait."""

    sleeper = _RecordingSleeper()

    slept = asyncio.run(schedule_and_sleep(_snapshot(_StubAllocator(_NOW_MS - 40), sleeper)))

    assert slept == 0.0
    assert sleeper.waits == [0.0]


def test_schedule_rejects_wait_above_max_sleep_without_sleeping() -> None:
    """A wait above `max_sleep` should raise before the sleeper is awaited."""

    sleeper = _RecordingSleeper()
    snapshot = _snapshot(_StubAllocator(_NOW_MS + 1000), sleeper, max_sleep=0.5)

    with pytest.raises(MaxSleepExceeded) as exc_info:
        asyncio.run(schedule_and_sleep(snapshot))

    assert sleeper.waits == []
    assert exc_info.value.sleep_seconds == pytest.approx(1.0)
    assert exc_info.value.max_sleep == 0.5
    assert exc_info.value.hint


def test_schedule_allows_wait_equal_to_max_sleep() -> None:
    """Only waits strictly above the bound are rejected."""

    sleeper = _RecordingSleeper()
    snapshot = _snapshot(_StubAllocator(_NOW_MS + 500), sleeper, max_sleep=0.5)

    asyncio.run(schedule_and_sleep(snapshot))

    assert sleeper.waits == [pytest.approx(0.5)]


def test_schedule_never_rejects_when_max_sleep_is_zero() -> None:
    """An unbounded bucket should accept any projected wait."""

    sleeper = _RecordingSleeper()
    snapshot = _snapshot(_StubAllocator(_NOW_MS + 86_400_000), sleeper, max_sleep=0.0)

    asyncio.run(schedule_and_sleep(snapshot))

    assert sleeper.waits == [pytest.approx(86_400.0)]


def test_schedule_propagates_allocator_failures_without_sleeping() -> None:
    """Store failures should reach the caller unchanged and without a wait."""

    sleeper = _RecordingSleeper()

    with pytest.raises(ConnectivityError, match="connection refused"):
        asyncio.run(schedule_and_sleep(_snapshot(_FailingAllocator(), sleeper)))

    assert sleeper.waits == []
