"""Unit tests for allocator argument passing and Redis error mapping."""

from __future__ import annotations

import asyncio

import pytest
from redis.exceptions import ConnectionError as RedisConnectionError
from redis.exceptions import ResponseError
from redis.exceptions import TimeoutError as RedisTimeoutError

from slotlimiter.config import BucketConfig
from slotlimiter.errors import ConnectivityError, ScriptExecutionError
from slotlimiter.scripts import TOKEN_BUCKET_SCRIPT
from slotlimiter.store.allocator import SlotAllocator


class _RecordingScript:
    """Registered-script test double returning a fixed reply or raising."""

    def __init__(self, reply: object = None, error: Exception | None = None) -> None:
        """Initialize the reply and optional failure."""

        self.reply = reply
        self.error = error
        self.calls: list[tuple[list[object], list[object]]] = []

    async def __call__(self, keys: list[object], args: list[object]) -> object:
        """Record invocation arguments and return or raise."""

        self.calls.append((keys, args))
        if self.error is not None:
            raise self.error
        return self.reply


class _StubClient:
    """Redis client test double exposing only script registration."""

    def __init__(self, script: _RecordingScript) -> None:
        """Initialize with the script returned on registration."""

        self.script = script
        self.registered: list[str] = []

    def register_script(self, source: str) -> _RecordingScript:
        """Record the registered script source."""

        self.registered.append(source)
        return self.script


_CONFIG = BucketConfig.create("api", capacity=5, refill_frequency=1.5, refill_amount=3)


def test_allocator_registers_bundled_script_once() -> None:
    """The token bucket script should be registered when the allocator is built."""

    client = _StubClient(_RecordingScript(reply=1))

    SlotAllocator(client)  # type: ignore[arg-type]

    assert client.registered == [TOKEN_BUCKET_SCRIPT]
    assert "redis.call('TIME')" in TOKEN_BUCKET_SCRIPT


def test_allocator_passes_key_capacity_interval_and_amount() -> None:
    """Script should receive the namespaced key and refill interval in ms."""

    script = _RecordingScript(reply=1_700_000_000_123)
    allocator = SlotAllocator(_StubClient(script))  # type: ignore[arg-type]

    slot = asyncio.run(allocator.allocate(_CONFIG))

    assert slot == 1_700_000_000_123
    assert script.calls == [(["__self-limiters:api"], [5, 1500.0, 3])]


@pytest.mark.parametrize(
    "error",
    [RedisConnectionError("Connection refused"), RedisTimeoutError("Timeout reading")],
)
def test_allocator_maps_connection_failures(error: Exception) -> None:
    """Connection and timeout failures should surface as connectivity errors."""

    allocator = SlotAllocator(_StubClient(_RecordingScript(error=error)))  # type: ignore[arg-type]

    with pytest.raises(ConnectivityError) as exc_info:
        asyncio.run(allocator.allocate(_CONFIG))

    assert exc_info.value.__cause__ is error
    assert exc_info.value.hint


def test_allocator_maps_script_errors() -> None:
    """Error replies from the script should surface as script execution errors."""

    error = ResponseError("refill interval and refill amount must be positive")
    allocator = SlotAllocator(_StubClient(_RecordingScript(error=error)))  # type: ignore[arg-type]

    with pytest.raises(ScriptExecutionError, match="must be positive"):
        asyncio.run(allocator.allocate(_CONFIG))


@pytest.mark.parametrize("reply", [b"1700000000000", None, 12.5, True])
def test_allocator_rejects_malformed_replies(reply: object) -> None:
    """Non-integer script replies should never be treated as slots."""

    allocator = SlotAllocator(_StubClient(_RecordingScript(reply=reply)))  # type: ignore[arg-type]

    with pytest.raises(ScriptExecutionError, match="malformed slot"):
        asyncio.run(allocator.allocate(_CONFIG))
