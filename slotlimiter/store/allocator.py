"""Atomic slot allocation backed by a Redis Lua script.

Responsibilities:
- Register the token-bucket script once per client and invoke it per call.
- Map Redis failures to library errors without retrying.
- Expose a read-only view of a bucket's stored counters for diagnostics.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Mapping

from redis.asyncio import Redis
from redis.exceptions import ConnectionError as RedisConnectionError
from redis.exceptions import RedisError, ResponseError
from redis.exceptions import TimeoutError as RedisTimeoutError

from ..config import BucketConfig
from ..errors import ConnectivityError, ScriptExecutionError
from ..scripts import TOKEN_BUCKET_SCRIPT


@dataclass(frozen=True, slots=True)
class BucketState:
    """Counters stored for one bucket.

    Attributes:
        tokens: Remaining tokens, possibly carrying a fractional refill remainder.
        slot_ms: Next slot not yet handed out, in milliseconds since the epoch.
    """

    tokens: float
    slot_ms: float


class SlotAllocator:
    """Hand out slots for buckets through one atomically executed script."""

    def __init__(self, client: Redis) -> None:
        """Register the allocation script on a pool-backed client."""

        self._client = client
        self._script = client.register_script(TOKEN_BUCKET_SCRIPT)

    @property
    def client(self) -> Redis:
        """Return the Redis client used for allocation calls."""

        return self._client

    async def allocate(self, config: BucketConfig) -> int:
        """Consume one token from the bucket and return the assigned slot in ms."""

        try:
            raw_slot = await self._script(
                keys=[config.key],
                args=[config.capacity, config.refill_interval_ms, config.refill_amount],
            )
        except (RedisConnectionError, RedisTimeoutError) as exc:
            raise ConnectivityError(
                f"Could not reach Redis for bucket `{config.key}`: {exc}",
                hint="Check that Redis is running and the connection URL is correct.",
            ) from exc
        except ResponseError as exc:
            raise ScriptExecutionError(
                f"Slot allocation script failed for bucket `{config.key}`: {exc}"
            ) from exc
        except RedisError as exc:
            raise ConnectivityError(
                f"Redis command failed for bucket `{config.key}`: {exc}"
            ) from exc
        return _parse_slot(raw_slot, config.key)

    async def read_state(self, key: str) -> BucketState | None:
        """Return stored counters for a bucket key, or `None` before its first use."""

        try:
            payload = await self._client.hgetall(key)
        except RedisError as exc:
            raise ConnectivityError(
                f"Could not read bucket `{key}` from Redis: {exc}"
            ) from exc
        if not payload:
            return None
        return _parse_state(payload, key)


def _parse_slot(raw_slot: object, key: str) -> int:
    """Validate the script reply as an integer slot."""

    if isinstance(raw_slot, bool) or not isinstance(raw_slot, int):
        raise ScriptExecutionError(
            f"Slot allocation script returned malformed slot {raw_slot!r} for bucket `{key}`."
        )
    return raw_slot


def _parse_state(payload: Mapping[object, object], key: str) -> BucketState:
    """Decode a stored hash payload into typed counters."""

    decoded = {_as_text(field): _as_text(value) for field, value in payload.items()}
    try:
        return BucketState(tokens=float(decoded["tokens"]), slot_ms=float(decoded["slot"]))
    except (KeyError, ValueError) as exc:
        raise ScriptExecutionError(
            f"Bucket `{key}` holds malformed state: {decoded!r}"
        ) from exc


def _as_text(value: object) -> str:
    if isinstance(value, bytes):
        return value.decode("utf-8")
    return str(value)
