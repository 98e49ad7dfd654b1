"""Configuration models and loaders for slotlimiter.

Responsibilities:
- Define immutable bucket parameters shared by every call on one handle.
- Define Redis connection settings with deterministic source precedence.

Key types:
- `BucketConfig`: validated token-bucket parameters and the namespaced Redis key.
- `StoreSettings`: resolved Redis URL and connection pool bounds.
"""

from __future__ import annotations

from dataclasses import dataclass
import math
import os
from typing import Mapping

from .errors import ConfigurationError
from .parsing import normalize_optional_string, parse_non_negative_float, parse_positive_int

REDIS_KEY_PREFIX = "__self-limiters:"
DEFAULT_REDIS_URL = "redis://127.0.0.1:6379"
DEFAULT_CONNECTION_POOL_SIZE = 30
DEFAULT_POOL_TIMEOUT_SECONDS = 20.0


@dataclass(frozen=True, slots=True)
class BucketConfig:
    """Immutable token-bucket parameters for one named bucket.

    Attributes:
        name: Caller-facing bucket name, without the Redis key prefix.
        capacity: Maximum number of tokens the bucket can hold.
        refill_frequency: Seconds between refills.
        refill_amount: Tokens added per refill interval.
        max_sleep: Longest acceptable wait in seconds; `0.0` disables the bound.
    """

    name: str
    capacity: int
    refill_frequency: float
    refill_amount: int
    max_sleep: float = 0.0

    @property
    def key(self) -> str:
        """Return the namespaced Redis key holding this bucket's state."""

        return f"{REDIS_KEY_PREFIX}{self.name}"

    @property
    def refill_interval_ms(self) -> float:
        """Return the refill interval in milliseconds."""

        return self.refill_frequency * 1000.0

    @property
    def token_cost_ms(self) -> float:
        """Return the time it takes the bucket to earn back a single token."""

        return self.refill_interval_ms / self.refill_amount

    def validate(self) -> None:
        """Validate bucket parameters before any Redis interaction."""

        if normalize_optional_string(self.name) is None:
            raise ConfigurationError("`name` must be a non-empty string.")
        parse_positive_int(self.capacity, "capacity")
        parse_positive_int(self.refill_amount, "refill_amount")
        if isinstance(self.refill_frequency, bool) or not isinstance(
            self.refill_frequency, (int, float)
        ):
            raise ConfigurationError("`refill_frequency` must be a number of seconds.")
        if not math.isfinite(self.refill_frequency) or self.refill_frequency <= 0:
            raise ConfigurationError(
                "Refill frequency must be greater than 0",
                hint="Pass `refill_frequency` as a positive number of seconds.",
            )
        parse_non_negative_float(self.max_sleep, "max_sleep")

    @classmethod
    def create(
        cls,
        name: str,
        capacity: int,
        refill_frequency: float,
        refill_amount: int,
        max_sleep: float | None = None,
    ) -> BucketConfig:
        """Build and validate a config, treating a missing `max_sleep` as unbounded."""

        config = cls(
            name=name,
            capacity=capacity,
            refill_frequency=refill_frequency,
            refill_amount=refill_amount,
            max_sleep=0.0 if max_sleep is None else max_sleep,
        )
        config.validate()
        return config


@dataclass(frozen=True, slots=True)
class StoreSettings:
    """Resolved Redis connection settings.

    Attributes:
        redis_url: Redis connection URL.
        connection_pool_size: Maximum number of pooled connections.
        pool_timeout: Seconds a call may wait for a free pooled connection.
    """

    redis_url: str = DEFAULT_REDIS_URL
    connection_pool_size: int = DEFAULT_CONNECTION_POOL_SIZE
    pool_timeout: float = DEFAULT_POOL_TIMEOUT_SECONDS

    _ENV_KEYS = {
        "redis_url": "SLOTLIMITER_REDIS_URL",
        "connection_pool_size": "SLOTLIMITER_POOL_SIZE",
        "pool_timeout": "SLOTLIMITER_POOL_TIMEOUT",
    }

    @classmethod
    def resolve(
        cls,
        cli: Mapping[str, object] | None = None,
        env: Mapping[str, str] | None = None,
    ) -> StoreSettings:
        """Resolve settings with deterministic precedence.

        Precedence for each key is:
        `cli` > `env` > field default.
        """

        cli_values: Mapping[str, object] = cli or {}
        env_values: Mapping[str, str] = os.environ if env is None else env

        redis_url = cls._lookup(cli_values, env_values, "redis_url") or DEFAULT_REDIS_URL
        raw_pool_size = cls._lookup(cli_values, env_values, "connection_pool_size")
        raw_pool_timeout = cls._lookup(cli_values, env_values, "pool_timeout")

        pool_size = (
            parse_positive_int(raw_pool_size, "connection_pool_size")
            if raw_pool_size is not None
            else DEFAULT_CONNECTION_POOL_SIZE
        )
        pool_timeout = (
            parse_non_negative_float(raw_pool_timeout, "pool_timeout")
            if raw_pool_timeout is not None
            else DEFAULT_POOL_TIMEOUT_SECONDS
        )
        return cls(
            redis_url=redis_url,
            connection_pool_size=pool_size,
            pool_timeout=pool_timeout,
        )

    @classmethod
    def _lookup(
        cls,
        cli: Mapping[str, object],
        env: Mapping[str, str],
        key: str,
    ) -> str | None:
        """Return the first non-blank value for a key from CLI then environment."""

        cli_value = normalize_optional_string(cli.get(key))
        if cli_value is not None:
            return cli_value
        return normalize_optional_string(env.get(cls._ENV_KEYS[key]))
