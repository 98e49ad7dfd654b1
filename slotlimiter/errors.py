"""Domain exceptions for slot allocation and CLI diagnostics."""

from __future__ import annotations


class SlotLimiterError(RuntimeError):
    """Base error for every failure raised by the limiter."""

    def __init__(self, detail: str, *, hint: str | None = None) -> None:
        """Initialize an error with a human-readable detail and optional hint."""

        super().__init__(detail)
        self.detail = detail
        self.hint = hint


class ConfigurationError(SlotLimiterError, ValueError):
    """Raised when bucket or store parameters are invalid at construction time."""


class ConnectivityError(SlotLimiterError):
    """Raised when a pooled Redis connection cannot be obtained or used."""


class ScriptExecutionError(SlotLimiterError):
    """Raised when the slot allocation script fails or returns malformed data."""


class MaxSleepExceeded(SlotLimiterError):
    """Raised instead of sleeping when the assigned slot is too far away.

    The token for the call has already been consumed when this is raised.
    """

    def __init__(self, *, sleep_seconds: float, max_sleep: float) -> None:
        """Initialize with the projected wait and the configured bound."""

        super().__init__(
            f"Received wake up time in {sleep_seconds:.3f} seconds, which is "
            f"greater than the specified max sleep of {max_sleep} seconds.",
            hint="Increase `max_sleep`, or retry later when the bucket has refilled.",
        )
        self.sleep_seconds = sleep_seconds
        self.max_sleep = max_sleep
