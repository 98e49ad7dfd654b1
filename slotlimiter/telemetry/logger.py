"""Structured slot logging utilities.

Responsibilities:
- Emit concise, deterministic per-call bucket events.
- Stay silent unless the application enables the `slotlimiter` logger or
  passes an explicit sink.
"""

from __future__ import annotations

from typing import TextIO

from loguru import logger


def _sanitize_context_value(value: object) -> str:
    """Convert context values into stable, shell-safe tokens."""

    raw = str(value).strip()
    if not raw:
        return "none"
    return "".join(
        character if character.isalnum() or character in {"-", "_", ".", ":", "/"} else "_"
        for character in raw
    )


def _format_context(context: dict[str, object]) -> str:
    """Serialize context key/value pairs in deterministic key order."""

    if not context:
        return ""
    tokens = [
        f"{key}={_sanitize_context_value(context[key])}"
        for key in sorted(context.keys())
    ]
    return " " + " ".join(tokens)


class SlotLogger:
    """Emit deterministic bucket events for slot assignment and rejection."""

    # package logging stays enabled while at least one sink is attached
    _open_sinks = 0

    def __init__(self, sink: TextIO | None = None, level: str = "DEBUG") -> None:
        """Optionally attach a dedicated sink and enable package logging."""

        self._handler_id: int | None = None
        if sink is not None:
            self._handler_id = logger.add(
                sink,
                format="{message}",
                level=level,
                colorize=False,
                filter="slotlimiter",
            )
            SlotLogger._open_sinks += 1
            logger.enable("slotlimiter")

    def close(self) -> None:
        """Detach the dedicated sink, if one was attached."""

        if self._handler_id is not None:
            logger.remove(self._handler_id)
            self._handler_id = None
            SlotLogger._open_sinks -= 1
            if SlotLogger._open_sinks == 0:
                logger.disable("slotlimiter")

    def _emit(self, level: str, event: str, name: str, **context: object) -> None:
        """Emit one structured bucket log line."""

        line = f"[bucket] level={level} event={event} name={name}{_format_context(context)}"
        logger.log(level, line)

    def log_slot(self, name: str, slot: int, sleep_seconds: float) -> None:
        """Emit a slot-assigned event with the wait about to be taken."""

        self._emit("DEBUG", "slot", name, slot=slot, sleep_seconds=f"{sleep_seconds:.3f}")

    def log_rejected(self, name: str, sleep_seconds: float, max_sleep: float) -> None:
        """Emit a rejection event for a wait above the max-sleep bound."""

        self._emit(
            "WARNING",
            "rejected",
            name,
            sleep_seconds=f"{sleep_seconds:.3f}",
            max_sleep=max_sleep,
        )

    def log_failure(self, name: str, error_type: str) -> None:
        """Emit a failure event without the underlying error payload."""

        self._emit("ERROR", "failure", name, error_type=error_type)
