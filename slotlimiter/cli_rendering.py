"""CLI output and error rendering helpers.

This module centralizes user-facing CLI presentation for command diagnostics,
per-call acquisition rows and stored bucket state.
"""

from __future__ import annotations

from datetime import datetime, timezone
from typing import NoReturn

import typer

from .errors import SlotLimiterError
from .store.allocator import BucketState


def exit_with_command_error(command_name: str, exc: Exception) -> NoReturn:
    """Print concise diagnostics for command failures and exit with code 1."""

    typer.secho(f"{command_name} failed: {exc}", fg=typer.colors.RED, err=True)
    if isinstance(exc, SlotLimiterError) and exc.hint:
        typer.secho(f"Hint: {exc.hint}", fg=typer.colors.YELLOW, err=True)
    raise typer.Exit(code=1) from exc


def echo_acquisition(call_index: int, call_total: int, slept_seconds: float) -> None:
    """Print one deterministic row for an acquired slot."""

    typer.echo(f"[acquire] call={call_index}/{call_total} waited={slept_seconds:.3f}s")


def echo_bucket_state(key: str, state: BucketState | None) -> None:
    """Print stored counters for a bucket, or note that it has never been used."""

    typer.echo(f"Bucket: {key}")
    if state is None:
        typer.echo("State: not initialized")
        return
    slot_time = datetime.fromtimestamp(state.slot_ms / 1000.0, tz=timezone.utc)
    typer.echo(f"Tokens: {state.tokens:.3f}")
    typer.echo(f"Next slot: {state.slot_ms:.0f} ({slot_time.isoformat(timespec='milliseconds')})")
