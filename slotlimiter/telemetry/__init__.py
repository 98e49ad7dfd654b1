"""Telemetry helpers.

This package emits structured slot events through loguru.
"""

from .logger import SlotLogger

__all__ = ["SlotLogger"]
