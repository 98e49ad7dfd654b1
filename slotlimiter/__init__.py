"""Top-level package for slotlimiter.

This package provides distributed token-bucket rate limiting for asyncio
code. Buckets live in Redis and slots are handed out by one atomic script, so
every process sharing a bucket name is limited together. The main entry
point is `TokenBucket`.
"""

from loguru import logger

from .config import BucketConfig, StoreSettings
from .errors import (
    ConfigurationError,
    ConnectivityError,
    MaxSleepExceeded,
    ScriptExecutionError,
    SlotLimiterError,
)
from .token_bucket import TokenBucket

logger.disable("slotlimiter")

__all__ = [
    "BucketConfig",
    "ConfigurationError",
    "ConnectivityError",
    "MaxSleepExceeded",
    "ScriptExecutionError",
    "SlotLimiterError",
    "StoreSettings",
    "TokenBucket",
    "__version__",
]

__version__ = "0.1.0"
