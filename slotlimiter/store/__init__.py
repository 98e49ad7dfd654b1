"""Redis-facing building blocks: connection pooling and atomic slot allocation."""

from .allocator import BucketState, SlotAllocator
from .pool import create_client, create_connection_pool, now_millis

__all__ = [
    "BucketState",
    "SlotAllocator",
    "create_client",
    "create_connection_pool",
    "now_millis",
]
