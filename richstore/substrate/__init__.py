"""
Key-value substrate abstraction for RichStore.

This module provides a pluggable backend interface supporting:
- Redis (production)
- In-memory (for testing)

Invariants:
    - Each call is an independent request/response round trip
    - Absent keys and members are no-ops for removal
    - Sorted ranges are ascending by score

How to change safely:
    - New backends must implement the Substrate protocol
    - Verify ordering of equal scores matches Redis (by member)
"""

from .base import (
    Substrate,
    SubstrateConnectionError,
    SubstrateError,
    create_substrate,
)
from .memory import InMemorySubstrate
from .redis_backend import RedisSubstrate

__all__ = [
    # Protocol and errors
    "Substrate",
    "SubstrateError",
    "SubstrateConnectionError",
    # Factory
    "create_substrate",
    # Implementations
    "RedisSubstrate",
    "InMemorySubstrate",
]
