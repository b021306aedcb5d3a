"""
Base protocol and errors for the key-value substrate.

The substrate is the ordered key-value store every collection lives in.
It natively offers three primitives: scalar strings, unordered sets and
score-ordered sets, plus an atomic counter. This module defines the
Substrate protocol every backend implements.

Invariants:
    - Every call is one request/response round trip; no call is retried
    - Removing or deleting absent members/keys is a no-op
    - Sorted ranges ascend by score, ties ascend by member
    - increment_by is atomic across all clients of the substrate

How to change safely:
    - Protocol changes require updating all implementations
    - Keep argument shapes chunk-friendly (flat sequences and mappings)
"""

from __future__ import annotations

from abc import abstractmethod
from typing import (
    TYPE_CHECKING,
    Mapping,
    Optional,
    Protocol,
    Sequence,
    Union,
    runtime_checkable,
)

from ..errors import RichStoreError

if TYPE_CHECKING:
    from ..config import StoreSettings

Score = Union[int, float]


class SubstrateError(RichStoreError):
    """Base exception for substrate operations."""

    def __init__(self, message: str) -> None:
        super().__init__(message, code="SUBSTRATE_ERROR")


class SubstrateConnectionError(SubstrateError):
    """Connection to the substrate failed or was never opened."""
    pass


@runtime_checkable
class Substrate(Protocol):
    """Protocol for substrate backends.

    Key/value payloads and members are text. Score bounds accept
    ``float("-inf")``/``float("inf")``.

    Example:
        >>> substrate = RedisSubstrate(url="redis://localhost:6379/0")
        >>> await substrate.connect()
        >>> await substrate.set_many({"cars:1": "{}"})
        >>> await substrate.get_many(["cars:1", "cars:2"])
        ['{}', None]
    """

    @abstractmethod
    async def connect(self) -> None:
        """Connect to the backend.

        Raises:
            SubstrateConnectionError: If connection fails
        """
        ...

    @abstractmethod
    async def close(self) -> None:
        """Release the connection."""
        ...

    @property
    @abstractmethod
    def is_connected(self) -> bool:
        """Whether currently connected to the backend."""
        ...

    @abstractmethod
    async def set_many(self, mapping: Mapping[str, str]) -> None:
        """Store scalar values, overwriting existing keys."""
        ...

    @abstractmethod
    async def get_many(self, keys: Sequence[str]) -> list[Optional[str]]:
        """Fetch scalar values, one entry per key, None where absent."""
        ...

    @abstractmethod
    async def delete(self, keys: Sequence[str]) -> int:
        """Delete scalar keys, returning how many existed."""
        ...

    @abstractmethod
    async def set_add(self, key: str, members: Sequence[str]) -> int:
        ...

    @abstractmethod
    async def set_remove(self, key: str, members: Sequence[str]) -> int:
        ...

    @abstractmethod
    async def set_members(self, key: str) -> list[str]:
        ...

    @abstractmethod
    async def sorted_add(self, key: str, mapping: Mapping[str, Score]) -> int:
        """Add members or update their scores in a sorted set."""
        ...

    @abstractmethod
    async def sorted_remove(self, key: str, members: Sequence[str]) -> int:
        ...

    @abstractmethod
    async def sorted_range_by_score(self, key: str, min_score: Score, max_score: Score) -> list[str]:
        """Members with min_score <= score <= max_score, ascending."""
        ...

    @abstractmethod
    async def sorted_range(self, key: str, start: int, end: int) -> list[str]:
        """Members by rank, ascending; negative indexes count from the end."""
        ...

    @abstractmethod
    async def increment_by(self, key: str, amount: int) -> int:
        """Atomically add ``amount`` to a counter and return the new total."""
        ...


def create_substrate(settings: "StoreSettings") -> Substrate:
    """Factory function to create a substrate from configuration.

    Args:
        settings: Store settings

    Returns:
        Appropriate Substrate implementation

    Raises:
        ValueError: If backend is not supported
    """
    from ..config import SubstrateBackend
    from .memory import InMemorySubstrate
    from .redis_backend import RedisSubstrate

    if settings.backend == SubstrateBackend.REDIS:
        return RedisSubstrate(url=settings.redis_url)
    elif settings.backend == SubstrateBackend.MEMORY:
        return InMemorySubstrate()
    else:
        raise ValueError(f"Unsupported substrate backend: {settings.backend}")
