"""
In-memory substrate implementation for testing.

This module provides a dict-backed substrate for:
- Unit tests
- Local development without a Redis server

Invariants:
    - All data is lost on process exit
    - Mirrors Redis ordering: sorted ranges ascend by (score, member)
    - Sets keep insertion order
    - Empty sets and sorted sets are dropped, like Redis does

How to change safely:
    - This is test-only code, changes don't affect production
    - Keep interface compatible with the Substrate protocol
"""

from __future__ import annotations

import asyncio
import logging
from typing import Dict, List, Mapping, Optional, Sequence

from .base import Score, SubstrateConnectionError, SubstrateError

logger = logging.getLogger(__name__)


class InMemorySubstrate:
    """In-memory implementation of Substrate for testing.

    Thread safety:
        Uses an asyncio lock around every call. Safe to use from
        multiple coroutines.

    Example:
        >>> substrate = InMemorySubstrate()
        >>> await substrate.connect()
        >>> await substrate.increment_by("idcnt::cars", 3)
        3
    """

    def __init__(self) -> None:
        self._strings: Dict[str, str] = {}
        self._sets: Dict[str, Dict[str, None]] = {}
        self._sorted: Dict[str, Dict[str, Score]] = {}
        self._connected = False
        self._lock = asyncio.Lock()

    @property
    def is_connected(self) -> bool:
        """Whether connected (always true after connect())."""
        return self._connected

    async def connect(self) -> None:
        """Connect (no-op for in-memory)."""
        self._connected = True
        logger.debug("InMemorySubstrate connected")

    async def close(self) -> None:
        """Close and clear all data."""
        self._connected = False
        self.clear()
        logger.debug("InMemorySubstrate closed")

    def _check(self) -> None:
        if not self._connected:
            raise SubstrateConnectionError("Not connected")

    def _check_type(self, key: str, expected: Dict[str, object]) -> None:
        for store in (self._strings, self._sets, self._sorted):
            if store is not expected and key in store:
                raise SubstrateError(f"WRONGTYPE key '{key}' holds another kind of value")

    async def set_many(self, mapping: Mapping[str, str]) -> None:
        self._check()
        async with self._lock:
            for key, value in mapping.items():
                self._check_type(key, self._strings)
                self._strings[key] = value

    async def get_many(self, keys: Sequence[str]) -> List[Optional[str]]:
        self._check()
        async with self._lock:
            return [self._strings.get(key) for key in keys]

    async def delete(self, keys: Sequence[str]) -> int:
        self._check()
        removed = 0
        async with self._lock:
            for key in keys:
                for store in (self._strings, self._sets, self._sorted):
                    if store.pop(key, None) is not None:
                        removed += 1
        return removed

    async def set_add(self, key: str, members: Sequence[str]) -> int:
        self._check()
        async with self._lock:
            self._check_type(key, self._sets)
            current = self._sets.setdefault(key, {})
            added = 0
            for member in members:
                if member not in current:
                    current[member] = None
                    added += 1
            return added

    async def set_remove(self, key: str, members: Sequence[str]) -> int:
        self._check()
        async with self._lock:
            self._check_type(key, self._sets)
            current = self._sets.get(key)
            if current is None:
                return 0
            removed = 0
            for member in members:
                if member in current:
                    del current[member]
                    removed += 1
            if not current:
                del self._sets[key]
            return removed

    async def set_members(self, key: str) -> List[str]:
        self._check()
        async with self._lock:
            self._check_type(key, self._sets)
            return list(self._sets.get(key, {}))

    async def sorted_add(self, key: str, mapping: Mapping[str, Score]) -> int:
        self._check()
        async with self._lock:
            self._check_type(key, self._sorted)
            current = self._sorted.setdefault(key, {})
            added = sum(1 for member in mapping if member not in current)
            current.update(mapping)
            return added

    async def sorted_remove(self, key: str, members: Sequence[str]) -> int:
        self._check()
        async with self._lock:
            self._check_type(key, self._sorted)
            current = self._sorted.get(key)
            if current is None:
                return 0
            removed = 0
            for member in members:
                if current.pop(member, None) is not None:
                    removed += 1
            if not current:
                del self._sorted[key]
            return removed

    def _ordered(self, key: str) -> List[tuple]:
        current = self._sorted.get(key, {})
        return sorted(((score, member) for member, score in current.items()))

    async def sorted_range_by_score(self, key: str, min_score: Score, max_score: Score) -> List[str]:
        self._check()
        async with self._lock:
            self._check_type(key, self._sorted)
            return [
                member
                for score, member in self._ordered(key)
                if min_score <= score <= max_score
            ]

    async def sorted_range(self, key: str, start: int, end: int) -> List[str]:
        self._check()
        async with self._lock:
            self._check_type(key, self._sorted)
            ordered = self._ordered(key)
            size = len(ordered)
            if start < 0:
                start = max(size + start, 0)
            if end < 0:
                end = size + end
            return [member for _, member in ordered[start : end + 1]]

    async def increment_by(self, key: str, amount: int) -> int:
        self._check()
        async with self._lock:
            self._check_type(key, self._strings)
            try:
                total = int(self._strings.get(key, "0")) + amount
            except ValueError as e:
                raise SubstrateError(f"Value at '{key}' is not an integer") from e
            self._strings[key] = str(total)
            return total

    # Testing helpers

    def keys(self) -> List[str]:
        """All keys currently held, of every kind (testing helper)."""
        return [*self._strings, *self._sets, *self._sorted]

    def clear(self) -> None:
        """Drop all data (testing helper)."""
        self._strings.clear()
        self._sets.clear()
        self._sorted.clear()
