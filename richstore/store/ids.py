"""
Id allocation for auto-assigned records.

Ids come from one atomic counter per collection. A batch of n records
costs a single INCRBY n; the caller owns the contiguous block
``[last - n + 1 .. last]``. Monotonicity under concurrent callers is the
substrate's guarantee, not this module's.
"""

from __future__ import annotations

import logging

from ..substrate import Substrate
from .keys import KeySpace

logger = logging.getLogger(__name__)


class IdAllocator:
    """Allocates strictly increasing integer ids for one collection."""

    def __init__(self, substrate: Substrate, keys: KeySpace) -> None:
        self._substrate = substrate
        self._keys = keys

    async def allocate(self, count: int) -> int:
        """Reserve ``count`` ids and return the highest one.

        Args:
            count: Number of ids to reserve (must be positive)

        Returns:
            Last id of the reserved block
        """
        if count <= 0:
            raise ValueError(f"count must be positive, got {count}")
        last = await self._substrate.increment_by(self._keys.id_counter(), count)
        logger.debug(
            "Allocated ids",
            extra={"collection": self._keys.collection, "count": count, "last_id": last},
        )
        return last

    async def allocate_block(self, count: int) -> range:
        """Reserve ``count`` ids and return them in ascending order."""
        last = await self.allocate(count)
        return range(last - count + 1, last + 1)
