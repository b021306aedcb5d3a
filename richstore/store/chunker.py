"""
Batch chunking for substrate calls.

Substrate commands have practical request-size ceilings, and one call per
record costs a round trip each. Batch operations therefore send their
arguments in chunks of at most ``limit`` logical items.

Arguments are flat sequences made of fixed-size groups: ``group_size`` 1
for plain keys or members, 2 for alternating pairs such as key/payload or
score/member.

Invariants:
    - Every chunk length is a multiple of group_size; a group is never split
    - Chunks preserve input order and are sent sequentially
    - Results of read-style calls are concatenated in input order
    - An empty argument sequence issues no call at all
"""

from __future__ import annotations

import logging
from typing import Any, Awaitable, Callable, Iterator, Optional, Sequence, TypeVar

from ..config import DEFAULT_CHUNK_SIZE

logger = logging.getLogger(__name__)

T = TypeVar("T")


def chunk_length(group_size: int, limit: int) -> int:
    """Largest multiple of group_size not above limit (at least one group)."""
    if group_size <= 0:
        raise ValueError(f"group_size must be positive, got {group_size}")
    if limit <= 0:
        raise ValueError(f"limit must be positive, got {limit}")
    return max(group_size, limit - limit % group_size)


def chunked(
    args: Sequence[T],
    group_size: int = 1,
    limit: int = DEFAULT_CHUNK_SIZE,
) -> Iterator[Sequence[T]]:
    """Split args into consecutive chunks that keep groups whole.

    Args:
        args: Flat argument sequence
        group_size: Size of the atomic groups args is made of
        limit: Maximum chunk length

    Yields:
        Slices of args

    Raises:
        ValueError: If len(args) is not a multiple of group_size
    """
    if len(args) % group_size:
        raise ValueError(
            f"Argument count {len(args)} is not a multiple of group size {group_size}"
        )
    step = chunk_length(group_size, limit)
    for start in range(0, len(args), step):
        yield args[start : start + step]


def pairs(chunk: Sequence[T]) -> Iterator[tuple[T, T]]:
    """Iterate a flat pair chunk as (first, second) tuples."""
    return zip(chunk[0::2], chunk[1::2])


async def run_chunked(
    op: Callable[[Sequence[T]], Awaitable[Any]],
    args: Sequence[T],
    group_size: int = 1,
    limit: int = DEFAULT_CHUNK_SIZE,
) -> list[Any]:
    """Apply op to each chunk of args in order.

    Args:
        op: Single-chunk operation
        args: Flat argument sequence
        group_size: Size of the atomic groups args is made of
        limit: Maximum chunk length

    Returns:
        Concatenated list results of op, in order. Non-list results
        (counts, None) are collected one per chunk.
    """
    results: list[Any] = []
    calls = 0
    for chunk in chunked(args, group_size, limit):
        reply: Optional[Any] = await op(chunk)
        calls += 1
        if isinstance(reply, list):
            results.extend(reply)
        else:
            results.append(reply)
    if calls > 1:
        logger.debug(
            "Chunked substrate call",
            extra={"items": len(args), "group_size": group_size, "calls": calls},
        )
    return results
