"""
Collection engine for RichStore.

This module keeps the primary records, the per-field indexes and the
filter views of a collection consistent with each other, and answers
point, range and filter queries from them:
- RecordStore: JSON payloads keyed by collection and id
- IdAllocator: contiguous id blocks from an atomic counter
- IndexMaintainer: set (text) and sorted set (number/timestamp) indexes
- FilterMaintainer: predicate views, unordered or score-ordered
- Collection / Store: the public surface

Invariants:
    - Every mutation path updates records, indexes and filters together,
      in that order, without atomicity across the steps
    - Large batches are chunked without splitting argument pairs
"""

from .chunker import chunked, run_chunked
from .collection import Collection, Store
from .filters import FilterMaintainer
from .ids import IdAllocator
from .indexes import IndexMaintainer
from .keys import KeySpace
from .records import RecordStore

__all__ = [
    "Collection",
    "Store",
    "RecordStore",
    "IdAllocator",
    "IndexMaintainer",
    "FilterMaintainer",
    "KeySpace",
    "chunked",
    "run_chunked",
]
