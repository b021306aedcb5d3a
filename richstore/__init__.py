"""
RichStore - secondary indexes and materialized views on Redis.

This package turns an ordered key-value substrate offering scalar values,
sets and sorted sets into a lightweight document store:
- Records stored as JSON payloads under {collection}:{id}
- Equality indexes (sets) for text fields
- Range indexes (sorted sets) for number and timestamp fields
- Named filter views, unordered or ordered by a field

Architecture:
    ┌─────────────┐     ┌──────────────────────────────────────────┐
    │   Caller    │────▶│ Collection (insert/remove/upsert/find*)  │
    └─────────────┘     └───────┬───────────┬───────────┬──────────┘
                                │           │           │
                                ▼           ▼           ▼
                        ┌───────────┐ ┌──────────┐ ┌──────────┐
                        │  Records  │ │ Indexes  │ │ Filters  │
                        └─────┬─────┘ └────┬─────┘ └────┬─────┘
                              └────────────┼────────────┘
                                           ▼ (chunked calls)
                              ┌─────────────────────────┐
                              │ Substrate (Redis/memory)│
                              └─────────────────────────┘

Invariants:
    - Schemas are fixed when a collection is declared
    - Indexes and filters are derived state of the records
    - No transactions: each step of a mutation is its own round trip

How to change safely:
    - Key layout changes require rebuilding indexes and views
    - Kinds of declared fields cannot change for an existing collection
"""

from ._version import __version__
from .config import StoreSettings, setup_logging
from .errors import (
    ConfigurationError,
    FieldKindMismatchError,
    MissingIdError,
    RichStoreError,
    UnindexedFieldError,
    UnknownFilterError,
    UnsupportedQueryError,
    UsageError,
)
from .schema import CollectionSchema, FieldKind, FilterDef
from .store import Collection, Store

__all__ = [
    "__version__",
    "Store",
    "Collection",
    "CollectionSchema",
    "FieldKind",
    "FilterDef",
    "StoreSettings",
    "setup_logging",
    "RichStoreError",
    "ConfigurationError",
    "FieldKindMismatchError",
    "UsageError",
    "UnindexedFieldError",
    "UnsupportedQueryError",
    "MissingIdError",
    "UnknownFilterError",
]
