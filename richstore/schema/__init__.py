"""
Schema module for RichStore.

This module provides the declarations collections are built from:
- Field kinds and definitions (FieldKind, FieldDef)
- Filter view declarations (FilterDef)
- Collection schemas (CollectionSchema) and their registry

Invariants:
    - Kinds are fixed at construction and never widened
    - Schemas are immutable once built
"""

from .registry import DuplicateRegistrationError, RegistryFrozenError, SchemaRegistry
from .types import (
    ID_FIELD,
    CollectionSchema,
    FieldDef,
    FieldKind,
    FilterDef,
    Record,
    to_epoch_ms,
)

__all__ = [
    # Types
    "FieldKind",
    "FieldDef",
    "FilterDef",
    "CollectionSchema",
    "Record",
    "ID_FIELD",
    "to_epoch_ms",
    # Registry
    "SchemaRegistry",
    "RegistryFrozenError",
    "DuplicateRegistrationError",
]
