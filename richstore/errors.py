"""
Error types for RichStore.

This module defines the exceptions raised by collections:
- RichStoreError: Base exception
- ConfigurationError: Schema or filter declaration is invalid
- FieldKindMismatchError: A record value disagrees with its declared kind
- UsageError: A call is invalid for the collection it targets
- UnindexedFieldError: Query on a field that has no index
- UnsupportedQueryError: Range query on a field or filter with no score
- MissingIdError: Explicit-id insert of a record without an id
- UnknownFilterError: Query on a filter that was never declared

Registry errors (DuplicateRegistrationError, RegistryFrozenError) are
ConfigurationErrors; substrate failures (SubstrateError) also derive from
RichStoreError.

Invariants:
    - All errors inherit from RichStoreError
    - Errors include context for debugging
    - Not-found is never an error (absent records are simply dropped)
"""

from __future__ import annotations

from typing import Any, Dict, Optional


class RichStoreError(Exception):
    """Base exception for all RichStore errors.

    Attributes:
        message: Error message
        code: Error code for programmatic handling
        details: Additional error context
    """

    def __init__(
        self,
        message: str,
        code: Optional[str] = None,
        details: Optional[Dict[str, Any]] = None,
    ) -> None:
        super().__init__(message)
        self.message = message
        self.code = code or "RICHSTORE_ERROR"
        self.details = details or {}


class ConfigurationError(RichStoreError):
    """Collection declaration is invalid.

    Raised at construction time when:
    - An indexed field is missing from the sample record
    - A field kind cannot be inferred
    - A filter is ordered by a text or undeclared field
    """

    def __init__(
        self,
        message: str,
        collection: Optional[str] = None,
        field_name: Optional[str] = None,
    ) -> None:
        super().__init__(
            message,
            code="CONFIGURATION_ERROR",
            details={"collection": collection, "field": field_name},
        )
        self.collection = collection
        self.field_name = field_name


class FieldKindMismatchError(ConfigurationError):
    """A record carries a value whose kind differs from the declared one."""

    def __init__(
        self,
        field_name: str,
        expected: str,
        actual: str,
        collection: Optional[str] = None,
    ) -> None:
        super().__init__(
            f"Field '{field_name}' is declared as {expected}, got {actual}",
            collection=collection,
            field_name=field_name,
        )
        self.code = "FIELD_KIND_MISMATCH"
        self.details.update({"expected": expected, "actual": actual})
        self.expected = expected
        self.actual = actual


class UsageError(RichStoreError):
    """A call is not valid against this collection.

    Raised per call, never retried.
    """

    def __init__(
        self,
        message: str,
        code: Optional[str] = None,
        details: Optional[Dict[str, Any]] = None,
    ) -> None:
        super().__init__(message, code=code or "USAGE_ERROR", details=details)


class UnindexedFieldError(UsageError):
    """Query on a field that is not indexed."""

    def __init__(self, field_name: str, collection: Optional[str] = None) -> None:
        super().__init__(
            f"Field '{field_name}' is not indexed",
            code="UNINDEXED_FIELD",
            details={"field": field_name, "collection": collection},
        )
        self.field_name = field_name


class UnsupportedQueryError(UsageError):
    """Range query on something that has no score ordering."""

    def __init__(self, message: str, target: Optional[str] = None) -> None:
        super().__init__(message, code="UNSUPPORTED_QUERY", details={"target": target})
        self.target = target


class MissingIdError(UsageError):
    """Record without an id inserted while auto-assignment is disabled."""

    def __init__(self, collection: Optional[str] = None) -> None:
        super().__init__(
            "Record id is required when auto id assignment is disabled",
            code="MISSING_ID",
            details={"collection": collection},
        )


class UnknownFilterError(UsageError):
    """Query on a filter name that was never declared."""

    def __init__(self, filter_name: str, collection: Optional[str] = None) -> None:
        super().__init__(
            f"Unknown filter '{filter_name}'",
            code="UNKNOWN_FILTER",
            details={"filter": filter_name, "collection": collection},
        )
        self.filter_name = filter_name
