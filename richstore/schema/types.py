"""
Core type definitions for the RichStore schema system.

This module defines the declarations a collection is built from:
- FieldKind: Value category of a field (text, number, timestamp)
- FieldDef: A single named field with its kind and index flag
- FilterDef: A named predicate view, optionally ordered by a field
- CollectionSchema: The immutable field/filter declaration of a collection

Invariants:
    - A field's kind is fixed for the lifetime of the collection
    - Only NUMBER and TIMESTAMP fields have a score (range capable)
    - A filter's order field must be declared and must not be TEXT
    - Schemas are frozen dataclasses; nothing mutates them after build()

How to change safely:
    - New kinds need a score rule in FieldDef.score and a validator
    - Changing inference rules changes the kind of existing collections
    - Keep to_dict() stable, the registry fingerprints it

Example:
    >>> from datetime import datetime
    >>> schema = CollectionSchema.build(
    ...     "cars",
    ...     defaults={"id": 0, "type": "", "weight": 0, "created_at": datetime.now()},
    ...     indexes=["id", "type", "weight"],
    ...     filters=[FilterDef("heavy", lambda car: car.get("weight", 0) > 100, "weight")],
    ... )
    >>> schema.get_field("type").kind
    <FieldKind.TEXT: 'text'>
"""

from __future__ import annotations

import hashlib
import json
from dataclasses import dataclass
from dataclasses import field as dataclass_field
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Callable, Iterable, Mapping

from ..errors import (
    ConfigurationError,
    FieldKindMismatchError,
    UnsupportedQueryError,
    UsageError,
)

Record = dict[str, Any]
Condition = Callable[[Mapping[str, Any]], bool]

ID_FIELD = "id"


class FieldKind(Enum):
    """Supported value kinds.

    TEXT fields get equality indexes; NUMBER and TIMESTAMP fields get
    score-ordered indexes (TIMESTAMP scores are Unix milliseconds).
    """

    TEXT = "text"
    NUMBER = "number"
    TIMESTAMP = "timestamp"

    @classmethod
    def from_str(cls, value: str) -> FieldKind:
        """Convert string representation to FieldKind.

        Args:
            value: String name of the field kind

        Returns:
            Corresponding FieldKind enum value

        Raises:
            ValueError: If value is not a valid field kind
        """
        for kind in cls:
            if kind.value == value:
                return kind
        valid = [k.value for k in cls]
        raise ValueError(f"Invalid field kind '{value}'. Valid kinds: {valid}")

    @classmethod
    def infer(cls, value: Any) -> FieldKind:
        """Infer the kind of a sample value.

        Args:
            value: Representative value of the field

        Returns:
            TEXT for strings, NUMBER for int/float, TIMESTAMP for datetimes

        Raises:
            ConfigurationError: If the value has none of those types
        """
        if isinstance(value, str):
            return cls.TEXT
        if _is_number(value):
            return cls.NUMBER
        if isinstance(value, datetime):
            return cls.TIMESTAMP
        raise ConfigurationError(f"Cannot infer field kind from {type(value).__name__} value")

    @property
    def scored(self) -> bool:
        """Whether values of this kind map to a sorted-set score."""
        return self is not FieldKind.TEXT


def _is_number(value: Any) -> bool:
    return isinstance(value, (int, float)) and not isinstance(value, bool)


def _parse_number(text: str) -> float | int | None:
    try:
        number = float(text)
    except ValueError:
        return None
    return int(number) if number.is_integer() else number


def to_epoch_ms(value: datetime) -> int:
    """Convert a datetime to Unix milliseconds. Naive values are read as UTC."""
    if value.tzinfo is None:
        value = value.replace(tzinfo=timezone.utc)
    return int(round(value.timestamp() * 1000))


@dataclass(frozen=True)
class FieldDef:
    """Definition of a single field of a collection.

    Attributes:
        name: Field name as it appears in records
        kind: The value kind of the field
        indexed: Whether an index is maintained for this field
    """

    name: str
    kind: FieldKind
    indexed: bool = False

    def __post_init__(self) -> None:
        if not self.name:
            raise ConfigurationError("Field name cannot be empty")

    def validate_value(self, value: Any) -> tuple[bool, str | None]:
        """Validate a value against this field's kind.

        Args:
            value: The value to validate (None means absent and is valid)

        Returns:
            Tuple of (is_valid, error_message)
        """
        if value is None:
            return True, None

        validators = {
            FieldKind.TEXT: lambda v: isinstance(v, str),
            FieldKind.NUMBER: _is_number,
            FieldKind.TIMESTAMP: lambda v: isinstance(v, datetime),
        }
        if not validators[self.kind](value):
            return False, f"Field '{self.name}' has invalid type for kind {self.kind.value}"
        return True, None

    def score(self, value: Any) -> float | int:
        """Sorted-set score of a value or range bound of this field.

        Args:
            value: A number, or a datetime for TIMESTAMP fields. Numbers
                given for a TIMESTAMP field are taken as Unix ms already.
                Numeric text, such as an id returned by an id query, is
                parsed as a number.

        Returns:
            The score used in score-ordered structures

        Raises:
            UnsupportedQueryError: If the field is TEXT
            UsageError: If the value is neither a number nor a datetime
        """
        if self.kind is FieldKind.TEXT:
            raise UnsupportedQueryError(
                f"Field '{self.name}' is text and has no score", target=self.name
            )
        if isinstance(value, datetime):
            return to_epoch_ms(value)
        if _is_number(value):
            return value
        number = _parse_number(value) if isinstance(value, str) else None
        if number is None:
            raise UsageError(
                f"Field '{self.name}' cannot be scored by {type(value).__name__} value {value!r}",
                code="INVALID_SCORE",
                details={"field": self.name},
            )
        return number

    def to_dict(self) -> dict[str, Any]:
        result: dict[str, Any] = {"name": self.name, "kind": self.kind.value}
        if self.indexed:
            result["indexed"] = True
        return result


@dataclass(frozen=True)
class FilterDef:
    """A named, materialized view over a collection.

    Attributes:
        name: Filter name, unique within the collection
        condition: Predicate deciding whether a record belongs to the view
        order_by: Optional NUMBER/TIMESTAMP field giving the view's order.
            Without it the view is an unordered id set.

    Example:
        >>> FilterDef("hoge1_by_id", lambda r: r.get("type") == "hoge1", "id")
    """

    name: str
    condition: Condition
    order_by: str | None = None

    def __post_init__(self) -> None:
        if not self.name:
            raise ConfigurationError("Filter name cannot be empty")

    @property
    def ordered(self) -> bool:
        return self.order_by is not None

    def to_dict(self) -> dict[str, Any]:
        result: dict[str, Any] = {"name": self.name}
        if self.order_by is not None:
            result["order_by"] = self.order_by
        return result


@dataclass(frozen=True)
class CollectionSchema:
    """Immutable declaration of a collection.

    Attributes:
        name: Collection name (key namespace in the substrate)
        fields: Declared fields with kinds and index flags
        filters: Declared filter views

    Invariants:
        - Field and filter names are unique
        - Every ordered filter references a declared, non-TEXT field
    """

    name: str
    fields: tuple[FieldDef, ...] = dataclass_field(default_factory=tuple)
    filters: tuple[FilterDef, ...] = dataclass_field(default_factory=tuple)

    def __post_init__(self) -> None:
        if not self.name:
            raise ConfigurationError("Collection name cannot be empty")

        field_names = [f.name for f in self.fields]
        if len(field_names) != len(set(field_names)):
            raise ConfigurationError(
                f"Duplicate field name in collection '{self.name}'", collection=self.name
            )

        filter_names = [f.name for f in self.filters]
        if len(filter_names) != len(set(filter_names)):
            raise ConfigurationError(
                f"Duplicate filter name in collection '{self.name}'", collection=self.name
            )

        for flt in self.filters:
            if flt.order_by is None:
                continue
            order_field = self.get_field(flt.order_by)
            if order_field is None:
                raise ConfigurationError(
                    f"Filter '{flt.name}' is ordered by undeclared field '{flt.order_by}'",
                    collection=self.name,
                    field_name=flt.order_by,
                )
            if not order_field.kind.scored:
                raise ConfigurationError(
                    f"Filter '{flt.name}' cannot be ordered by text field '{flt.order_by}'",
                    collection=self.name,
                    field_name=flt.order_by,
                )

    @classmethod
    def build(
        cls,
        name: str,
        *,
        defaults: Mapping[str, Any] | None = None,
        fields: Mapping[str, FieldKind | str] | None = None,
        indexes: Iterable[str] = (),
        filters: Iterable[FilterDef] = (),
    ) -> CollectionSchema:
        """Derive a schema from a sample record and/or explicit kinds.

        Kinds come from ``fields`` when declared there, otherwise they are
        inferred from the representative value in ``defaults``.

        Args:
            name: Collection name
            defaults: Representative record, one value per field
            fields: Explicit field name to kind declarations
            indexes: Names of the fields to index
            filters: Filter view declarations

        Returns:
            The frozen CollectionSchema

        Raises:
            ConfigurationError: If an indexed field has no known kind, a
                kind cannot be inferred, or a filter order field is invalid
        """
        kinds: dict[str, FieldKind] = {}
        for field_name, value in (defaults or {}).items():
            kinds[field_name] = FieldKind.infer(value)
        for field_name, kind in (fields or {}).items():
            kinds[field_name] = FieldKind.from_str(kind) if isinstance(kind, str) else kind

        indexed = set()
        for field_name in indexes:
            if field_name not in kinds:
                raise ConfigurationError(
                    f"Indexed field '{field_name}' is missing from the schema of '{name}'",
                    collection=name,
                    field_name=field_name,
                )
            indexed.add(field_name)

        return cls(
            name=name,
            fields=tuple(
                FieldDef(name=f, kind=kind, indexed=f in indexed) for f, kind in kinds.items()
            ),
            filters=tuple(filters),
        )

    def get_field(self, name: str) -> FieldDef | None:
        for f in self.fields:
            if f.name == name:
                return f
        return None

    def get_filter(self, name: str) -> FilterDef | None:
        for flt in self.filters:
            if flt.name == name:
                return flt
        return None

    @property
    def indexed_fields(self) -> list[FieldDef]:
        return [f for f in self.fields if f.indexed]

    @property
    def timestamp_fields(self) -> list[str]:
        return [f.name for f in self.fields if f.kind is FieldKind.TIMESTAMP]

    def validate_record(self, record: Mapping[str, Any]) -> None:
        """Check every declared field present on the record against its kind.

        Undeclared fields pass through unchecked.

        Raises:
            FieldKindMismatchError: On the first value of the wrong kind
        """
        for f in self.fields:
            value = record.get(f.name)
            is_valid, _ = f.validate_value(value)
            if not is_valid:
                raise FieldKindMismatchError(
                    f.name,
                    expected=f.kind.value,
                    actual=type(value).__name__,
                    collection=self.name,
                )

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary representation (predicates are not serializable)."""
        return {
            "name": self.name,
            "fields": [f.to_dict() for f in self.fields],
            "filters": [flt.to_dict() for flt in self.filters],
        }

    @property
    def fingerprint(self) -> str:
        canonical = json.dumps(self.to_dict(), sort_keys=True, separators=(",", ":"))
        return f"sha256:{hashlib.sha256(canonical.encode('utf-8')).hexdigest()}"
