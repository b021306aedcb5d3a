"""
Unit tests for schema registry.

Tests cover:
- Collection registration
- Idempotent re-registration
- Registry freezing
- Duplicate detection, including replaced filter conditions
"""

import pytest

from richstore.errors import ConfigurationError, RichStoreError
from richstore.schema.registry import (
    DuplicateRegistrationError,
    RegistryFrozenError,
    SchemaRegistry,
)
from richstore.schema.types import CollectionSchema, FilterDef


def cars_schema(**extra_defaults):
    return CollectionSchema.build(
        "cars",
        defaults={"id": 0, "type": "", **extra_defaults},
        indexes=["type"],
    )


def with_filter(flt):
    return CollectionSchema.build(
        "cars",
        defaults={"id": 0, "type": ""},
        indexes=["type"],
        filters=[flt],
    )


class TestSchemaRegistry:
    """Tests for SchemaRegistry."""

    def test_register_collection(self):
        """Can register a collection schema."""
        registry = SchemaRegistry()
        schema = cars_schema()

        assert registry.register(schema) is schema

        assert registry.get("cars") is schema
        assert "cars" in registry
        assert list(registry) == [schema]

    def test_register_identical_schema_is_idempotent(self):
        """Re-registering the same declaration returns the first schema."""
        registry = SchemaRegistry()
        first = cars_schema()

        registry.register(first)
        again = registry.register(cars_schema())

        assert again is first

    def test_duplicate_name_raises(self):
        """Registering a different schema under a taken name raises error."""
        registry = SchemaRegistry()
        registry.register(cars_schema())

        with pytest.raises(DuplicateRegistrationError, match="'cars' already registered"):
            registry.register(cars_schema(weight=0))

    def test_freeze_twice_raises(self):
        """Freezing twice raises error."""
        registry = SchemaRegistry()
        registry.freeze()

        with pytest.raises(RegistryFrozenError):
            registry.freeze()

    def test_register_after_freeze_raises(self):
        """Registering after freeze raises error."""
        registry = SchemaRegistry()
        registry.freeze()

        with pytest.raises(RegistryFrozenError):
            registry.register(cars_schema())

    def test_registered_schema_still_resolves_after_freeze(self):
        """Frozen registry keeps answering for known schemas."""
        registry = SchemaRegistry()
        schema = registry.register(cars_schema())
        registry.freeze()

        assert registry.frozen is True
        assert registry.register(cars_schema()) is schema

    def test_to_dict_sorted_by_name(self):
        registry = SchemaRegistry()
        registry.register(CollectionSchema.build("trucks", defaults={"id": 0}))
        registry.register(cars_schema())

        names = [c["name"] for c in registry.to_dict()["collections"]]

        assert names == ["cars", "trucks"]

    def test_same_condition_objects_are_idempotent(self):
        registry = SchemaRegistry()
        hoge1 = FilterDef("f", lambda r: r.get("type") == "hoge1")

        first = registry.register(with_filter(hoge1))

        assert registry.register(with_filter(hoge1)) is first

    def test_different_condition_raises(self):
        """A replaced predicate cannot slip past the fingerprint."""
        registry = SchemaRegistry()
        registry.register(with_filter(FilterDef("f", lambda r: r.get("type") == "a")))

        with pytest.raises(DuplicateRegistrationError, match="condition for filter 'f'"):
            registry.register(with_filter(FilterDef("f", lambda r: r.get("type") == "b")))

    def test_errors_are_configuration_errors(self):
        registry = SchemaRegistry()
        registry.register(cars_schema())
        registry.freeze()

        with pytest.raises(ConfigurationError):
            registry.register(cars_schema(weight=0))
        with pytest.raises(RichStoreError):
            registry.register(CollectionSchema.build("trucks", defaults={"id": 0}))
