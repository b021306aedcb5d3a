"""
Schema Registry for RichStore.

Collections sharing one substrate are namespaced by name only, so two
collection objects declared under the same name with different schemas
would corrupt each other's indexes. The registry is the guard against that:
- Registration of collection schemas by name
- Idempotent re-registration of an identical schema
- Freeze mechanism to prevent runtime modifications

Invariants:
    - A collection name maps to exactly one schema fingerprint
    - Predicates are not serializable; re-registration must pass the same
      condition objects for every filter
    - Once frozen, no new schemas can be registered

Example:
    >>> registry = SchemaRegistry()
    >>> registry.register(schema)
    >>> registry.freeze()
    >>> registry.get("cars") is schema
    True
"""

from __future__ import annotations

import logging
import threading
from typing import Dict, Iterator, Optional

from ..errors import ConfigurationError
from .types import CollectionSchema

logger = logging.getLogger(__name__)


class RegistryFrozenError(ConfigurationError):
    """Raised when attempting to modify a frozen registry."""
    pass


class DuplicateRegistrationError(ConfigurationError):
    """Raised when a collection name is registered with a different schema."""
    pass


class SchemaRegistry:
    """Registry of collection schemas keyed by collection name.

    Thread-safety:
        - Registration is thread-safe (uses internal lock)
        - Freeze is atomic and irreversible
    """

    def __init__(self) -> None:
        self._schemas: Dict[str, CollectionSchema] = {}
        self._frozen = False
        self._lock = threading.Lock()

    @property
    def frozen(self) -> bool:
        """Whether the registry is frozen."""
        return self._frozen

    def register(self, schema: CollectionSchema) -> CollectionSchema:
        """Register a collection schema.

        Registering a schema whose fingerprint matches the one already
        held for that name, with the same filter condition objects, is a
        no-op and returns the existing schema.

        Args:
            schema: The collection schema to register

        Returns:
            The schema now registered under ``schema.name``

        Raises:
            RegistryFrozenError: If registry is frozen
            DuplicateRegistrationError: If the name is held by another schema
        """
        with self._lock:
            existing = self._schemas.get(schema.name)
            if existing is not None:
                if existing.fingerprint != schema.fingerprint:
                    raise DuplicateRegistrationError(
                        f"Collection '{schema.name}' already registered with "
                        f"fingerprint {existing.fingerprint}",
                        collection=schema.name,
                    )
                for old, new in zip(existing.filters, schema.filters):
                    if old.condition is not new.condition:
                        raise DuplicateRegistrationError(
                            f"Collection '{schema.name}' already registered with a "
                            f"different condition for filter '{new.name}'",
                            collection=schema.name,
                        )
                return existing

            if self._frozen:
                raise RegistryFrozenError(
                    f"Cannot register collection '{schema.name}': registry is frozen",
                    collection=schema.name,
                )

            self._schemas[schema.name] = schema
            logger.debug(
                f"Registered collection: {schema.name} "
                f"({len(schema.fields)} fields, {len(schema.filters)} filters)"
            )
            return schema

    def get(self, name: str) -> Optional[CollectionSchema]:
        return self._schemas.get(name)

    def __contains__(self, name: object) -> bool:
        return name in self._schemas

    def __iter__(self) -> Iterator[CollectionSchema]:
        yield from self._schemas.values()

    def freeze(self) -> None:
        """Freeze the registry.

        Raises:
            RegistryFrozenError: If already frozen
        """
        with self._lock:
            if self._frozen:
                raise RegistryFrozenError("Registry is already frozen")
            self._frozen = True
            logger.info(f"Schema registry frozen with {len(self._schemas)} collections")

    def to_dict(self) -> dict:
        return {
            "collections": [self._schemas[name].to_dict() for name in sorted(self._schemas)]
        }
