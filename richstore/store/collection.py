"""
Collections: the query and mutation surface of RichStore.

A Collection composes the record store, id allocator, index maintainer
and filter maintainer of one named collection, and exposes:
- insert / insert_many (auto-assigned or explicit ids)
- remove / remove_many
- upsert / upsert_many (remove, then insert with explicit id)
- find_by_id / find_by_ids
- find_by / find_ids_by (equality on an indexed field)
- find_range_by / find_ids_range_by (range on a number/timestamp index)
- find_by_filter / find_ids_by_filter / find_range_by_filter

Write path: record payloads -> index entries -> filter views.
Removal path: read records -> delete payloads -> index entries -> views.

Invariants:
    - Each step is a separate substrate round trip; there is no atomic
      wrapper. A concurrent reader can see a record before its indexes or
      filter views (or after, during removal). Callers that need strict
      consistency serialize access themselves.
    - Nothing is retried or rolled back: a failed step leaves the earlier
      steps applied. Removal and explicit-id insert are idempotent, so
      repeating the failed call converges.
    - Batches keep input order end to end

How to change safely:
    - Keep the write order; index/filter removal needs the stored record
    - Validate records before the first substrate write
"""

from __future__ import annotations

import logging
from typing import Any, Iterable, Mapping, Optional, Sequence

from ..config import DEFAULT_CHUNK_SIZE, StoreSettings
from ..errors import MissingIdError
from ..schema import ID_FIELD, CollectionSchema, FieldKind, FilterDef, Record, SchemaRegistry
from ..substrate import Substrate, create_substrate
from .filters import FilterMaintainer
from .ids import IdAllocator
from .indexes import IndexMaintainer
from .keys import KeySpace
from .records import RecordStore, strip_absent

logger = logging.getLogger(__name__)


class Collection:
    """A schema-driven, indexed collection of records.

    Attributes:
        schema: The immutable collection declaration
        name: Collection name

    Example:
        >>> cars = Collection(substrate, schema)
        >>> car = await cars.insert({"type": "hoge1", "weight": 300})
        >>> await cars.find_by("type", "hoge1")
        [{'type': 'hoge1', 'weight': 300, 'id': 1}]
    """

    def __init__(
        self,
        substrate: Substrate,
        schema: CollectionSchema,
        chunk_size: int = DEFAULT_CHUNK_SIZE,
    ) -> None:
        """Initialize the collection.

        Args:
            substrate: Connected substrate holding the collection
            schema: Collection declaration
            chunk_size: Maximum logical arguments per substrate call
        """
        self.schema = schema
        keys = KeySpace(schema.name)
        self._ids = IdAllocator(substrate, keys)
        self._records = RecordStore(substrate, schema, keys, chunk_size)
        self._indexes = IndexMaintainer(substrate, schema, keys, chunk_size)
        self._filters = FilterMaintainer(substrate, schema, keys, chunk_size)

    @property
    def name(self) -> str:
        return self.schema.name

    # Mutations

    async def insert(self, record: Mapping[str, Any], auto_id: bool = True) -> Record:
        """Insert one record.

        Args:
            record: Field values. With auto_id, any "id" given is replaced.
            auto_id: Assign the id from the collection counter

        Returns:
            The stored record, including its id

        Raises:
            MissingIdError: If auto_id is False and the record has no id
            FieldKindMismatchError: If a value disagrees with its declared kind
        """
        return (await self.insert_many([record], auto_id=auto_id))[0]

    async def insert_many(
        self, records: Sequence[Mapping[str, Any]], auto_id: bool = True
    ) -> list[Record]:
        """Insert records in order.

        Auto-assigned ids come from one contiguous block, in input order.

        Returns:
            The stored records, aligned with the input
        """
        if not records:
            return []

        elems = [strip_absent(record) for record in records]
        if auto_id:
            for elem in elems:
                elem.pop(ID_FIELD, None)
        else:
            for elem in elems:
                if ID_FIELD not in elem:
                    raise MissingIdError(collection=self.name)
        for elem in elems:
            self.schema.validate_record(elem)

        if auto_id:
            for elem, record_id in zip(elems, await self._ids.allocate_block(len(elems))):
                elem[ID_FIELD] = record_id

        await self._records.put_many(elems)
        await self._indexes.insert(elems)
        await self._filters.insert(elems)

        logger.debug(
            "Inserted records",
            extra={"collection": self.name, "count": len(elems), "auto_id": auto_id},
        )
        return elems

    async def remove(self, record_id: Any) -> None:
        """Remove a record. Removing an absent id is a no-op."""
        await self.remove_many([record_id])

    async def remove_many(self, ids: Iterable[Any]) -> None:
        """Remove records and retract their index and filter entries."""
        ids = list(ids)
        if not ids:
            return
        existing = await self.find_by_ids(ids)
        deleted = await self._records.delete_many(ids)
        await self._indexes.remove(existing)
        await self._filters.remove(ids)

        logger.debug(
            "Removed records",
            extra={"collection": self.name, "requested": len(ids), "deleted": deleted},
        )

    async def upsert(self, record: Mapping[str, Any]) -> Record:
        """Replace the record with the same id, or insert it.

        The replacement is whole: fields missing from ``record`` are absent
        from the stored version.

        Raises:
            MissingIdError: If the record has no id
        """
        return (await self.upsert_many([record]))[0]

    async def upsert_many(self, records: Sequence[Mapping[str, Any]]) -> list[Record]:
        if not records:
            return []
        for record in records:
            if record.get(ID_FIELD) is None:
                raise MissingIdError(collection=self.name)
            self.schema.validate_record(record)
        await self.remove_many([record[ID_FIELD] for record in records])
        return await self.insert_many(records, auto_id=False)

    # Queries

    async def find_by_id(self, record_id: Any) -> Optional[Record]:
        """Return the record with this id, or None."""
        return (await self._records.get_many([record_id]))[0]

    async def find_by_ids(self, ids: Iterable[Any]) -> list[Record]:
        """Return records in id order, dropping absent ones."""
        return [record for record in await self._records.get_many(ids) if record is not None]

    async def find_ids_by(self, field_name: str, value: Any) -> list[str]:
        """Ids of records whose field equals value.

        Raises:
            UnindexedFieldError: If the field is not indexed
        """
        return await self._indexes.ids_equal(field_name, value)

    async def find_by(self, field_name: str, value: Any) -> list[Record]:
        """Records whose field equals value.

        Text fields match by exact set membership; number and timestamp
        fields are a range query with min == max == value.

        Raises:
            UnindexedFieldError: If the field is not indexed
        """
        return await self.find_by_ids(await self.find_ids_by(field_name, value))

    async def find_ids_range_by(self, field_name: str, min_value: Any, max_value: Any) -> list[str]:
        """Ids of records with min_value <= field <= max_value, ascending.

        Bounds may be numbers or datetimes (timestamp fields).

        Raises:
            UnindexedFieldError: If the field is not indexed
            UnsupportedQueryError: If the field is text
        """
        return await self._indexes.ids_in_range(field_name, min_value, max_value)

    async def find_range_by(self, field_name: str, min_value: Any, max_value: Any) -> list[Record]:
        return await self.find_by_ids(
            await self.find_ids_range_by(field_name, min_value, max_value)
        )

    async def find_ids_by_filter(self, name: str) -> list[str]:
        """Ids in a filter view, in the view's order.

        Raises:
            UnknownFilterError: If no filter has that name
        """
        return await self._filters.ids(name)

    async def find_by_filter(self, name: str) -> list[Record]:
        """Records in a filter view.

        Ordered views ascend by score; unordered views follow the
        substrate's set order.

        Raises:
            UnknownFilterError: If no filter has that name
        """
        return await self.find_by_ids(await self.find_ids_by_filter(name))

    async def find_range_by_filter(self, name: str, min_value: Any, max_value: Any) -> list[Record]:
        """Records in an ordered filter view with scores in [min_value, max_value].

        Raises:
            UnknownFilterError: If no filter has that name
            UnsupportedQueryError: If the filter has no order field
        """
        return await self.find_by_ids(
            await self._filters.ids_in_range(name, min_value, max_value)
        )


class Store:
    """Entry point owning a substrate and the collections declared on it.

    Example:
        >>> async with Store(StoreSettings(backend="memory")) as store:
        ...     cars = store.collection(
        ...         "cars",
        ...         defaults={"id": 0, "type": "", "weight": 0},
        ...         indexes=["id", "type", "weight"],
        ...     )
        ...     await cars.insert({"type": "hoge1", "weight": 300})
    """

    def __init__(
        self,
        settings: StoreSettings | None = None,
        substrate: Substrate | None = None,
        registry: SchemaRegistry | None = None,
    ) -> None:
        """Initialize the store.

        Args:
            settings: Store settings (loaded from env if not provided)
            substrate: Substrate to use instead of one built from settings
            registry: Schema registry (a private one if not provided)
        """
        self.settings = settings or StoreSettings()
        self.substrate = substrate or create_substrate(self.settings)
        self.registry = registry or SchemaRegistry()
        self._collections: dict[str, Collection] = {}

    async def connect(self) -> None:
        if not self.substrate.is_connected:
            await self.substrate.connect()
        self.settings.log_config()

    async def close(self) -> None:
        await self.substrate.close()

    def freeze(self) -> None:
        """Close the store to new collection declarations.

        Collections declared before freezing can still be re-opened with
        the same declaration.

        Raises:
            RegistryFrozenError: If the store is already frozen
        """
        self.registry.freeze()

    async def __aenter__(self) -> Store:
        await self.connect()
        return self

    async def __aexit__(self, *args: Any) -> None:
        await self.close()

    def collection(
        self,
        name: str,
        *,
        defaults: Mapping[str, Any] | None = None,
        fields: Mapping[str, FieldKind | str] | None = None,
        indexes: Iterable[str] = (),
        filters: Iterable[FilterDef] = (),
    ) -> Collection:
        """Declare (or re-open) a collection.

        Declaring the same name again with an identical schema and the same
        filter condition objects returns the existing collection.

        Raises:
            ConfigurationError: If the declaration is invalid
            DuplicateRegistrationError: If the name is held by another schema
                or by other filter conditions
            RegistryFrozenError: If the store is frozen and the name is new
        """
        schema = self.registry.register(
            CollectionSchema.build(
                name, defaults=defaults, fields=fields, indexes=indexes, filters=filters
            )
        )
        existing = self._collections.get(name)
        if existing is not None and existing.schema is schema:
            return existing
        coll = Collection(self.substrate, schema, chunk_size=self.settings.chunk_size)
        self._collections[name] = coll
        return coll
