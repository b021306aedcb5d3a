"""
Per-field secondary indexes.

Text fields get one set per distinct value holding the ids of the records
with that value. Number and timestamp fields get one sorted set per field,
scoring each id by its value (timestamps in Unix milliseconds).

Invariants:
    - A record without a value for an indexed field has no entry for it
    - Index entries are written after, and removed after, the primary record
    - Removing an id that has no entry is a no-op

How to change safely:
    - Changing key layout or score rules requires re-indexing all records
    - Keep every write chunked; text values are grouped per key first
"""

from __future__ import annotations

import logging
from typing import Any, Mapping, Sequence

from ..errors import UnindexedFieldError, UnsupportedQueryError
from ..schema import ID_FIELD, CollectionSchema, FieldDef
from ..substrate import Substrate
from .chunker import pairs, run_chunked
from .keys import KeySpace

logger = logging.getLogger(__name__)


class IndexMaintainer:
    """Keeps field indexes consistent with the records of a collection."""

    def __init__(
        self,
        substrate: Substrate,
        schema: CollectionSchema,
        keys: KeySpace,
        chunk_size: int,
    ) -> None:
        self._substrate = substrate
        self._schema = schema
        self._keys = keys
        self._chunk_size = chunk_size

    def indexed_field(self, name: str) -> FieldDef:
        """Return the definition of an indexed field.

        Raises:
            UnindexedFieldError: If the field is undeclared or not indexed
        """
        field_def = self._schema.get_field(name)
        if field_def is None or not field_def.indexed:
            raise UnindexedFieldError(name, collection=self._schema.name)
        return field_def

    def _text_groups(
        self, field_name: str, records: Sequence[Mapping[str, Any]]
    ) -> dict[str, list[str]]:
        groups: dict[str, list[str]] = {}
        for record in records:
            value = record.get(field_name)
            if value is None:
                continue
            groups.setdefault(str(value), []).append(str(record[ID_FIELD]))
        return groups

    async def insert(self, records: Sequence[Mapping[str, Any]]) -> None:
        """Add index entries for every indexed field present on the records."""
        for field_def in self._schema.indexed_fields:
            if not field_def.kind.scored:
                for value, ids in self._text_groups(field_def.name, records).items():
                    key = self._keys.text_index(field_def.name, value)

                    async def add(chunk: Sequence[str], key: str = key) -> int:
                        return await self._substrate.set_add(key, chunk)

                    await run_chunked(add, ids, limit=self._chunk_size)
                continue

            args: list[Any] = []
            for record in records:
                value = record.get(field_def.name)
                if value is None:
                    continue
                args.extend((field_def.score(value), str(record[ID_FIELD])))
            if not args:
                continue
            key = self._keys.index(field_def.name)

            async def score(chunk: Sequence[Any], key: str = key) -> int:
                return await self._substrate.sorted_add(
                    key, {member: value for value, member in pairs(chunk)}
                )

            await run_chunked(score, args, group_size=2, limit=self._chunk_size)

        logger.debug(
            "Indexed records",
            extra={"collection": self._schema.name, "records": len(records)},
        )

    async def remove(self, records: Sequence[Mapping[str, Any]]) -> None:
        """Remove the index entries the given records hold."""
        for field_def in self._schema.indexed_fields:
            if not field_def.kind.scored:
                for value, ids in self._text_groups(field_def.name, records).items():
                    key = self._keys.text_index(field_def.name, value)

                    async def discard(chunk: Sequence[str], key: str = key) -> int:
                        return await self._substrate.set_remove(key, chunk)

                    await run_chunked(discard, ids, limit=self._chunk_size)
                continue

            ids = [
                str(record[ID_FIELD])
                for record in records
                if record.get(field_def.name) is not None
            ]
            if not ids:
                continue
            key = self._keys.index(field_def.name)

            async def unscore(chunk: Sequence[str], key: str = key) -> int:
                return await self._substrate.sorted_remove(key, chunk)

            await run_chunked(unscore, ids, limit=self._chunk_size)

        logger.debug(
            "Unindexed records",
            extra={"collection": self._schema.name, "records": len(records)},
        )

    async def ids_equal(self, field_name: str, value: Any) -> list[str]:
        """Ids of records whose field equals value.

        Raises:
            UnindexedFieldError: If the field is not indexed
        """
        field_def = self.indexed_field(field_name)
        if not field_def.kind.scored:
            return await self._substrate.set_members(
                self._keys.text_index(field_name, str(value))
            )
        return await self.ids_in_range(field_name, value, value)

    async def ids_in_range(self, field_name: str, min_value: Any, max_value: Any) -> list[str]:
        """Ids of records with min_value <= field <= max_value, ascending.

        Raises:
            UnindexedFieldError: If the field is not indexed
            UnsupportedQueryError: If the field is text
        """
        field_def = self.indexed_field(field_name)
        if not field_def.kind.scored:
            raise UnsupportedQueryError(
                f"Range query on text field '{field_name}' is not supported",
                target=field_name,
            )
        return await self._substrate.sorted_range_by_score(
            self._keys.index(field_name),
            field_def.score(min_value),
            field_def.score(max_value),
        )
