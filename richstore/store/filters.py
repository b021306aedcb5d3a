"""
Materialized filter views.

A filter is a named predicate over whole records. Its view holds the ids
of the records that satisfied the predicate when they were inserted: an
unordered set, or a sorted set scored by the filter's order field.

Filters are purely derived state. Re-scanning every record against every
predicate would rebuild them; they exist to avoid that scan on read.

Invariants:
    - Removal purges the id from every view without re-evaluating predicates
    - A record lacking its filter's order field is left out of that view
    - Removing an id a view does not hold is a no-op
"""

from __future__ import annotations

import logging
from typing import Any, Iterable, Mapping, Sequence

from ..errors import UnknownFilterError, UnsupportedQueryError
from ..schema import ID_FIELD, CollectionSchema, FieldDef, FilterDef
from ..substrate import Substrate
from .chunker import pairs, run_chunked
from .keys import KeySpace

logger = logging.getLogger(__name__)


class FilterMaintainer:
    """Keeps the filter views of a collection consistent with its records."""

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
        self._order_fields: dict[str, FieldDef] = {}
        for flt in schema.filters:
            order_field = schema.get_field(flt.order_by) if flt.order_by else None
            if order_field is not None:
                self._order_fields[flt.name] = order_field

    def get(self, name: str) -> FilterDef:
        """Return a declared filter.

        Raises:
            UnknownFilterError: If no filter has that name
        """
        flt = self._schema.get_filter(name)
        if flt is None:
            raise UnknownFilterError(name, collection=self._schema.name)
        return flt

    def _order_field(self, flt: FilterDef) -> FieldDef:
        # Existence and kind were checked when the schema was built.
        return self._order_fields[flt.name]

    async def insert(self, records: Sequence[Mapping[str, Any]]) -> None:
        """Add every record matching a filter to that filter's view."""
        for flt in self._schema.filters:
            matches = [record for record in records if flt.condition(record)]
            if not matches:
                continue
            key = self._keys.filter(flt.name)

            if not flt.ordered:
                ids = [str(record[ID_FIELD]) for record in matches]

                async def add(chunk: Sequence[str], key: str = key) -> int:
                    return await self._substrate.set_add(key, chunk)

                await run_chunked(add, ids, limit=self._chunk_size)
            else:
                order_field = self._order_field(flt)
                args: list[Any] = []
                for record in matches:
                    value = record.get(order_field.name)
                    if value is None:
                        logger.debug(
                            f"Record {record[ID_FIELD]} has no '{order_field.name}', "
                            f"left out of filter '{flt.name}'"
                        )
                        continue
                    args.extend((order_field.score(value), str(record[ID_FIELD])))

                async def score(chunk: Sequence[Any], key: str = key) -> int:
                    return await self._substrate.sorted_add(
                        key, {member: value for value, member in pairs(chunk)}
                    )

                await run_chunked(score, args, group_size=2, limit=self._chunk_size)

            logger.debug(
                "Filter view updated",
                extra={
                    "collection": self._schema.name,
                    "filter": flt.name,
                    "matches": len(matches),
                },
            )

    async def remove(self, ids: Iterable[Any]) -> None:
        """Purge ids from every filter view."""
        members = [str(record_id) for record_id in ids]
        if not members:
            return
        for flt in self._schema.filters:
            key = self._keys.filter(flt.name)
            op = self._substrate.sorted_remove if flt.ordered else self._substrate.set_remove

            async def purge(chunk: Sequence[str], key: str = key, op: Any = op) -> int:
                return await op(key, chunk)

            await run_chunked(purge, members, limit=self._chunk_size)

    async def ids(self, name: str) -> list[str]:
        """All ids in a view, ascending by score for ordered views."""
        flt = self.get(name)
        key = self._keys.filter(name)
        if not flt.ordered:
            return await self._substrate.set_members(key)
        return await self._substrate.sorted_range(key, 0, -1)

    async def ids_in_range(self, name: str, min_value: Any, max_value: Any) -> list[str]:
        """Ids in an ordered view with scores in [min_value, max_value].

        Raises:
            UnknownFilterError: If no filter has that name
            UnsupportedQueryError: If the filter has no order field
        """
        flt = self.get(name)
        if not flt.ordered:
            raise UnsupportedQueryError(
                f"Filter '{name}' has no order field and cannot be ranged", target=name
            )
        order_field = self._order_field(flt)
        return await self._substrate.sorted_range_by_score(
            self._keys.filter(name),
            order_field.score(min_value),
            order_field.score(max_value),
        )
