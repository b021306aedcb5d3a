"""
Primary record storage for a collection.

Each record is one scalar key ``{collection}:{id}`` holding a JSON
payload. Timestamp fields are written as ISO-8601 text and turned back
into ``datetime`` objects on read, so a record read back compares equal
to the record written.

Invariants:
    - A payload round-trips a record value-for-value
    - Fields set to None are absent: they are never written
    - Reads align with the requested ids; absent records are None

How to change safely:
    - Payload format changes must still decode existing payloads
    - Epoch-millisecond numbers are accepted for timestamp fields on read
"""

from __future__ import annotations

import json
import logging
from datetime import datetime, timezone
from typing import Any, Iterable, Mapping, Optional, Sequence

from ..schema import ID_FIELD, CollectionSchema, Record
from ..substrate import Substrate
from .chunker import pairs, run_chunked
from .keys import KeySpace

logger = logging.getLogger(__name__)


def _encode_value(value: Any) -> Any:
    if isinstance(value, datetime):
        return value.isoformat()
    raise TypeError(f"Object of type {type(value).__name__} is not JSON serializable")


def _decode_timestamp(value: Any) -> Any:
    if isinstance(value, str):
        return datetime.fromisoformat(value)
    if isinstance(value, (int, float)) and not isinstance(value, bool):
        return datetime.fromtimestamp(value / 1000, tz=timezone.utc)
    return value


def strip_absent(record: Mapping[str, Any]) -> Record:
    """Copy of record without None-valued fields."""
    return {key: value for key, value in record.items() if value is not None}


class RecordStore:
    """Reads and writes whole records as JSON payloads."""

    def __init__(
        self,
        substrate: Substrate,
        schema: CollectionSchema,
        keys: KeySpace,
        chunk_size: int,
    ) -> None:
        self._substrate = substrate
        self._keys = keys
        self._chunk_size = chunk_size
        self._timestamp_fields = schema.timestamp_fields

    def encode(self, record: Mapping[str, Any]) -> str:
        return json.dumps(strip_absent(record), default=_encode_value)

    def decode(self, payload: str) -> Record:
        record = json.loads(payload)
        for field_name in self._timestamp_fields:
            if record.get(field_name) is not None:
                record[field_name] = _decode_timestamp(record[field_name])
        return record

    async def put_many(self, records: Sequence[Mapping[str, Any]]) -> None:
        """Write records, overwriting any payload under the same id."""
        args: list[str] = []
        for record in records:
            args.extend((self._keys.record(record[ID_FIELD]), self.encode(record)))

        async def write(chunk: Sequence[str]) -> None:
            await self._substrate.set_many(dict(pairs(chunk)))

        await run_chunked(write, args, group_size=2, limit=self._chunk_size)

    async def get_many(self, ids: Iterable[Any]) -> list[Optional[Record]]:
        """Read records aligned to ids; None where a record is absent."""
        keys = [self._keys.record(record_id) for record_id in ids]
        payloads = await run_chunked(self._substrate.get_many, keys, limit=self._chunk_size)
        return [self.decode(payload) if payload is not None else None for payload in payloads]

    async def delete_many(self, ids: Iterable[Any]) -> int:
        """Delete records by id, returning how many existed."""
        keys = [self._keys.record(record_id) for record_id in ids]
        counts = await run_chunked(self._substrate.delete, keys, limit=self._chunk_size)
        return sum(counts)
