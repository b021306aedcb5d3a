"""
Substrate key layout of a collection.

    {collection}:{id}                      record payload (string)
    index::{collection}:{field}            numeric/timestamp index (sorted set)
    index::{collection}:{field}:{value}    text index (set)
    filter::{collection}:{name}            filter view (set or sorted set)
    idcnt::{collection}                    id counter (string)

Collections sharing a substrate never touch each other's keys.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any


@dataclass(frozen=True)
class KeySpace:
    collection: str

    def record(self, record_id: Any) -> str:
        return f"{self.collection}:{record_id}"

    def index(self, field_name: str) -> str:
        return f"index::{self.collection}:{field_name}"

    def text_index(self, field_name: str, value: str) -> str:
        return f"index::{self.collection}:{field_name}:{value}"

    def filter(self, name: str) -> str:
        return f"filter::{self.collection}:{name}"

    def id_counter(self) -> str:
        return f"idcnt::{self.collection}"
