"""
End-to-end tests against a live Redis server.

Tests cover:
- Full insert / query / remove flow
- Chunked bulk writes beyond one chunk
- Concurrent id allocation through INCRBY
"""

import asyncio
import os
from datetime import datetime, timedelta, timezone

import pytest

from richstore.schema import FilterDef

pytestmark = pytest.mark.skipif(
    os.environ.get("RICHSTORE_E2E_TESTS", "0") != "1",
    reason="E2E tests disabled. Set RICHSTORE_E2E_TESTS=1 to enable.",
)

NOW1 = datetime(2024, 1, 1, 12, 0, 0, tzinfo=timezone.utc)


def declare(store, name):
    return store.collection(
        name,
        defaults={"id": 0, "type": "", "weight": 0, "created_at": NOW1},
        indexes=["id", "type", "weight", "created_at"],
        filters=[
            FilterDef("recent_hoge1", lambda r: r.get("type") == "hoge1", "created_at"),
        ],
    )


@pytest.mark.asyncio
async def test_full_flow(store, redis_client, collection_name):
    cars = declare(store, collection_name)

    inserted = await cars.insert_many(
        [
            {"type": "hoge1", "weight": 300, "created_at": NOW1},
            {"type": "hoge2", "weight": 200},
            {"type": "hoge1", "created_at": NOW1 + timedelta(seconds=10)},
        ]
    )

    assert [car["id"] for car in inserted] == [1, 2, 3]
    assert await cars.find_range_by("weight", -50, 450) == [inserted[1], inserted[0]]
    assert await cars.find_by_filter("recent_hoge1") == [inserted[0], inserted[2]]

    await cars.remove_many([1, 2, 3])

    assert await redis_client.keys(f"*{collection_name}*") == [f"idcnt::{collection_name}"]


@pytest.mark.asyncio
async def test_bulk_insert_spans_chunks(store, collection_name):
    cars = declare(store, collection_name)

    inserted = await cars.insert_many(
        [{"type": f"hoge{i % 10}", "weight": i} for i in range(2500)]
    )

    assert len(await cars.find_range_by("weight", 0, 2500)) == 2500
    assert sorted(int(i) for i in await cars.find_ids_by("type", "hoge1")) == [
        car["id"] for car in inserted if car["type"] == "hoge1"
    ]


@pytest.mark.asyncio
async def test_concurrent_batches_get_disjoint_ids(store, collection_name):
    cars = declare(store, collection_name)

    batches = await asyncio.gather(
        *(cars.insert_many([{"weight": i} for i in range(20)]) for _ in range(5))
    )

    ids = sorted(car["id"] for batch in batches for car in batch)
    assert ids == list(range(1, 101))
