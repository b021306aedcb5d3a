"""
E2E test fixtures for RichStore.

These tests require a live Redis server, e.g.:

    docker run --rm -p 6379:6379 redis:7
    RICHSTORE_E2E_TESTS=1 pytest tests/e2e
"""

import os
import uuid

import pytest
import pytest_asyncio
from redis import asyncio as aioredis

from richstore import Store, StoreSettings

REDIS_URL = os.environ.get("RICHSTORE_REDIS_URL", "redis://localhost:6379/15")


@pytest.fixture
def collection_name() -> str:
    """Unique collection name so runs never collide on a shared server."""
    return f"e2e_{uuid.uuid4().hex[:12]}"


@pytest_asyncio.fixture
async def redis_client(collection_name):
    client = aioredis.from_url(REDIS_URL, decode_responses=True)
    yield client
    keys = [key async for key in client.scan_iter(f"*{collection_name}*")]
    if keys:
        await client.delete(*keys)
    await client.aclose()


@pytest_asyncio.fixture
async def store(redis_client):
    async with Store(StoreSettings(backend="redis", redis_url=REDIS_URL)) as store:
        yield store
