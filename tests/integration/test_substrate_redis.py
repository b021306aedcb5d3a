"""
Integration tests for the Redis substrate.

Uses fakeredis so the command mapping is exercised against a
Redis-compatible server without a network dependency.

Tests cover:
- Scalar, set and sorted set commands
- Counter semantics
- Error translation
"""

import fakeredis
import pytest
import pytest_asyncio

from richstore.substrate import RedisSubstrate, Substrate
from richstore.substrate.base import SubstrateConnectionError, SubstrateError


@pytest_asyncio.fixture
async def substrate():
    client = fakeredis.FakeAsyncRedis(server=fakeredis.FakeServer(), decode_responses=True)
    substrate = RedisSubstrate(client=client)
    await substrate.connect()
    yield substrate
    await substrate.close()
    await client.aclose()


class TestRedisSubstrate:
    def test_satisfies_protocol(self):
        assert isinstance(RedisSubstrate(), Substrate)

    @pytest.mark.asyncio
    async def test_calls_require_connection(self):
        with pytest.raises(SubstrateConnectionError):
            await RedisSubstrate().get_many(["cars:1"])

    @pytest.mark.asyncio
    async def test_set_get_delete(self, substrate):
        await substrate.set_many({"cars:1": "a", "cars:2": "b"})

        assert await substrate.get_many(["cars:1", "cars:3", "cars:2"]) == ["a", None, "b"]
        assert await substrate.delete(["cars:1", "cars:3"]) == 1

    @pytest.mark.asyncio
    async def test_empty_arguments_are_noops(self, substrate):
        await substrate.set_many({})

        assert await substrate.get_many([]) == []
        assert await substrate.delete([]) == 0
        assert await substrate.set_add("s", []) == 0
        assert await substrate.sorted_add("z", {}) == 0

    @pytest.mark.asyncio
    async def test_set_commands(self, substrate):
        assert await substrate.set_add("s", ["1", "2", "2"]) == 2
        assert await substrate.set_remove("s", ["2", "9"]) == 1
        assert await substrate.set_members("s") == ["1"]
        assert await substrate.set_members("missing") == []

    @pytest.mark.asyncio
    async def test_sorted_commands(self, substrate):
        await substrate.sorted_add("z", {"1": 300, "2": 200, "3": 1.5e12})

        assert await substrate.sorted_range_by_score("z", -50, 450) == ["2", "1"]
        assert await substrate.sorted_range("z", 0, -1) == ["2", "1", "3"]
        assert await substrate.sorted_remove("z", ["1", "missing"]) == 1
        assert await substrate.sorted_range("z", 0, -1) == ["2", "3"]

    @pytest.mark.asyncio
    async def test_sorted_ties_order_by_member(self, substrate):
        await substrate.sorted_add("z", {"2": 5, "10": 5, "1": 5})

        assert await substrate.sorted_range("z", 0, -1) == ["1", "10", "2"]

    @pytest.mark.asyncio
    async def test_increment_by(self, substrate):
        assert await substrate.increment_by("idcnt::cars", 3) == 3
        assert await substrate.increment_by("idcnt::cars", 2) == 5
        assert await substrate.get_many(["idcnt::cars"]) == ["5"]

    @pytest.mark.asyncio
    async def test_wrong_type_raises_substrate_error(self, substrate):
        await substrate.set_add("s", ["1"])

        with pytest.raises(SubstrateError):
            await substrate.sorted_add("s", {"1": 1})
