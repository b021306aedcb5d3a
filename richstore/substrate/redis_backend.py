"""
Redis substrate implementation.

Maps the Substrate protocol one-to-one onto Redis commands through the
``redis.asyncio`` client:

    set_many               -> MSET
    get_many               -> MGET
    delete                 -> DEL
    set_add / set_remove   -> SADD / SREM
    set_members            -> SMEMBERS
    sorted_add             -> ZADD
    sorted_remove          -> ZREM
    sorted_range_by_score  -> ZRANGEBYSCORE
    sorted_range           -> ZRANGE
    increment_by           -> INCRBY

Invariants:
    - Responses are decoded to str (decode_responses=True)
    - One protocol call is one Redis command; callers chunk large arguments
    - Redis failures surface as SubstrateError, never swallowed

How to change safely:
    - Do not pipeline or wrap calls in MULTI here; collections document
      their consistency gap instead of hiding it
"""

from __future__ import annotations

import logging
from contextlib import contextmanager
from typing import Iterator, List, Mapping, Optional, Sequence

from redis import asyncio as aioredis
from redis.exceptions import ConnectionError as RedisConnectionError
from redis.exceptions import RedisError
from redis.exceptions import TimeoutError as RedisTimeoutError

from .base import Score, SubstrateConnectionError, SubstrateError

logger = logging.getLogger(__name__)


@contextmanager
def _translate_errors(command: str) -> Iterator[None]:
    try:
        yield
    except (RedisConnectionError, RedisTimeoutError) as e:
        raise SubstrateConnectionError(f"Redis {command} failed: {e}") from e
    except RedisError as e:
        raise SubstrateError(f"Redis {command} failed: {e}") from e


class RedisSubstrate:
    """Redis-backed implementation of Substrate.

    Attributes:
        url: Redis connection URL

    Example:
        >>> substrate = RedisSubstrate(url="redis://localhost:6379/0")
        >>> await substrate.connect()
        >>> await substrate.sorted_add("index::cars:weight", {"1": 300})
        1
    """

    def __init__(
        self,
        url: str = "redis://localhost:6379/0",
        client: Optional[aioredis.Redis] = None,
    ) -> None:
        """Initialize the Redis substrate.

        Args:
            url: Redis connection URL (ignored when client is given)
            client: Pre-built client, e.g. a fakeredis client in tests.
                It must be created with decode_responses=True.
        """
        self.url = url
        self._client = client
        self._owns_client = client is None
        self._connected = False

    @property
    def is_connected(self) -> bool:
        return self._connected

    @property
    def client(self) -> aioredis.Redis:
        if not self._connected or self._client is None:
            raise SubstrateConnectionError("Not connected")
        return self._client

    async def connect(self) -> None:
        """Open the client and verify the server answers PING.

        Raises:
            SubstrateConnectionError: If Redis is unreachable
        """
        if self._client is None:
            self._client = aioredis.from_url(self.url, decode_responses=True)
        with _translate_errors("PING"):
            await self._client.ping()
        self._connected = True
        logger.info("Connected to Redis substrate")

    async def close(self) -> None:
        if self._client is not None and self._owns_client:
            await self._client.aclose()
            self._client = None
        self._connected = False
        logger.debug("Redis substrate closed")

    async def set_many(self, mapping: Mapping[str, str]) -> None:
        if not mapping:
            return
        with _translate_errors("MSET"):
            await self.client.mset(dict(mapping))

    async def get_many(self, keys: Sequence[str]) -> List[Optional[str]]:
        if not keys:
            return []
        with _translate_errors("MGET"):
            return await self.client.mget(list(keys))

    async def delete(self, keys: Sequence[str]) -> int:
        if not keys:
            return 0
        with _translate_errors("DEL"):
            return await self.client.delete(*keys)

    async def set_add(self, key: str, members: Sequence[str]) -> int:
        if not members:
            return 0
        with _translate_errors("SADD"):
            return await self.client.sadd(key, *members)

    async def set_remove(self, key: str, members: Sequence[str]) -> int:
        if not members:
            return 0
        with _translate_errors("SREM"):
            return await self.client.srem(key, *members)

    async def set_members(self, key: str) -> List[str]:
        with _translate_errors("SMEMBERS"):
            return list(await self.client.smembers(key))

    async def sorted_add(self, key: str, mapping: Mapping[str, Score]) -> int:
        if not mapping:
            return 0
        with _translate_errors("ZADD"):
            return await self.client.zadd(key, dict(mapping))

    async def sorted_remove(self, key: str, members: Sequence[str]) -> int:
        if not members:
            return 0
        with _translate_errors("ZREM"):
            return await self.client.zrem(key, *members)

    async def sorted_range_by_score(self, key: str, min_score: Score, max_score: Score) -> List[str]:
        with _translate_errors("ZRANGEBYSCORE"):
            return await self.client.zrangebyscore(key, min_score, max_score)

    async def sorted_range(self, key: str, start: int, end: int) -> List[str]:
        with _translate_errors("ZRANGE"):
            return await self.client.zrange(key, start, end)

    async def increment_by(self, key: str, amount: int) -> int:
        with _translate_errors("INCRBY"):
            return await self.client.incrby(key, amount)
