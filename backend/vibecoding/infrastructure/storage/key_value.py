"""
Key-Value Store Implementations
In-memory store for single-process use, Redis store for durable settings
"""
import copy
import json
import logging
from typing import Any, Dict, Optional

import redis.asyncio as redis

from vibecoding.domain.interfaces.key_value_store import KeyValueStore

logger = logging.getLogger(__name__)


class InMemoryKeyValueStore(KeyValueStore):
    """Process-local store; records are deep-copied in and out"""

    def __init__(self):
        self._data: Dict[str, Any] = {}

    async def get(self, key: str) -> Optional[Any]:
        value = self._data.get(key)
        return copy.deepcopy(value) if value is not None else None

    async def set(self, key: str, value: Any) -> None:
        self._data[key] = copy.deepcopy(value)

    async def delete(self, key: str) -> None:
        self._data.pop(key, None)

    async def close(self) -> None:
        self._data.clear()

    @property
    def name(self) -> str:
        return "memory"


class RedisKeyValueStore(KeyValueStore):
    """
    JSON records in Redis.

    Values that fail to decode are logged and treated as absent.
    """

    def __init__(
        self,
        redis_url: str = "redis://localhost:6379",
        key_prefix: str = "",
        client: Optional[Any] = None
    ):
        self.redis_url = redis_url
        self.key_prefix = key_prefix
        self._client = client

    def _get_client(self):
        if self._client is None:
            self._client = redis.from_url(
                self.redis_url,
                encoding="utf-8",
                decode_responses=True
            )
            logger.info(f"RedisKeyValueStore connected: {self.redis_url}")
        return self._client

    def _key(self, key: str) -> str:
        return f"{self.key_prefix}{key}"

    async def get(self, key: str) -> Optional[Any]:
        raw = await self._get_client().get(self._key(key))
        if raw is None:
            return None
        try:
            return json.loads(raw)
        except json.JSONDecodeError as e:
            logger.error(f"Failed to decode stored value for {key}: {e}")
            return None

    async def set(self, key: str, value: Any) -> None:
        await self._get_client().set(self._key(key), json.dumps(value))

    async def delete(self, key: str) -> None:
        await self._get_client().delete(self._key(key))

    async def close(self) -> None:
        if self._client is not None:
            await self._client.aclose()
            self._client = None

    @property
    def name(self) -> str:
        return "redis"
