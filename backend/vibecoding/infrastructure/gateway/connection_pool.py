"""
Snowflake Connection Pool
Bounded, idle-expiring cache of Snowflake connections keyed by account and user
"""
import asyncio
import logging
import time
from collections import OrderedDict
from dataclasses import dataclass, field
from typing import Any, Callable, Dict, List, Optional

import snowflake.connector

from vibecoding.domain.models.completion import Credentials, RoutingParams

logger = logging.getLogger(__name__)


@dataclass
class PooledConnection:
    """A live connection plus its bookkeeping"""
    key: str
    connection: Any
    created_at: float = field(default_factory=time.monotonic)
    last_used_at: float = field(default_factory=time.monotonic)
    use_count: int = 0


class SnowflakeConnectionPool:
    """
    LRU + idle-TTL connection cache.

    - At most ``max_size`` connections are held; the least recently used
      one is closed to make room.
    - A connection idle for longer than ``idle_ttl_seconds`` is closed on
      next access or on ``sweep()``.
    - Driver calls are blocking and run in a worker thread.
    """

    def __init__(
        self,
        max_size: int = 8,
        idle_ttl_seconds: float = 300.0,
        connector: Optional[Callable[..., Any]] = None,
        clock: Callable[[], float] = time.monotonic
    ):
        if max_size < 1:
            raise ValueError(f"max_size must be >= 1, got {max_size}")
        if idle_ttl_seconds <= 0:
            raise ValueError(f"idle_ttl_seconds must be > 0, got {idle_ttl_seconds}")

        self.max_size = max_size
        self.idle_ttl_seconds = idle_ttl_seconds
        self._connector = connector or snowflake.connector.connect
        self._clock = clock
        self._entries: "OrderedDict[str, PooledConnection]" = OrderedDict()
        self._lock = asyncio.Lock()

    @staticmethod
    def key_for(credentials: Credentials) -> str:
        return f"{credentials.account}-{credentials.username}"

    def __len__(self) -> int:
        return len(self._entries)

    def keys(self) -> List[str]:
        """Pooled keys, least recently used first"""
        return list(self._entries.keys())

    async def acquire(self, credentials: Credentials, routing: RoutingParams) -> Any:
        """
        Return a connection for these credentials, opening one if needed.

        The driver connect runs outside the pool lock, so a slow login for
        one account does not hold up the others. If two callers connect the
        same key at once, the first to finish is pooled and the other
        connection is closed.

        Raises:
            Whatever the driver raises when the connection cannot be opened
        """
        key = self.key_for(credentials)
        now = self._clock()
        expired: Optional[PooledConnection] = None

        async with self._lock:
            entry = self._entries.get(key)
            if entry and now - entry.last_used_at > self.idle_ttl_seconds:
                logger.info(f"Snowflake connection expired: {key}")
                expired = self._entries.pop(key)
                entry = None

            if entry:
                self._touch(entry, now)
                return entry.connection

        try:
            connection = await asyncio.to_thread(
                self._connector,
                account=credentials.account,
                user=credentials.username,
                password=credentials.password.get_secret_value(),
                warehouse=routing.warehouse,
                database=routing.database,
                schema=routing.schema_name,
                paramstyle="qmark",
            )
        finally:
            if expired:
                await self._close(expired)

        logger.info(
            "Successfully connected to Snowflake",
            extra={"pool_key": key}
        )

        stale: List[PooledConnection] = []
        async with self._lock:
            entry = self._entries.get(key)
            if entry:
                # Another caller connected this key first
                stale.append(PooledConnection(key=key, connection=connection))
                self._touch(entry, now)
                connection = entry.connection
            else:
                self._entries[key] = PooledConnection(
                    key=key,
                    connection=connection,
                    created_at=now,
                    last_used_at=now,
                    use_count=1
                )
                while len(self._entries) > self.max_size:
                    _, evicted = self._entries.popitem(last=False)
                    logger.info(f"Evicting least recently used connection: {evicted.key}")
                    stale.append(evicted)

        for entry in stale:
            await self._close(entry)
        return connection

    def _touch(self, entry: PooledConnection, now: float) -> None:
        entry.last_used_at = now
        entry.use_count += 1
        self._entries.move_to_end(entry.key)

    async def discard(self, credentials: Credentials) -> None:
        """Close and forget the connection for these credentials (e.g. after a failure)"""
        async with self._lock:
            entry = self._entries.pop(self.key_for(credentials), None)
        if entry:
            await self._close(entry)

    async def sweep(self) -> int:
        """
        Close every connection idle past the TTL.

        Returns:
            Number of connections closed
        """
        now = self._clock()
        async with self._lock:
            stale = [
                e for e in self._entries.values()
                if now - e.last_used_at > self.idle_ttl_seconds
            ]
            for entry in stale:
                del self._entries[entry.key]

        for entry in stale:
            await self._close(entry)
        if stale:
            logger.info(f"Swept {len(stale)} idle Snowflake connections")
        return len(stale)

    async def close_all(self) -> None:
        """Close every pooled connection (shutdown)"""
        async with self._lock:
            entries = list(self._entries.values())
            self._entries.clear()

        for entry in entries:
            await self._close(entry)
        logger.info(f"Closed {len(entries)} Snowflake connections")

    def get_stats(self) -> Dict[str, Any]:
        return {
            "size": len(self._entries),
            "max_size": self.max_size,
            "idle_ttl_seconds": self.idle_ttl_seconds,
            "keys": self.keys(),
        }

    async def _close(self, entry: PooledConnection) -> None:
        try:
            await asyncio.to_thread(entry.connection.close)
        except Exception as e:
            logger.error(f"Error closing connection {entry.key}: {e}")
