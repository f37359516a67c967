"""
Unit tests for SnowflakeConnectionPool
"""
import asyncio
import threading

import pytest
from unittest.mock import MagicMock
from pydantic import SecretStr

from vibecoding.domain.models.completion import Credentials, RoutingParams
from vibecoding.infrastructure.gateway.connection_pool import SnowflakeConnectionPool


class FakeClock:
    def __init__(self):
        self.now = 1000.0

    def __call__(self) -> float:
        return self.now


def creds(account="acct", username="bob"):
    return Credentials(account=account, username=username, password=SecretStr("pw"))


ROUTING = RoutingParams(warehouse="WH", database="DB", schema_name="SC")


@pytest.fixture
def connector():
    """Returns a fresh MagicMock connection per call"""
    return MagicMock(side_effect=lambda **kwargs: MagicMock(name=f"conn-{kwargs['account']}-{kwargs['user']}"))


@pytest.fixture
def clock():
    return FakeClock()


class TestSnowflakeConnectionPool:
    """Tests for the LRU + TTL connection cache"""

    def test_invalid_sizes(self):
        with pytest.raises(ValueError):
            SnowflakeConnectionPool(max_size=0)
        with pytest.raises(ValueError):
            SnowflakeConnectionPool(idle_ttl_seconds=0)

    @pytest.mark.asyncio
    async def test_connect_arguments(self, connector, clock):
        pool = SnowflakeConnectionPool(connector=connector, clock=clock)

        await pool.acquire(creds(), ROUTING)

        connector.assert_called_once_with(
            account="acct",
            user="bob",
            password="pw",
            warehouse="WH",
            database="DB",
            schema="SC",
            paramstyle="qmark",
        )

    @pytest.mark.asyncio
    async def test_reuses_connection_per_account_and_user(self, connector, clock):
        pool = SnowflakeConnectionPool(connector=connector, clock=clock)

        first = await pool.acquire(creds(), ROUTING)
        second = await pool.acquire(creds(), ROUTING)
        other = await pool.acquire(creds(username="ann"), ROUTING)

        assert first is second
        assert other is not first
        assert connector.call_count == 2
        assert pool.keys() == ["acct-bob", "acct-ann"]

    @pytest.mark.asyncio
    async def test_lru_eviction(self, connector, clock):
        pool = SnowflakeConnectionPool(max_size=2, connector=connector, clock=clock)

        a = await pool.acquire(creds(username="a"), ROUTING)
        await pool.acquire(creds(username="b"), ROUTING)
        await pool.acquire(creds(username="a"), ROUTING)  # a is now most recent
        await pool.acquire(creds(username="c"), ROUTING)

        assert pool.keys() == ["acct-a", "acct-c"]
        assert len(pool) == 2
        a.close.assert_not_called()

    @pytest.mark.asyncio
    async def test_evicted_connection_is_closed(self, connector, clock):
        pool = SnowflakeConnectionPool(max_size=1, connector=connector, clock=clock)

        a = await pool.acquire(creds(username="a"), ROUTING)
        await pool.acquire(creds(username="b"), ROUTING)

        a.close.assert_called_once()

    @pytest.mark.asyncio
    async def test_idle_connection_expires_on_access(self, connector, clock):
        pool = SnowflakeConnectionPool(idle_ttl_seconds=300, connector=connector, clock=clock)

        first = await pool.acquire(creds(), ROUTING)
        clock.now += 301
        second = await pool.acquire(creds(), ROUTING)

        assert second is not first
        first.close.assert_called_once()
        assert connector.call_count == 2

    @pytest.mark.asyncio
    async def test_access_refreshes_idle_timer(self, connector, clock):
        pool = SnowflakeConnectionPool(idle_ttl_seconds=300, connector=connector, clock=clock)

        first = await pool.acquire(creds(), ROUTING)
        clock.now += 200
        await pool.acquire(creds(), ROUTING)
        clock.now += 200

        assert await pool.acquire(creds(), ROUTING) is first

    @pytest.mark.asyncio
    async def test_sweep(self, connector, clock):
        pool = SnowflakeConnectionPool(idle_ttl_seconds=300, connector=connector, clock=clock)
        old = await pool.acquire(creds(username="old"), ROUTING)
        clock.now += 250
        await pool.acquire(creds(username="new"), ROUTING)
        clock.now += 100

        closed = await pool.sweep()

        assert closed == 1
        assert pool.keys() == ["acct-new"]
        old.close.assert_called_once()

    @pytest.mark.asyncio
    async def test_discard(self, connector, clock):
        pool = SnowflakeConnectionPool(connector=connector, clock=clock)
        conn = await pool.acquire(creds(), ROUTING)

        await pool.discard(creds())

        assert len(pool) == 0
        conn.close.assert_called_once()

    @pytest.mark.asyncio
    async def test_close_all(self, connector, clock):
        pool = SnowflakeConnectionPool(connector=connector, clock=clock)
        conns = [await pool.acquire(creds(username=u), ROUTING) for u in ("a", "b", "c")]

        await pool.close_all()

        assert len(pool) == 0
        for conn in conns:
            conn.close.assert_called_once()

    @pytest.mark.asyncio
    async def test_close_errors_are_logged_not_raised(self, clock):
        broken = MagicMock()
        broken.close.side_effect = RuntimeError("already closed")
        pool = SnowflakeConnectionPool(connector=MagicMock(return_value=broken), clock=clock)
        await pool.acquire(creds(), ROUTING)

        await pool.close_all()

        assert len(pool) == 0

    @pytest.mark.asyncio
    async def test_connect_failure_propagates_and_caches_nothing(self, clock):
        pool = SnowflakeConnectionPool(
            connector=MagicMock(side_effect=RuntimeError("bad password")),
            clock=clock
        )

        with pytest.raises(RuntimeError, match="bad password"):
            await pool.acquire(creds(), ROUTING)
        assert len(pool) == 0

    @pytest.mark.asyncio
    async def test_expired_connection_closed_when_reconnect_fails(self, clock):
        first = MagicMock()
        connector = MagicMock(side_effect=[first, RuntimeError("login failed")])
        pool = SnowflakeConnectionPool(idle_ttl_seconds=300, connector=connector, clock=clock)
        await pool.acquire(creds(), ROUTING)
        clock.now += 301

        with pytest.raises(RuntimeError, match="login failed"):
            await pool.acquire(creds(), ROUTING)

        first.close.assert_called_once()
        assert len(pool) == 0

    @pytest.mark.asyncio
    async def test_slow_connect_does_not_block_other_accounts(self, clock):
        """A login that hangs for one user leaves the pool usable for others"""
        release = threading.Event()

        def connector(**kwargs):
            if kwargs["user"] == "slow":
                release.wait(timeout=5)
            return MagicMock(name=f"conn-{kwargs['user']}")

        pool = SnowflakeConnectionPool(connector=connector, clock=clock)
        slow = asyncio.create_task(pool.acquire(creds(username="slow"), ROUTING))
        await asyncio.sleep(0.05)

        try:
            await asyncio.wait_for(pool.acquire(creds(username="fast"), ROUTING), timeout=1.0)
            assert not slow.done()
        finally:
            release.set()
            await slow

        assert sorted(pool.keys()) == ["acct-fast", "acct-slow"]

    @pytest.mark.asyncio
    async def test_concurrent_connects_for_same_key_keep_one(self, clock):
        release = threading.Event()
        opened = []

        def connector(**kwargs):
            release.wait(timeout=5)
            conn = MagicMock()
            opened.append(conn)
            return conn

        pool = SnowflakeConnectionPool(connector=connector, clock=clock)
        tasks = [asyncio.create_task(pool.acquire(creds(), ROUTING)) for _ in range(2)]
        await asyncio.sleep(0.05)
        release.set()

        first, second = await asyncio.gather(*tasks)

        assert first is second
        assert len(pool) == 1
        assert len(opened) == 2
        closed = [conn for conn in opened if conn.close.called]
        assert len(closed) == 1
        assert closed[0] is not first
