"""
Unit tests for key-value stores and the settings/conversation repositories
"""
import pytest
from unittest.mock import AsyncMock

from vibecoding.domain.models.connection_settings import ConnectionSettings
from vibecoding.domain.models.conversation import Speaker, Turn
from vibecoding.domain.services.settings_repository import (
    CONVERSATION_KEY,
    SETTINGS_KEY,
    ConversationRepository,
    SettingsRepository,
)
from vibecoding.infrastructure.storage.key_value import InMemoryKeyValueStore, RedisKeyValueStore


class FakeRedis:
    """Minimal async string store"""

    def __init__(self):
        self.data = {}
        self.aclose = AsyncMock()

    async def get(self, key):
        return self.data.get(key)

    async def set(self, key, value):
        self.data[key] = value

    async def delete(self, key):
        self.data.pop(key, None)


class TestInMemoryKeyValueStore:
    """Tests for InMemoryKeyValueStore"""

    @pytest.mark.asyncio
    async def test_set_get_delete(self):
        store = InMemoryKeyValueStore()
        await store.set("k", {"a": 1})
        assert await store.get("k") == {"a": 1}

        await store.delete("k")
        assert await store.get("k") is None

    @pytest.mark.asyncio
    async def test_values_are_copied(self):
        store = InMemoryKeyValueStore()
        value = {"a": [1]}
        await store.set("k", value)
        value["a"].append(2)

        stored = await store.get("k")
        stored["a"].append(3)

        assert await store.get("k") == {"a": [1]}


class TestRedisKeyValueStore:
    """Tests for RedisKeyValueStore"""

    @pytest.mark.asyncio
    async def test_json_round_trip_with_prefix(self):
        client = FakeRedis()
        store = RedisKeyValueStore(key_prefix="vc:", client=client)

        await store.set("k", {"a": 1})

        assert client.data == {"vc:k": '{"a": 1}'}
        assert await store.get("k") == {"a": 1}

    @pytest.mark.asyncio
    async def test_undecodable_value_is_absent(self):
        client = FakeRedis()
        client.data["k"] = "{not json"
        store = RedisKeyValueStore(client=client)

        assert await store.get("k") is None

    @pytest.mark.asyncio
    async def test_close(self):
        client = FakeRedis()
        store = RedisKeyValueStore(client=client)

        await store.close()

        client.aclose.assert_awaited_once()


class TestSettingsRepository:
    """Tests for SettingsRepository"""

    @pytest.mark.asyncio
    async def test_defaults_when_nothing_stored(self):
        repo = SettingsRepository(InMemoryKeyValueStore())
        assert await repo.load() == ConnectionSettings()

    @pytest.mark.asyncio
    async def test_save_and_load(self):
        store = InMemoryKeyValueStore()
        repo = SettingsRepository(store)
        settings = ConnectionSettings(account="acct", username="bob", password="pw", schema="S")

        await repo.save(settings)

        assert (await store.get(SETTINGS_KEY))["schema"] == "S"
        assert await repo.load() == settings

    @pytest.mark.asyncio
    @pytest.mark.parametrize("stored", ["garbage", ["a", "b"], {"account": 42, "agent": ["x"]}])
    async def test_unparseable_falls_back_to_defaults(self, stored, caplog):
        store = InMemoryKeyValueStore()
        await store.set(SETTINGS_KEY, stored)

        settings = await SettingsRepository(store).load()

        assert settings == ConnectionSettings()
        assert "Error loading settings" in caplog.text

    @pytest.mark.asyncio
    async def test_records_are_per_client(self):
        store = InMemoryKeyValueStore()
        repo = SettingsRepository(store)

        await repo.save(ConnectionSettings(account="a1", username="alice", password="pw-a"), client_id="alice")

        assert (await repo.load("alice")).password.get_secret_value() == "pw-a"
        assert await repo.load("bob") == ConnectionSettings()
        assert await store.get(f"{SETTINGS_KEY}:alice") is not None
        assert await store.get(SETTINGS_KEY) is None


class TestConversationRepository:
    """Tests for ConversationRepository"""

    @pytest.mark.asyncio
    async def test_save_load_delete(self):
        store = InMemoryKeyValueStore()
        repo = ConversationRepository(store)
        turns = [Turn(speaker=Speaker.USER, text="hi"), Turn(speaker=Speaker.AGENT, text="hello")]

        await repo.save(turns)
        assert await store.get(CONVERSATION_KEY) is not None
        loaded = await repo.load()
        assert [(t.speaker, t.text) for t in loaded] == [(Speaker.USER, "hi"), (Speaker.AGENT, "hello")]

        await repo.delete()
        assert await repo.load() == []

    @pytest.mark.asyncio
    async def test_per_client_key(self):
        store = InMemoryKeyValueStore()
        repo = ConversationRepository(store)

        await repo.save([Turn(speaker=Speaker.USER, text="a")], client_id="s1")

        assert await repo.load() == []
        assert len(await repo.load("s1")) == 1
        assert await store.get(f"{CONVERSATION_KEY}:s1") is not None

    @pytest.mark.asyncio
    async def test_invalid_turns_skipped(self):
        store = InMemoryKeyValueStore()
        await store.set(CONVERSATION_KEY, [{"speaker": "user", "text": "ok"}, {"speaker": "robot", "text": ""}])

        loaded = await ConversationRepository(store).load()

        assert [t.text for t in loaded] == ["ok"]
