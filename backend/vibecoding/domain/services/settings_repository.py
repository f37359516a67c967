"""
Settings & Conversation Repositories
Persist connection settings and (optionally) the turn log in a key-value store

Records are scoped per browser client: a client id is appended to the base
key, so one client never loads another client's credentials or turns.
"""
import logging
from typing import List, Optional

from pydantic import ValidationError

from vibecoding.domain.interfaces.key_value_store import KeyValueStore
from vibecoding.domain.models.connection_settings import ConnectionSettings
from vibecoding.domain.models.conversation import Turn

logger = logging.getLogger(__name__)

SETTINGS_KEY = "vibecoding-settings"
CONVERSATION_KEY = "vibecoding-conversation"


def scoped_key(base_key: str, client_id: Optional[str]) -> str:
    """Storage key for a client; the bare base key when no client is given"""
    return f"{base_key}:{client_id}" if client_id else base_key


class SettingsRepository:
    """Loads and saves ConnectionSettings, one record per client"""

    def __init__(self, store: KeyValueStore, key: str = SETTINGS_KEY):
        self.store = store
        self.key = key

    async def load(self, client_id: Optional[str] = None) -> ConnectionSettings:
        """
        Load stored settings.

        Returns defaults when nothing is stored or the stored record
        cannot be parsed.
        """
        data = await self.store.get(scoped_key(self.key, client_id))
        if data is None:
            return ConnectionSettings()

        if not isinstance(data, dict):
            logger.error(f"Error loading settings: expected object, got {type(data).__name__}")
            return ConnectionSettings()

        try:
            return ConnectionSettings.model_validate(data)
        except ValidationError as e:
            logger.error(f"Error loading settings: {e}")
            return ConnectionSettings()

    async def save(self, settings: ConnectionSettings, client_id: Optional[str] = None) -> None:
        await self.store.set(scoped_key(self.key, client_id), settings.to_storage_dict())
        logger.info(
            "Settings saved",
            extra={"client_id": client_id, "account": settings.account, "agent": settings.agent}
        )


class ConversationRepository:
    """Stores the turn log when conversation saving is enabled"""

    def __init__(self, store: KeyValueStore, key: str = CONVERSATION_KEY):
        self.store = store
        self.key = key

    async def load(self, client_id: Optional[str] = None) -> List[Turn]:
        data = await self.store.get(scoped_key(self.key, client_id))
        if not isinstance(data, list):
            return []

        turns: List[Turn] = []
        for item in data:
            try:
                turns.append(Turn.model_validate(item))
            except ValidationError as e:
                logger.warning(f"Skipping stored turn that failed validation: {e}")
        return turns

    async def save(self, turns: List[Turn], client_id: Optional[str] = None) -> None:
        await self.store.set(
            scoped_key(self.key, client_id),
            [turn.model_dump(mode="json") for turn in turns]
        )

    async def delete(self, client_id: Optional[str] = None) -> None:
        await self.store.delete(scoped_key(self.key, client_id))
