"""
Session Manager
Owns shared gateways and storage, and the registry of live session controllers
"""
import asyncio
import logging
import uuid
from typing import Dict, Optional

from vibecoding.core.config import ConfigManager, Settings, get_settings
from vibecoding.domain.interfaces.completion_gateway import CompletionGateway
from vibecoding.domain.interfaces.key_value_store import KeyValueStore
from vibecoding.domain.models.session import ConversationSession, SessionPhase
from vibecoding.domain.services.prompt_manager import PromptManager
from vibecoding.domain.services.response_policy import ResponsePolicy, ResponsePolicyConfig
from vibecoding.domain.services.session_controller import SessionController, SessionEventSink
from vibecoding.domain.services.settings_repository import (
    ConversationRepository,
    SettingsRepository,
)
from vibecoding.infrastructure.capture.browser import BrowserCaptureAdapter
from vibecoding.infrastructure.gateway.factory import GatewayFactory
from vibecoding.infrastructure.storage.key_value import InMemoryKeyValueStore, RedisKeyValueStore

logger = logging.getLogger(__name__)


class SessionManager:
    """
    Process-wide session manager.

    Gateways are created lazily per provider name and shared by every
    session; each WebSocket connection gets its own SessionController.
    """

    _instance: Optional["SessionManager"] = None
    _lock = asyncio.Lock()

    def __init__(
        self,
        settings: Optional[Settings] = None,
        config: Optional[ConfigManager] = None,
        store: Optional[KeyValueStore] = None
    ):
        self.settings = settings or get_settings()
        self.config = config or ConfigManager(env=self.settings.environment)
        self._store = store
        self._gateways: Dict[str, CompletionGateway] = {}
        self._controllers: Dict[str, SessionController] = {}

    @classmethod
    async def get_instance(cls) -> "SessionManager":
        """Get singleton instance (async factory pattern)"""
        if cls._instance is None:
            async with cls._lock:
                if cls._instance is None:
                    instance = cls()
                    await instance.initialize()
                    cls._instance = instance
        return cls._instance

    @classmethod
    def reset_instance(cls) -> None:
        cls._instance = None

    async def initialize(self) -> None:
        if self._store is None:
            if self.settings.redis_url:
                self._store = RedisKeyValueStore(self.settings.redis_url)
            else:
                self._store = InMemoryKeyValueStore()
        logger.info(
            f"SessionManager initialized (store: {self._store.name}, "
            f"gateway: {self.settings.active_gateway})"
        )

    # ------------------------------------------------------------------
    # Shared resources
    # ------------------------------------------------------------------

    @property
    def store(self) -> KeyValueStore:
        if self._store is None:
            raise RuntimeError("SessionManager not initialized. Call initialize() first.")
        return self._store

    @property
    def settings_repository(self) -> SettingsRepository:
        return SettingsRepository(self.store, key=self.settings.settings_key)

    @property
    def conversation_repository(self) -> Optional[ConversationRepository]:
        if not self.settings.save_conversation:
            return None
        return ConversationRepository(self.store, key=self.settings.conversation_key)

    def _gateway_config(self, name: str) -> dict:
        config = self.config.get_gateway_config(name)
        config.setdefault("timeout_seconds", self.settings.dispatch_timeout_seconds)
        if name == "snowflake-sql":
            config.setdefault("pool_max_size", self.settings.pool_max_size)
            config.setdefault("pool_idle_ttl_seconds", self.settings.pool_idle_ttl_seconds)
        elif name == "demo":
            config.setdefault("delay_seconds", self.settings.demo_response_delay_seconds)
        elif name == "relay":
            config.setdefault("server_url", self.settings.relay_server_url)
        return config

    async def get_gateway(self, name: Optional[str] = None) -> CompletionGateway:
        """
        Return the shared, initialized gateway for a provider.

        Args:
            name: Provider name; defaults to the active session gateway

        Raises:
            ValueError: Unknown provider
        """
        name = name or self.settings.active_gateway
        gateway = self._gateways.get(name)
        if gateway is None:
            gateway = GatewayFactory.create(name)
            await gateway.initialize(self._gateway_config(name))
            self._gateways[name] = gateway
        return gateway

    def register_gateway(self, gateway: CompletionGateway) -> None:
        """Install an already-initialized gateway under its name"""
        self._gateways[gateway.name] = gateway

    # ------------------------------------------------------------------
    # Sessions
    # ------------------------------------------------------------------

    async def create_session(
        self,
        event_sink: Optional[SessionEventSink] = None,
        session_id: Optional[str] = None,
        client_id: Optional[str] = None
    ) -> SessionController:
        """
        Create a controller with the client's stored settings and
        (optionally) its saved turn log.

        Args:
            event_sink: Receives the session's server events
            session_id: Defaults to a new UUID
            client_id: Browser client that owns the stored records. A
                session without one gets a fresh id and starts from defaults.
        """
        session_id = session_id or str(uuid.uuid4())
        client_id = client_id or session_id
        settings_repository = self.settings_repository
        stored = await settings_repository.load(client_id)

        controller = SessionController(
            session=ConversationSession(session_id=session_id, settings=stored),
            capture=BrowserCaptureAdapter(),
            gateway=await self.get_gateway(),
            prompt_manager=PromptManager(history_window=self.settings.history_window),
            response_policy=ResponsePolicy(ResponsePolicyConfig(
                dispatch_timeout_seconds=self.settings.dispatch_timeout_seconds
            )),
            event_sink=event_sink,
            settings_repository=settings_repository,
            conversation_repository=self.conversation_repository,
            client_id=client_id,
        )
        await controller.restore()

        self._controllers[session_id] = controller
        logger.info(
            f"Created session: {session_id}",
            extra={"session_id": session_id, "client_id": client_id}
        )
        return controller

    def get_session(self, session_id: str) -> Optional[SessionController]:
        return self._controllers.get(session_id)

    async def end_session(self, session_id: str) -> None:
        controller = self._controllers.pop(session_id, None)
        if not controller:
            logger.warning(f"Session not found for ending: {session_id}")
            return

        await controller.close()
        session = controller.session
        logger.info(
            f"Ended session: {session_id}",
            extra={
                "session_id": session_id,
                "duration_seconds": round(session.get_duration_seconds(), 2),
                "exchanges": session.exchange_count,
                "failed_exchanges": session.failed_exchange_count,
            }
        )

    async def shutdown(self) -> None:
        """Close every session, gateway and the store"""
        logger.info("Shutting down SessionManager...")

        for session_id in list(self._controllers.keys()):
            await self.end_session(session_id)

        for name, gateway in list(self._gateways.items()):
            try:
                await gateway.cleanup()
            except Exception as e:
                logger.error(f"Error cleaning up gateway {name}: {e}")
        self._gateways.clear()

        if self._store is not None:
            await self._store.close()

        logger.info("SessionManager shutdown complete")

    def get_active_session_count(self) -> int:
        return len(self._controllers)

    def get_session_stats(self) -> dict:
        return {
            "active_sessions": len(self._controllers),
            "session_ids": list(self._controllers.keys()),
            "gateway": self.settings.active_gateway,
            "store": self._store.name if self._store else None,
            "phases": {
                phase.value: sum(1 for c in self._controllers.values() if c.phase == phase)
                for phase in SessionPhase
            }
        }
