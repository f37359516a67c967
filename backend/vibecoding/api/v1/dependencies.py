"""
API Dependencies
Shared dependencies for gateway, session and settings access
"""
from fastapi import Depends, Query
from dotenv import load_dotenv

from vibecoding.domain.interfaces.completion_gateway import CompletionGateway
from vibecoding.domain.services.session_manager import SessionManager
from vibecoding.domain.services.settings_repository import SettingsRepository

load_dotenv()


async def get_session_manager() -> SessionManager:
    """Process-wide session manager"""
    return await SessionManager.get_instance()


async def get_sql_gateway(
    manager: SessionManager = Depends(get_session_manager)
) -> CompletionGateway:
    """Gateway behind /cortex-agent and /test-connection"""
    return await manager.get_gateway("snowflake-sql")


async def get_rest_gateway(
    manager: SessionManager = Depends(get_session_manager)
) -> CompletionGateway:
    """Gateway behind /cortex-agent-rest"""
    return await manager.get_gateway("snowflake-rest")


async def get_client_id(
    client_id: str = Query(..., min_length=1, max_length=128)
) -> str:
    """Browser client whose settings record a request reads or writes"""
    return client_id


async def get_settings_repository(
    manager: SessionManager = Depends(get_session_manager)
) -> SettingsRepository:
    return manager.settings_repository
