"""
API Router
Combines all endpoint routers
"""
from fastapi import APIRouter
from vibecoding.api.v1.endpoints import (
    health,
    cortex_agent,
    settings,
    session_ws,
)

# HTTP routes, mounted under the API prefix
api_router = APIRouter()
api_router.include_router(health.router)
api_router.include_router(cortex_agent.router)
api_router.include_router(settings.router)

# WebSocket routes, mounted at the root
ws_router = APIRouter()
ws_router.include_router(session_ws.router)
