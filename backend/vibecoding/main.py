"""
FastAPI Application Entry Point
"""
import logging
from contextlib import asynccontextmanager
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from vibecoding.api.v1.routes import api_router, ws_router
from vibecoding.core.config import get_settings
from vibecoding.core.logging_config import configure_logging
from vibecoding.core.validation import validate_config_on_startup
from vibecoding.domain.services.session_manager import SessionManager
from vibecoding.infrastructure.gateway.factory import GatewayFactory

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """
    Application lifespan - startup and shutdown events.

    Startup:
    - Validates configuration (strict in production)
    - Initializes the session manager and its settings store

    Shutdown:
    - Closes every live session
    - Closes pooled Snowflake connections and HTTP clients
    """
    settings = get_settings()
    configure_logging(settings.log_level)
    logger.info("Starting VibeCoding server...")

    try:
        validate_config_on_startup(settings, GatewayFactory.list_providers())
    except RuntimeError as e:
        if settings.environment == "production":
            logger.error(f"Startup failed: {e}")
            raise
        logger.warning(f"Configuration warnings (non-fatal in {settings.environment}): {e}")

    session_manager = await SessionManager.get_instance()
    logger.info(f"VibeCoding server running on port {settings.port}")

    yield  # Application is running

    logger.info("Shutting down VibeCoding server...")
    try:
        await session_manager.shutdown()
    except Exception as e:
        logger.error(f"Error during shutdown: {e}")
    SessionManager.reset_instance()
    logger.info("VibeCoding server shutdown complete")


def create_app() -> FastAPI:
    settings = get_settings()

    app = FastAPI(
        title="VibeCoding",
        description="Voice chat with Snowflake Cortex agents",
        version="1.0.0",
        lifespan=lifespan
    )

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    app.include_router(api_router, prefix=settings.api_prefix)
    app.include_router(ws_router)

    @app.get("/")
    async def root():
        return {"message": "VibeCoding API", "status": "running"}

    return app


app = create_app()


if __name__ == "__main__":
    import uvicorn
    settings = get_settings()
    uvicorn.run(app, host=settings.host, port=settings.port)
