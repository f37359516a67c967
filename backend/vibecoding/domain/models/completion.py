"""
Completion Gateway Models
Request/response shapes exchanged with a completion gateway
"""
from pydantic import BaseModel, ConfigDict, Field, SecretStr
from typing import Optional
from datetime import datetime

from vibecoding.domain.models.connection_settings import ConnectionSettings


class RoutingParams(BaseModel):
    """Warehouse/database/schema selectors for SQL-backed dispatch"""
    model_config = ConfigDict(frozen=True)

    warehouse: Optional[str] = None
    database: Optional[str] = None
    schema_name: Optional[str] = None


class Credentials(BaseModel):
    """Opaque per-request credentials, only read by gateways"""
    model_config = ConfigDict(frozen=True)

    account: str
    username: str
    password: SecretStr = SecretStr("")


class CompletionRequest(BaseModel):
    """A single prompt dispatch"""
    model_config = ConfigDict(frozen=True)

    prompt: str = Field(..., min_length=1)
    agent: str = Field(..., description="Model / agent identifier")
    routing: RoutingParams = Field(default_factory=RoutingParams)
    credentials: Credentials

    @classmethod
    def from_settings(cls, prompt: str, settings: ConnectionSettings) -> "CompletionRequest":
        """
        Snapshot routing parameters and credentials from settings.

        The request keeps its own copy, so later settings updates never
        affect a dispatch that is already in flight.
        """
        return cls(
            prompt=prompt,
            agent=settings.agent,
            routing=RoutingParams(
                warehouse=settings.warehouse,
                database=settings.database,
                schema_name=settings.schema_name,
            ),
            credentials=Credentials(
                account=settings.account,
                username=settings.username,
                password=settings.password,
            ),
        )


class CompletionResult(BaseModel):
    """Text returned by a gateway"""
    text: str = ""
    provider: str = ""
    latency_ms: Optional[float] = Field(None, ge=0.0)
    timestamp: datetime = Field(default_factory=datetime.utcnow)
