"""
Cortex Agent Endpoints

Server-side dispatch for clients that cannot reach Snowflake directly:
- POST /cortex-agent: SQL (SNOWFLAKE.CORTEX.COMPLETE)
- POST /cortex-agent-rest: Cortex Agents REST API
- POST /test-connection: credential check
"""
import logging
from datetime import datetime
from typing import Any, Dict, List, Optional

from fastapi import APIRouter, Depends, status
from fastapi.responses import JSONResponse
from pydantic import BaseModel, ConfigDict, Field, SecretStr

from vibecoding.api.v1.dependencies import get_rest_gateway, get_sql_gateway
from vibecoding.domain.interfaces.completion_gateway import CompletionGateway
from vibecoding.domain.models.completion import CompletionRequest, Credentials, RoutingParams
from vibecoding.domain.models.connection_settings import (
    DEFAULT_DATABASE,
    DEFAULT_SCHEMA,
    DEFAULT_WAREHOUSE,
)

logger = logging.getLogger(__name__)

router = APIRouter(tags=["Cortex Agent"])


class CortexAgentRequest(BaseModel):
    """Request body shared by the dispatch endpoints"""
    account: Optional[str] = None
    username: Optional[str] = None
    password: Optional[SecretStr] = None
    warehouse: Optional[str] = None
    database: Optional[str] = None
    schema_name: Optional[str] = Field(None, alias="schema")
    agent: Optional[str] = None
    message: Optional[str] = None
    # Accepted for compatibility; the prompt in ``message`` already carries history
    conversation: Optional[List[Dict[str, Any]]] = None

    model_config = ConfigDict(populate_by_name=True)

    def missing_fields(self) -> List[str]:
        missing = [
            name for name in ("account", "username", "agent", "message")
            if not (getattr(self, name) or "").strip()
        ]
        if self.password is None or not self.password.get_secret_value():
            missing.insert(2, "password")
        return missing

    def to_completion_request(self, prompt: Optional[str] = None) -> CompletionRequest:
        return CompletionRequest(
            prompt=prompt or self.message,
            agent=(self.agent or "").strip(),
            routing=RoutingParams(
                warehouse=self.warehouse or DEFAULT_WAREHOUSE,
                database=self.database or DEFAULT_DATABASE,
                schema_name=self.schema_name or DEFAULT_SCHEMA,
            ),
            credentials=Credentials(
                account=(self.account or "").strip(),
                username=(self.username or "").strip(),
                password=self.password or SecretStr(""),
            ),
        )


def _timestamp() -> str:
    return datetime.utcnow().isoformat() + "Z"


async def _dispatch(body: CortexAgentRequest, gateway: CompletionGateway) -> JSONResponse:
    missing = body.missing_fields()
    if missing:
        logger.info(f"Rejected {gateway.name} request, missing: {missing}")
        return JSONResponse(
            status_code=status.HTTP_400_BAD_REQUEST,
            content={"error": "Missing required fields"}
        )

    try:
        result = await gateway.complete(body.to_completion_request())
    except Exception as e:
        logger.error(f"Error processing Cortex Agent request: {e}", extra={"gateway": gateway.name})
        return JSONResponse(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            content={"error": "Internal server error", "message": str(e)}
        )

    return JSONResponse(content={
        "success": True,
        "response": result.text,
        "timestamp": _timestamp(),
    })


@router.post("/cortex-agent")
async def cortex_agent(
    body: CortexAgentRequest,
    gateway: CompletionGateway = Depends(get_sql_gateway)
):
    """
    Send one message to a Cortex model through SQL.

    Returns:
        {success, response, timestamp}; 400 when required fields are
        missing, 500 with the failure message otherwise
    """
    return await _dispatch(body, gateway)


@router.post("/cortex-agent-rest")
async def cortex_agent_rest(
    body: CortexAgentRequest,
    gateway: CompletionGateway = Depends(get_rest_gateway)
):
    """Same contract as /cortex-agent, via the Cortex Agents REST API"""
    return await _dispatch(body, gateway)


@router.post("/test-connection")
async def test_connection(
    body: CortexAgentRequest,
    gateway: CompletionGateway = Depends(get_sql_gateway)
):
    """Open (or reuse) a Snowflake connection and report the server version"""
    try:
        info = await gateway.test_connection(body.to_completion_request(prompt="SELECT CURRENT_VERSION()"))
    except Exception as e:
        logger.error(f"Connection test failed: {e}")
        return JSONResponse(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            content={"success": False, "error": str(e)}
        )

    return {
        "success": True,
        "message": info.get("message", "Successfully connected to Snowflake"),
        "version": info.get("version"),
    }
