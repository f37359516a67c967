"""
Snowflake REST Completion Gateway
Calls the Cortex Agents chat endpoint over HTTPS
"""
import logging
import time
from typing import Any, Dict, Optional

import httpx

from vibecoding.domain.errors import GatewayError
from vibecoding.domain.interfaces.completion_gateway import CompletionGateway
from vibecoding.domain.models.completion import CompletionRequest, CompletionResult

logger = logging.getLogger(__name__)

DEFAULT_TOKEN_TYPE = "PROGRAMMATIC_ACCESS_TOKEN"


class SnowflakeRESTGateway(CompletionGateway):
    """
    Cortex Agents REST client.

    The password field of the settings carries a programmatic access
    token, sent as a Bearer token.
    """

    def __init__(self, transport: Optional[httpx.AsyncBaseTransport] = None):
        self._transport = transport
        self._client: Optional[httpx.AsyncClient] = None
        self._token_type = DEFAULT_TOKEN_TYPE
        self._base_url_template = "https://{account}.snowflakecomputing.com"
        self._timeout = 30.0

    async def initialize(self, config: dict) -> None:
        self._token_type = config.get("token_type", DEFAULT_TOKEN_TYPE)
        self._base_url_template = config.get("base_url", self._base_url_template)
        self._timeout = float(config.get("timeout_seconds", self._timeout))
        self._client = httpx.AsyncClient(transport=self._transport, timeout=self._timeout)
        logger.info("SnowflakeRESTGateway initialized")

    def endpoint_for(self, request: CompletionRequest) -> str:
        base = self._base_url_template.format(account=request.credentials.account)
        return f"{base}/api/v2/cortex/agents/{request.agent}/chat"

    def _headers(self, request: CompletionRequest) -> Dict[str, str]:
        return {
            "Content-Type": "application/json",
            "Authorization": f"Bearer {request.credentials.password.get_secret_value()}",
            "X-Snowflake-Authorization-Token-Type": self._token_type,
        }

    async def _post(self, url: str, request: CompletionRequest, payload: Dict[str, Any]) -> httpx.Response:
        if self._client is None:
            raise RuntimeError("SnowflakeRESTGateway not initialized. Call initialize() first.")

        try:
            return await self._client.post(url, json=payload, headers=self._headers(request))
        except httpx.HTTPError as e:
            logger.error(f"Error calling Cortex Agent REST API: {e}")
            raise GatewayError(f"Cortex Agent API request failed: {e}") from e

    async def complete(self, request: CompletionRequest) -> CompletionResult:
        creds = request.credentials
        if not creds.account or not request.agent or not creds.password.get_secret_value():
            raise GatewayError("Missing required fields", status_code=400)

        start = time.perf_counter()
        response = await self._post(
            self.endpoint_for(request),
            request,
            {
                "message": request.prompt,
                "warehouse": request.routing.warehouse,
                "database": request.routing.database,
                "schema": request.routing.schema_name,
            },
        )

        if not response.is_success:
            raise GatewayError(
                f"Cortex Agent API error: {response.status_code}",
                status_code=response.status_code
            )

        try:
            data = response.json()
        except ValueError as e:
            raise GatewayError("Malformed response from Cortex Agent API") from e

        text = None
        if isinstance(data, dict):
            text = data.get("response") or data.get("message")
        if text is not None and not isinstance(text, str):
            raise GatewayError("Malformed response from Cortex Agent API")

        latency_ms = (time.perf_counter() - start) * 1000
        return CompletionResult(text=text or "", provider=self.name, latency_ms=latency_ms)

    async def test_connection(self, request: CompletionRequest) -> Dict[str, Any]:
        base = self._base_url_template.format(account=request.credentials.account)
        if self._client is None:
            raise RuntimeError("SnowflakeRESTGateway not initialized. Call initialize() first.")
        try:
            response = await self._client.get(
                f"{base}/api/v2/cortex/agents",
                headers=self._headers(request)
            )
        except httpx.HTTPError as e:
            raise GatewayError(f"Cortex Agent API request failed: {e}") from e

        if not response.is_success:
            raise GatewayError(
                f"Cortex Agent API error: {response.status_code}",
                status_code=response.status_code
            )
        return {"message": "Successfully connected to Snowflake", "version": None}

    async def cleanup(self) -> None:
        if self._client:
            await self._client.aclose()
            self._client = None

    @property
    def name(self) -> str:
        return "snowflake-rest"
