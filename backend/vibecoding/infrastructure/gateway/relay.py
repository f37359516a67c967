"""
Relay Completion Gateway
Forwards prompts to a remote VibeCoding server's /api/cortex-agent endpoint
"""
import logging
import time
from typing import Any, Dict, Optional

import httpx

from vibecoding.domain.errors import GatewayError
from vibecoding.domain.interfaces.completion_gateway import CompletionGateway
from vibecoding.domain.models.completion import CompletionRequest, CompletionResult

logger = logging.getLogger(__name__)


class RelayCompletionGateway(CompletionGateway):
    """HTTP client for another VibeCoding server"""

    def __init__(self, transport: Optional[httpx.AsyncBaseTransport] = None):
        self._transport = transport
        self._client: Optional[httpx.AsyncClient] = None
        self._server_url = "http://localhost:3000"
        self._endpoint = "/api/cortex-agent"
        self._test_endpoint = "/api/test-connection"

    async def initialize(self, config: dict) -> None:
        server_url = config.get("server_url") or self._server_url
        self._server_url = server_url.rstrip("/")
        self._endpoint = config.get("endpoint", self._endpoint)
        self._test_endpoint = config.get("test_endpoint", self._test_endpoint)
        self._client = httpx.AsyncClient(
            base_url=self._server_url,
            transport=self._transport,
            timeout=float(config.get("timeout_seconds", 30.0))
        )
        logger.info(f"RelayCompletionGateway initialized: {self._server_url}")

    @staticmethod
    def build_payload(request: CompletionRequest) -> Dict[str, Any]:
        creds = request.credentials
        return {
            "account": creds.account,
            "username": creds.username,
            "password": creds.password.get_secret_value(),
            "warehouse": request.routing.warehouse,
            "database": request.routing.database,
            "schema": request.routing.schema_name,
            "agent": request.agent,
            "message": request.prompt,
        }

    async def _post(self, path: str, payload: Dict[str, Any]) -> Dict[str, Any]:
        if self._client is None:
            raise RuntimeError("RelayCompletionGateway not initialized. Call initialize() first.")

        try:
            response = await self._client.post(path, json=payload)
        except httpx.HTTPError as e:
            logger.error(f"Relay request failed: {e}")
            raise GatewayError(f"Relay request failed: {e}") from e

        try:
            data = response.json()
        except ValueError:
            data = None

        if not response.is_success:
            message = None
            if isinstance(data, dict):
                message = data.get("message") or data.get("error")
            raise GatewayError(
                message or f"API error: {response.status_code}",
                status_code=response.status_code
            )

        if not isinstance(data, dict):
            raise GatewayError("Malformed response from relay server")
        return data

    async def complete(self, request: CompletionRequest) -> CompletionResult:
        start = time.perf_counter()
        data = await self._post(self._endpoint, self.build_payload(request))

        text = data.get("response")
        if text is not None and not isinstance(text, str):
            raise GatewayError("Malformed response from relay server")

        return CompletionResult(
            text=text or "",
            provider=self.name,
            latency_ms=(time.perf_counter() - start) * 1000
        )

    async def test_connection(self, request: CompletionRequest) -> Dict[str, Any]:
        data = await self._post(self._test_endpoint, self.build_payload(request))
        return {"message": data.get("message", ""), "version": data.get("version")}

    async def cleanup(self) -> None:
        if self._client:
            await self._client.aclose()
            self._client = None

    @property
    def name(self) -> str:
        return "relay"
