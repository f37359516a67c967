"""
Snowflake SQL Completion Gateway
Runs SNOWFLAKE.CORTEX.COMPLETE through a pooled Snowflake connection
"""
import asyncio
import logging
import time
from typing import Any, Dict, List, Optional

from snowflake.connector import DictCursor
from snowflake.connector.errors import Error as SnowflakeError, OperationalError

from vibecoding.domain.errors import GatewayError
from vibecoding.domain.interfaces.completion_gateway import CompletionGateway
from vibecoding.domain.models.completion import CompletionRequest, CompletionResult, RoutingParams
from vibecoding.domain.models.connection_settings import (
    DEFAULT_DATABASE,
    DEFAULT_SCHEMA,
    DEFAULT_WAREHOUSE,
)
from vibecoding.domain.services.response_policy import NO_RESPONSE_PLACEHOLDER
from vibecoding.infrastructure.gateway.connection_pool import SnowflakeConnectionPool

logger = logging.getLogger(__name__)

DEFAULT_SYSTEM_PROMPT = "You are a helpful AI assistant integrated with Snowflake Cortex."

COMPLETE_QUERY = """
    SELECT SNOWFLAKE.CORTEX.COMPLETE(
        ?,
        ARRAY_CONSTRUCT(
            OBJECT_CONSTRUCT('role', 'system', 'content', ?),
            OBJECT_CONSTRUCT('role', 'user', 'content', ?)
        )
    ) AS response
"""

VERSION_QUERY = "SELECT CURRENT_VERSION() AS version"


def _run_query(connection: Any, sql: str, binds: Optional[List[Any]] = None) -> List[Dict[str, Any]]:
    """Execute one statement and fetch all rows as dicts (blocking)"""
    cursor = connection.cursor(DictCursor)
    try:
        cursor.execute(sql, binds or [])
        return cursor.fetchall()
    finally:
        cursor.close()


class SnowflakeSQLGateway(CompletionGateway):
    """
    Completion over SQL.

    Config keys:
        system_prompt: System message sent ahead of the user prompt
        default_warehouse / default_database / default_schema
        pool_max_size / pool_idle_ttl_seconds: used when no pool is injected
    """

    def __init__(self, pool: Optional[SnowflakeConnectionPool] = None):
        self._pool = pool
        self._system_prompt = DEFAULT_SYSTEM_PROMPT
        self._defaults = RoutingParams(
            warehouse=DEFAULT_WAREHOUSE,
            database=DEFAULT_DATABASE,
            schema_name=DEFAULT_SCHEMA,
        )

    async def initialize(self, config: dict) -> None:
        self._system_prompt = config.get("system_prompt", DEFAULT_SYSTEM_PROMPT)
        self._defaults = RoutingParams(
            warehouse=config.get("default_warehouse", DEFAULT_WAREHOUSE),
            database=config.get("default_database", DEFAULT_DATABASE),
            schema_name=config.get("default_schema", DEFAULT_SCHEMA),
        )
        if self._pool is None:
            self._pool = SnowflakeConnectionPool(
                max_size=int(config.get("pool_max_size", 8)),
                idle_ttl_seconds=float(config.get("pool_idle_ttl_seconds", 300.0)),
            )
        logger.info(
            "SnowflakeSQLGateway initialized",
            extra={"pool_max_size": self._pool.max_size}
        )

    @property
    def pool(self) -> Optional[SnowflakeConnectionPool]:
        return self._pool

    def _routing_for(self, request: CompletionRequest) -> RoutingParams:
        routing = request.routing
        return RoutingParams(
            warehouse=routing.warehouse or self._defaults.warehouse,
            database=routing.database or self._defaults.database,
            schema_name=routing.schema_name or self._defaults.schema_name,
        )

    def _check_request(self, request: CompletionRequest, require_agent: bool = True) -> None:
        creds = request.credentials
        if (
            not creds.account
            or not creds.username
            or not creds.password.get_secret_value()
            or (require_agent and not request.agent)
        ):
            raise GatewayError("Missing required fields", status_code=400)

    async def _query(self, request: CompletionRequest, sql: str, binds: List[Any]) -> List[Dict[str, Any]]:
        if self._pool is None:
            raise RuntimeError("SnowflakeSQLGateway not initialized. Call initialize() first.")

        try:
            connection = await self._pool.acquire(request.credentials, self._routing_for(request))
            return await asyncio.to_thread(_run_query, connection, sql, binds)
        except OperationalError as e:
            # Connection-level failure: don't hand this connection out again
            await self._pool.discard(request.credentials)
            logger.error(f"Snowflake connection error: {e}")
            raise GatewayError(str(e)) from e
        except SnowflakeError as e:
            logger.error(f"Failed to execute query: {e}")
            raise GatewayError(str(e)) from e

    async def complete(self, request: CompletionRequest) -> CompletionResult:
        self._check_request(request)
        start = time.perf_counter()

        rows = await self._query(
            request,
            COMPLETE_QUERY,
            [request.agent, self._system_prompt, request.prompt],
        )

        if rows:
            text = rows[0].get("RESPONSE")
        else:
            text = NO_RESPONSE_PLACEHOLDER

        if text is not None and not isinstance(text, str):
            raise GatewayError(f"Malformed response: expected text, got {type(text).__name__}")

        latency_ms = (time.perf_counter() - start) * 1000
        logger.info(
            f"Cortex COMPLETE returned in {latency_ms:.0f}ms",
            extra={"agent": request.agent, "latency_ms": latency_ms}
        )
        return CompletionResult(text=text or "", provider=self.name, latency_ms=latency_ms)

    async def test_connection(self, request: CompletionRequest) -> Dict[str, Any]:
        self._check_request(request, require_agent=False)
        rows = await self._query(request, VERSION_QUERY, [])
        version = rows[0].get("VERSION") if rows else None
        return {"message": "Successfully connected to Snowflake", "version": version}

    async def cleanup(self) -> None:
        if self._pool:
            await self._pool.close_all()

    @property
    def name(self) -> str:
        return "snowflake-sql"
