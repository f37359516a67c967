"""
Completion Gateway Factory
"""
from typing import Dict, List, Type

from vibecoding.domain.interfaces.completion_gateway import CompletionGateway
from vibecoding.infrastructure.gateway.demo import DemoCompletionGateway
from vibecoding.infrastructure.gateway.relay import RelayCompletionGateway
from vibecoding.infrastructure.gateway.snowflake_rest import SnowflakeRESTGateway
from vibecoding.infrastructure.gateway.snowflake_sql import SnowflakeSQLGateway


class GatewayFactory:
    """Factory for creating completion gateway instances"""

    _providers: Dict[str, Type[CompletionGateway]] = {}

    @classmethod
    def create(cls, provider_name: str, **kwargs) -> CompletionGateway:
        """Create an uninitialized gateway instance"""
        if provider_name not in cls._providers:
            available = ", ".join(cls._providers.keys()) if cls._providers else "None"
            raise ValueError(f"Unknown completion gateway: {provider_name}. Available: {available}")

        provider_class = cls._providers[provider_name]
        return provider_class(**kwargs)

    @classmethod
    def register(cls, name: str, provider_class: Type[CompletionGateway]) -> None:
        """Register a gateway"""
        cls._providers[name] = provider_class

    @classmethod
    def list_providers(cls) -> List[str]:
        """List available gateways"""
        return list(cls._providers.keys())


GatewayFactory.register("demo", DemoCompletionGateway)
GatewayFactory.register("snowflake-sql", SnowflakeSQLGateway)
GatewayFactory.register("snowflake-rest", SnowflakeRESTGateway)
GatewayFactory.register("relay", RelayCompletionGateway)
