"""
Completion Gateway Interface
Abstract base class for prompt -> text completion backends
"""
from abc import ABC, abstractmethod
from typing import Any, Dict

from vibecoding.domain.models.completion import CompletionRequest, CompletionResult


class CompletionGateway(ABC):
    """Abstract base class for completion gateways"""

    @abstractmethod
    async def initialize(self, config: dict) -> None:
        """Initialize the gateway with configuration"""
        pass

    @abstractmethod
    async def complete(self, request: CompletionRequest) -> CompletionResult:
        """
        Send one prompt and return the generated text.

        Args:
            request: Prompt, agent identifier, routing and credentials

        Returns:
            CompletionResult: Generated text (may be empty)

        Raises:
            GatewayError: Network failure, non-2xx status or malformed body
        """
        pass

    @abstractmethod
    async def test_connection(self, request: CompletionRequest) -> Dict[str, Any]:
        """
        Check that the backend is reachable with the given credentials.

        Returns:
            Dict with at least a ``message`` key
        """
        pass

    @abstractmethod
    async def cleanup(self) -> None:
        """Release resources"""
        pass

    @property
    @abstractmethod
    def name(self) -> str:
        """Gateway name"""
        pass
