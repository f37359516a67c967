"""
Demo Completion Gateway
Canned responses for running the voice loop without Snowflake
"""
import asyncio
import logging
import time
from typing import Any, Dict, List, Optional

from vibecoding.domain.interfaces.completion_gateway import CompletionGateway
from vibecoding.domain.models.completion import CompletionRequest, CompletionResult

logger = logging.getLogger(__name__)

DEFAULT_DEMO_RESPONSES = [
    "I understand your request. How can I help you further?",
    "That's an interesting question. Let me process that for you.",
    "I've analyzed your input and here's what I found...",
    "Based on your request, I can provide the following information...",
    "I'm here to help. Could you provide more details?",
    "Let me think about that for a moment...",
    "Great question! Here's my analysis...",
    "I can help you with that. What specific information do you need?",
    "Thanks for that input. Here's my response...",
    "Interesting perspective. Let me elaborate on that...",
]


class DemoCompletionGateway(CompletionGateway):
    """Cycles through a fixed list of responses after a short delay"""

    def __init__(self):
        self._responses: List[str] = list(DEFAULT_DEMO_RESPONSES)
        self._delay_seconds: float = 1.0
        self._index = 0

    async def initialize(self, config: dict) -> None:
        responses = config.get("responses")
        if responses:
            self._responses = [str(r) for r in responses]
        self._delay_seconds = float(config.get("delay_seconds", self._delay_seconds))
        logger.info(
            f"DemoCompletionGateway initialized with {len(self._responses)} responses"
        )

    async def complete(self, request: CompletionRequest) -> CompletionResult:
        start = time.perf_counter()
        if self._delay_seconds > 0:
            await asyncio.sleep(self._delay_seconds)

        text = self._responses[self._index % len(self._responses)]
        self._index += 1

        return CompletionResult(
            text=text,
            provider=self.name,
            latency_ms=(time.perf_counter() - start) * 1000
        )

    async def test_connection(self, request: CompletionRequest) -> Dict[str, Any]:
        return {"message": "Demo mode active", "version": "demo"}

    async def cleanup(self) -> None:
        self._index = 0

    @property
    def name(self) -> str:
        return "demo"

    @property
    def responses(self) -> List[str]:
        return list(self._responses)

    @property
    def delay_seconds(self) -> Optional[float]:
        return self._delay_seconds
