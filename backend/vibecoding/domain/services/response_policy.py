"""
Response Policy Service
Timeout budget, empty-result placeholder and failure text for exchanges.
"""
from typing import Optional, Tuple
from pydantic import BaseModel, Field

NO_RESPONSE_PLACEHOLDER = "No response from agent"
APOLOGY_TEXT = (
    "Sorry, I encountered an error processing your request. "
    "Please check your Snowflake configuration."
)


class ResponsePolicyConfig(BaseModel):
    """Configuration for exchange response handling"""
    dispatch_timeout_seconds: float = Field(default=30.0, gt=0.0, le=600.0, description="Max gateway call time")
    placeholder_text: str = Field(default=NO_RESPONSE_PLACEHOLDER, min_length=1)
    apology_text: str = Field(default=APOLOGY_TEXT, min_length=1)


class ResponsePolicy:
    """
    Turns raw gateway output into agent turn text.

    Empty output is not a failure: it is replaced by a placeholder.
    Failures are recorded with a fixed apology so the turn log never
    carries raw error detail.
    """

    def __init__(self, config: Optional[ResponsePolicyConfig] = None):
        self.config = config or ResponsePolicyConfig()

    @property
    def timeout_seconds(self) -> float:
        return self.config.dispatch_timeout_seconds

    def normalize(self, text: Optional[str]) -> Tuple[str, bool]:
        """
        Trim gateway output.

        Returns:
            Tuple of (turn_text, was_empty)
        """
        cleaned = (text or "").strip()
        if not cleaned:
            return self.config.placeholder_text, True
        return cleaned, False

    def failure_text(self) -> str:
        """Text recorded as the agent turn when an exchange fails"""
        return self.config.apology_text
