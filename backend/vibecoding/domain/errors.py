"""
Domain Errors
Failure taxonomy for the voice session loop
"""
from typing import List, Optional


class VibeCodingError(Exception):
    """Base class for all session-loop errors"""
    pass


class ConfigurationError(VibeCodingError):
    """Raised when connection settings fail validation"""

    def __init__(self, message: str, missing_fields: Optional[List[str]] = None):
        super().__init__(message)
        self.missing_fields = missing_fields or []


class CaptureError(VibeCodingError):
    """Raised when the speech recognition stream fails"""

    # Silence and user cancellation end the stream without a notice
    EXPECTED_CODES = frozenset({"no-speech", "aborted"})

    def __init__(self, error_code: str, message: Optional[str] = None):
        super().__init__(message or f"Speech recognition error: {error_code}")
        self.error_code = error_code

    @property
    def is_expected(self) -> bool:
        return self.error_code in self.EXPECTED_CODES


class GatewayError(VibeCodingError):
    """Raised when the completion gateway call fails"""

    def __init__(self, message: str, status_code: Optional[int] = None):
        super().__init__(message)
        self.status_code = status_code


class GatewayTimeoutError(GatewayError):
    """Raised when the completion gateway does not answer in time"""
    pass


class EmptyResultWarning(VibeCodingError):
    """An exchange succeeded but the agent returned no text"""

    def __init__(self, placeholder: str):
        super().__init__(f"Empty completion result, using placeholder '{placeholder}'")
        self.placeholder = placeholder
