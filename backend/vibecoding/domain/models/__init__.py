"""Domain models"""

# Conversation
from .conversation import (
    Speaker,
    Turn,
    TranscriptChunk,
    NoticeLevel,
    Notice,
)

# Settings & dispatch
from .connection_settings import ConnectionSettings
from .completion import (
    RoutingParams,
    Credentials,
    CompletionRequest,
    CompletionResult,
)

# Session models
from .session import (
    SessionPhase,
    SessionTrigger,
    PhaseTransition,
    ConversationSession,
    next_phase,
)

# WebSocket message types
from .websocket_messages import (
    MessageType,
    ClientMessage,
    ServerMessage,
    ErrorMessage,
    PingMessage,
    PongMessage,
    parse_message,
)

__all__ = [
    # Conversation
    "Speaker",
    "Turn",
    "TranscriptChunk",
    "NoticeLevel",
    "Notice",
    # Settings & dispatch
    "ConnectionSettings",
    "RoutingParams",
    "Credentials",
    "CompletionRequest",
    "CompletionResult",
    # Session models
    "SessionPhase",
    "SessionTrigger",
    "PhaseTransition",
    "ConversationSession",
    "next_phase",
    # WebSocket messages
    "MessageType",
    "ClientMessage",
    "ServerMessage",
    "ErrorMessage",
    "PingMessage",
    "PongMessage",
    "parse_message",
]
