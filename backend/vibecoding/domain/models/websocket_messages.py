"""
WebSocket Message Schemas
Defines all message types for the voice session protocol

Client frames carry browser speech-recognition events and user actions;
server frames carry phase changes, turns and transient notices.
"""
from pydantic import BaseModel, Field
from typing import Literal, Optional, Dict, Any, List, Union
from datetime import datetime
from enum import Enum

from vibecoding.domain.models.conversation import Speaker, NoticeLevel, Turn
from vibecoding.domain.models.session import SessionPhase


class MessageType(str, Enum):
    """All supported WebSocket message types"""
    # Client -> server
    START_CAPTURE = "start_capture"
    STOP_CAPTURE = "stop_capture"
    TRANSCRIPT = "transcript"
    CAPTURE_ENDED = "capture_ended"
    CAPTURE_ERROR = "capture_error"
    CLEAR = "clear"
    UPDATE_SETTINGS = "update_settings"
    PING = "ping"

    # Server -> client
    STATE = "state"
    PHASE = "phase"
    TURN = "turn"
    INTERIM = "interim"
    NOTICE = "notice"
    PONG = "pong"
    ERROR = "error"


# ============================================================================
# CLIENT MESSAGES
# ============================================================================

class StartCaptureMessage(BaseModel):
    """User pressed the microphone button"""
    type: Literal[MessageType.START_CAPTURE] = MessageType.START_CAPTURE


class StopCaptureMessage(BaseModel):
    """User asked to stop listening"""
    type: Literal[MessageType.STOP_CAPTURE] = MessageType.STOP_CAPTURE


class TranscriptMessage(BaseModel):
    """
    Interim or final transcript from browser speech recognition
    """
    type: Literal[MessageType.TRANSCRIPT] = MessageType.TRANSCRIPT
    text: str = Field(default="", description="Text accumulated since stream start")
    is_final: bool = Field(default=False, description="Is this a final transcript?")
    confidence: Optional[float] = Field(None, ge=0.0, le=1.0, description="Confidence score")


class CaptureEndedMessage(BaseModel):
    """Recognition stream ended (silence, browser stop)"""
    type: Literal[MessageType.CAPTURE_ENDED] = MessageType.CAPTURE_ENDED


class CaptureErrorMessage(BaseModel):
    """Recognition stream reported an error"""
    type: Literal[MessageType.CAPTURE_ERROR] = MessageType.CAPTURE_ERROR
    error: str = Field(..., description="Recognition error code (no-speech, aborted, network, ...)")


class ClearMessage(BaseModel):
    """User cleared the conversation"""
    type: Literal[MessageType.CLEAR] = MessageType.CLEAR


class UpdateSettingsMessage(BaseModel):
    """User saved new connection settings"""
    type: Literal[MessageType.UPDATE_SETTINGS] = MessageType.UPDATE_SETTINGS
    settings: Dict[str, Any] = Field(default_factory=dict)


class PingMessage(BaseModel):
    """
    Heartbeat ping to keep connection alive
    """
    type: Literal[MessageType.PING] = MessageType.PING


# ============================================================================
# SERVER MESSAGES
# ============================================================================

class TurnPayload(BaseModel):
    """Serialized turn"""
    speaker: Speaker
    text: str
    created_at: datetime

    @classmethod
    def from_turn(cls, turn: Turn) -> "TurnPayload":
        return cls(speaker=turn.speaker, text=turn.text, created_at=turn.created_at)


class PhaseMessage(BaseModel):
    """Session phase changed"""
    type: Literal[MessageType.PHASE] = MessageType.PHASE
    session_id: str
    phase: SessionPhase
    timestamp: datetime = Field(default_factory=datetime.utcnow)


class TurnMessage(BaseModel):
    """A turn was appended to the conversation"""
    type: Literal[MessageType.TURN] = MessageType.TURN
    session_id: str
    turn: TurnPayload


class InterimMessage(BaseModel):
    """Latest interim transcript, for live display only"""
    type: Literal[MessageType.INTERIM] = MessageType.INTERIM
    session_id: str
    text: str


class NoticeMessage(BaseModel):
    """Transient notification (toast)"""
    type: Literal[MessageType.NOTICE] = MessageType.NOTICE
    session_id: str
    level: NoticeLevel = NoticeLevel.INFO
    message: str
    code: Optional[str] = Field(None, description="Error code (CONFIGURATION, CAPTURE, GATEWAY)")
    timestamp: datetime = Field(default_factory=datetime.utcnow)


class StateMessage(BaseModel):
    """Full session snapshot, sent on connect and after clear"""
    type: Literal[MessageType.STATE] = MessageType.STATE
    session_id: str
    client_id: Optional[str] = None
    phase: SessionPhase
    turns: List[TurnPayload] = Field(default_factory=list)
    settings: Dict[str, Any] = Field(default_factory=dict)


class PongMessage(BaseModel):
    """
    Heartbeat pong response
    """
    type: Literal[MessageType.PONG] = MessageType.PONG
    timestamp: datetime = Field(default_factory=datetime.utcnow)


class ErrorMessage(BaseModel):
    """
    Protocol error (bad frame), not a conversation failure
    """
    type: Literal[MessageType.ERROR] = MessageType.ERROR
    error_code: str = Field(..., description="Error code (e.g., INVALID_MESSAGE)")
    error_message: str = Field(..., description="Human-readable error message")


# ============================================================================
# MESSAGE UTILITIES
# ============================================================================

ClientMessage = Union[
    StartCaptureMessage,
    StopCaptureMessage,
    TranscriptMessage,
    CaptureEndedMessage,
    CaptureErrorMessage,
    ClearMessage,
    UpdateSettingsMessage,
    PingMessage,
]

ServerMessage = Union[
    StateMessage,
    PhaseMessage,
    TurnMessage,
    InterimMessage,
    NoticeMessage,
    PongMessage,
    ErrorMessage,
]


def parse_message(data: Dict[str, Any]) -> ClientMessage:
    """
    Parse an incoming client frame based on its type field

    Args:
        data: Decoded JSON frame

    Returns:
        Parsed message object

    Raises:
        ValueError: If message type is unknown or fields are invalid
    """
    message_map = {
        MessageType.START_CAPTURE: StartCaptureMessage,
        MessageType.STOP_CAPTURE: StopCaptureMessage,
        MessageType.TRANSCRIPT: TranscriptMessage,
        MessageType.CAPTURE_ENDED: CaptureEndedMessage,
        MessageType.CAPTURE_ERROR: CaptureErrorMessage,
        MessageType.CLEAR: ClearMessage,
        MessageType.UPDATE_SETTINGS: UpdateSettingsMessage,
        MessageType.PING: PingMessage,
    }

    if not isinstance(data, dict):
        raise ValueError(f"Expected a JSON object, got {type(data).__name__}")

    message_type = data.get("type")
    try:
        message_class = message_map.get(MessageType(message_type))
    except ValueError:
        message_class = None
    if not message_class:
        raise ValueError(f"Unknown message type: {message_type}")

    return message_class(**data)
