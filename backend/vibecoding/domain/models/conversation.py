"""
Conversation Domain Models
"""
from pydantic import BaseModel, Field, field_validator
from typing import Optional
from datetime import datetime
from enum import Enum


class Speaker(str, Enum):
    """Who produced a turn"""
    USER = "user"
    AGENT = "agent"

    @property
    def label(self) -> str:
        """Label used when rendering the turn into a prompt"""
        return "User" if self is Speaker.USER else "Assistant"


class Turn(BaseModel):
    """One utterance or one response in the conversation"""
    speaker: Speaker
    text: str
    created_at: datetime = Field(default_factory=datetime.utcnow)

    @field_validator("text")
    @classmethod
    def text_not_blank(cls, v: str) -> str:
        if not v or not v.strip():
            raise ValueError("Turn text must not be empty")
        return v

    def render(self) -> str:
        """Render as '<Speaker label>: <text>'"""
        return f"{self.speaker.label}: {self.text}"


class TranscriptChunk(BaseModel):
    """
    Transcription event from the capture adapter.

    Carries the text accumulated since the stream started;
    only final chunks are turned into user turns.
    """
    text: str
    is_final: bool = False
    confidence: Optional[float] = None
    timestamp: datetime = Field(default_factory=datetime.utcnow)


class NoticeLevel(str, Enum):
    """Severity of a transient notice"""
    INFO = "info"
    SUCCESS = "success"
    ERROR = "error"


class Notice(BaseModel):
    """Transient user-visible notification, never stored in the turn log"""
    level: NoticeLevel = NoticeLevel.INFO
    message: str
    code: Optional[str] = None
    timestamp: datetime = Field(default_factory=datetime.utcnow)
