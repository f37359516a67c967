"""
Session Models
Defines ConversationSession and SessionPhase for runtime state management
"""
from pydantic import BaseModel, Field, ConfigDict
from typing import Optional, List
from datetime import datetime
from enum import Enum

from vibecoding.domain.models.conversation import Turn, Speaker
from vibecoding.domain.models.connection_settings import ConnectionSettings


class SessionPhase(str, Enum):
    """Turn-taking phase of a session"""
    IDLE = "idle"                  # Ready, capture can be started
    LISTENING = "listening"        # Capture stream open
    PROCESSING = "processing"      # Exchange in flight


class SessionTrigger(str, Enum):
    """Events that drive the turn-taking state machine"""
    START_CAPTURE = "start_capture"
    CAPTURE_ENDED = "capture_ended"
    CAPTURE_FAILED = "capture_failed"
    STOP_REQUESTED = "stop_requested"
    FINAL_TRANSCRIPT = "final_transcript"
    EXCHANGE_RESOLVED = "exchange_resolved"


class PhaseTransition(BaseModel):
    """Defines a guarded phase transition"""
    model_config = ConfigDict(frozen=True)

    from_phase: SessionPhase = Field(..., description="Source phase")
    trigger: SessionTrigger = Field(..., description="Event that fires the transition")
    to_phase: SessionPhase = Field(..., description="Destination phase")


PHASE_TRANSITIONS: List[PhaseTransition] = [
    PhaseTransition(from_phase=SessionPhase.IDLE, trigger=SessionTrigger.START_CAPTURE, to_phase=SessionPhase.LISTENING),
    PhaseTransition(from_phase=SessionPhase.LISTENING, trigger=SessionTrigger.CAPTURE_ENDED, to_phase=SessionPhase.IDLE),
    PhaseTransition(from_phase=SessionPhase.LISTENING, trigger=SessionTrigger.CAPTURE_FAILED, to_phase=SessionPhase.IDLE),
    PhaseTransition(from_phase=SessionPhase.LISTENING, trigger=SessionTrigger.STOP_REQUESTED, to_phase=SessionPhase.IDLE),
    PhaseTransition(from_phase=SessionPhase.LISTENING, trigger=SessionTrigger.FINAL_TRANSCRIPT, to_phase=SessionPhase.PROCESSING),
    PhaseTransition(from_phase=SessionPhase.PROCESSING, trigger=SessionTrigger.EXCHANGE_RESOLVED, to_phase=SessionPhase.IDLE),
]


def next_phase(current: SessionPhase, trigger: SessionTrigger) -> Optional[SessionPhase]:
    """Destination phase for (current, trigger), or None if not allowed"""
    for transition in PHASE_TRANSITIONS:
        if transition.from_phase == current and transition.trigger == trigger:
            return transition.to_phase
    return None


class ConversationSession(BaseModel):
    """
    The live conversation for one client.

    Lives in memory for the lifetime of the connection. Only the
    SessionController mutates ``phase``.
    """

    # ========== Identity ==========
    session_id: str = Field(..., description="Unique session identifier")

    # ========== Turn-taking ==========
    phase: SessionPhase = Field(default=SessionPhase.IDLE, description="Current phase")
    turns: List[Turn] = Field(default_factory=list, description="Chronological turn log")
    partial_transcript: str = Field(default="", description="Latest interim transcript")

    # ========== Configuration ==========
    settings: ConnectionSettings = Field(default_factory=ConnectionSettings)

    # ========== Timing & Metrics ==========
    started_at: datetime = Field(default_factory=datetime.utcnow)
    last_activity_at: datetime = Field(default_factory=datetime.utcnow)
    exchange_count: int = Field(default=0, ge=0, description="Completed exchanges")
    failed_exchange_count: int = Field(default=0, ge=0, description="Exchanges that ended in error")

    model_config = ConfigDict(validate_assignment=True)

    def append_turn(self, speaker: Speaker, text: str) -> Turn:
        """
        Append a turn, keeping created_at non-decreasing.

        Raises:
            ValueError: If text is empty after trimming
        """
        turn = Turn(speaker=speaker, text=text.strip())
        if self.turns and turn.created_at < self.turns[-1].created_at:
            turn = turn.model_copy(update={"created_at": self.turns[-1].created_at})
        self.turns.append(turn)
        self.update_activity()
        return turn

    def recent_turns(self, count: int) -> List[Turn]:
        """Last ``count`` turns, oldest first"""
        if count <= 0:
            return []
        return list(self.turns[-count:])

    def last_turn(self) -> Optional[Turn]:
        return self.turns[-1] if self.turns else None

    def clear(self) -> None:
        """Empty the turn log and return to idle"""
        self.turns = []
        self.partial_transcript = ""
        self.phase = SessionPhase.IDLE
        self.update_activity()

    def update_activity(self):
        """Update last activity timestamp"""
        self.last_activity_at = datetime.utcnow()

    def get_duration_seconds(self) -> float:
        """Session age in seconds"""
        return (datetime.utcnow() - self.started_at).total_seconds()
