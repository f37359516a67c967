"""
Unit tests for session models (ConversationSession, SessionPhase, transitions)
"""
import pytest
from datetime import timedelta

from vibecoding.domain.models.conversation import Speaker
from vibecoding.domain.models.session import (
    PHASE_TRANSITIONS,
    ConversationSession,
    SessionPhase,
    SessionTrigger,
    next_phase,
)


class TestSessionPhase:
    """Tests for SessionPhase enum"""

    def test_phase_values(self):
        assert SessionPhase.IDLE == "idle"
        assert SessionPhase.LISTENING == "listening"
        assert SessionPhase.PROCESSING == "processing"

    def test_phase_count(self):
        assert len(SessionPhase) == 3


class TestPhaseTransitions:
    """Tests for the transition table"""

    @pytest.mark.parametrize("trigger,expected", [
        (SessionTrigger.START_CAPTURE, SessionPhase.LISTENING),
        (SessionTrigger.FINAL_TRANSCRIPT, None),
        (SessionTrigger.EXCHANGE_RESOLVED, None),
    ])
    def test_from_idle(self, trigger, expected):
        assert next_phase(SessionPhase.IDLE, trigger) == expected

    @pytest.mark.parametrize("trigger,expected", [
        (SessionTrigger.CAPTURE_ENDED, SessionPhase.IDLE),
        (SessionTrigger.CAPTURE_FAILED, SessionPhase.IDLE),
        (SessionTrigger.STOP_REQUESTED, SessionPhase.IDLE),
        (SessionTrigger.FINAL_TRANSCRIPT, SessionPhase.PROCESSING),
        (SessionTrigger.START_CAPTURE, None),
    ])
    def test_from_listening(self, trigger, expected):
        assert next_phase(SessionPhase.LISTENING, trigger) == expected

    def test_processing_only_leaves_on_resolution(self):
        """Nothing but a resolved exchange ends processing"""
        for trigger in SessionTrigger:
            target = next_phase(SessionPhase.PROCESSING, trigger)
            if trigger is SessionTrigger.EXCHANGE_RESOLVED:
                assert target == SessionPhase.IDLE
            else:
                assert target is None

    def test_table_has_no_duplicate_keys(self):
        keys = [(t.from_phase, t.trigger) for t in PHASE_TRANSITIONS]
        assert len(keys) == len(set(keys))


class TestConversationSession:
    """Tests for ConversationSession"""

    def test_defaults(self):
        session = ConversationSession(session_id="s1")
        assert session.phase == SessionPhase.IDLE
        assert session.turns == []
        assert session.partial_transcript == ""
        assert session.exchange_count == 0

    def test_append_turn_strips_text(self):
        session = ConversationSession(session_id="s1")
        turn = session.append_turn(Speaker.USER, "  hello  ")
        assert turn.text == "hello"
        assert session.turns == [turn]

    def test_append_turn_rejects_blank(self):
        session = ConversationSession(session_id="s1")
        with pytest.raises(ValueError):
            session.append_turn(Speaker.USER, "   ")
        assert session.turns == []

    def test_created_at_is_non_decreasing(self):
        session = ConversationSession(session_id="s1")
        first = session.append_turn(Speaker.USER, "one")
        # Simulate a clock step backwards
        session.turns[0] = first.model_copy(update={"created_at": first.created_at + timedelta(hours=1)})

        second = session.append_turn(Speaker.AGENT, "two")
        assert second.created_at >= session.turns[0].created_at

    def test_recent_turns(self):
        session = ConversationSession(session_id="s1")
        for i in range(7):
            session.append_turn(Speaker.USER if i % 2 == 0 else Speaker.AGENT, f"t{i}")

        recent = session.recent_turns(5)
        assert [t.text for t in recent] == ["t2", "t3", "t4", "t5", "t6"]
        assert session.recent_turns(0) == []
        assert session.last_turn().text == "t6"

    def test_clear(self):
        session = ConversationSession(session_id="s1", phase=SessionPhase.LISTENING)
        session.append_turn(Speaker.USER, "hello")
        session.partial_transcript = "hel"

        session.clear()

        assert session.turns == []
        assert session.partial_transcript == ""
        assert session.phase == SessionPhase.IDLE

    def test_duration(self):
        session = ConversationSession(session_id="s1")
        session.started_at = session.started_at - timedelta(seconds=10)
        assert session.get_duration_seconds() >= 10
