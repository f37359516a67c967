"""
Session Controller
Owns the turn-taking state machine, prompt assembly and dispatch for one session.

Phases: idle -> listening -> processing -> idle. A start-capture request
while listening or processing is a no-op, so a session never has more
than one capture stream or one dispatch outstanding.
"""
import asyncio
import logging
from contextlib import aclosing, suppress
from typing import AsyncIterator, Awaitable, Callable, Optional

from vibecoding.domain.errors import (
    CaptureError,
    ConfigurationError,
    EmptyResultWarning,
    GatewayError,
    GatewayTimeoutError,
    VibeCodingError,
)
from vibecoding.domain.interfaces.capture_adapter import CaptureAdapter
from vibecoding.domain.interfaces.completion_gateway import CompletionGateway
from vibecoding.domain.models.completion import CompletionRequest
from vibecoding.domain.models.connection_settings import ConnectionSettings
from vibecoding.domain.models.conversation import NoticeLevel, Speaker, TranscriptChunk, Turn
from vibecoding.domain.models.session import (
    ConversationSession,
    SessionPhase,
    SessionTrigger,
    next_phase,
)
from vibecoding.domain.models.websocket_messages import (
    InterimMessage,
    NoticeMessage,
    PhaseMessage,
    ServerMessage,
    StateMessage,
    TurnMessage,
    TurnPayload,
)
from vibecoding.domain.services.prompt_manager import PromptManager
from vibecoding.domain.services.response_policy import ResponsePolicy
from vibecoding.domain.services.settings_repository import (
    ConversationRepository,
    SettingsRepository,
)

logger = logging.getLogger(__name__)

SessionEventSink = Callable[[ServerMessage], Awaitable[None]]


class SessionController:
    """
    Drives one ConversationSession.

    Usage:
        controller = SessionController(session, capture, gateway, event_sink=send)
        await controller.start_capture()
        ...  # capture adapter delivers transcripts
        await controller.wait_until_settled()
    """

    def __init__(
        self,
        session: ConversationSession,
        capture: CaptureAdapter,
        gateway: CompletionGateway,
        prompt_manager: Optional[PromptManager] = None,
        response_policy: Optional[ResponsePolicy] = None,
        event_sink: Optional[SessionEventSink] = None,
        settings_repository: Optional[SettingsRepository] = None,
        conversation_repository: Optional[ConversationRepository] = None,
        client_id: Optional[str] = None
    ):
        self.session = session
        self.capture = capture
        self.gateway = gateway
        self.prompt_manager = prompt_manager or PromptManager()
        self.response_policy = response_policy or ResponsePolicy()
        self.event_sink = event_sink
        self.settings_repository = settings_repository
        self.conversation_repository = conversation_repository
        self.client_id = client_id

        self._capture_task: Optional[asyncio.Task] = None
        # Bumped on every start/stop/clear so a stale capture task cannot
        # act on a newer stream.
        self._generation = 0

    @property
    def session_id(self) -> str:
        return self.session.session_id

    @property
    def phase(self) -> SessionPhase:
        return self.session.phase

    # ------------------------------------------------------------------
    # Public operations
    # ------------------------------------------------------------------

    async def start_capture(self) -> SessionPhase:
        """
        Begin listening if the session is idle and its settings are valid.

        Returns:
            The phase after the request. Unchanged when already listening
            or processing, or when settings are invalid.
        """
        if self.session.phase is not SessionPhase.IDLE:
            logger.debug(
                f"start_capture ignored in phase {self.session.phase.value}",
                extra={"session_id": self.session_id}
            )
            return self.session.phase

        missing = self.session.settings.missing_fields()
        if missing:
            error = ConfigurationError(
                "Please configure your Snowflake settings first",
                missing_fields=missing
            )
            logger.info(
                f"Capture refused, missing settings: {missing}",
                extra={"session_id": self.session_id}
            )
            await self._notify_error(error, code="CONFIGURATION")
            return self.session.phase

        self._generation += 1
        generation = self._generation
        self.session.partial_transcript = ""
        events = self.capture.stream(self.session.settings.language)
        await self._apply(SessionTrigger.START_CAPTURE)

        self._capture_task = asyncio.create_task(self._run_capture(generation, events))
        return self.session.phase

    async def stop_capture(self) -> SessionPhase:
        """Stop listening and discard the partial transcript"""
        if self.session.phase is not SessionPhase.LISTENING:
            return self.session.phase

        self._generation += 1
        self.session.partial_transcript = ""
        await self._apply(SessionTrigger.STOP_REQUESTED)
        await self.capture.stop()
        return self.session.phase

    async def clear(self) -> SessionPhase:
        """
        Empty the conversation and return to idle from any phase.

        An in-flight capture or exchange is cancelled so no late turn can
        land in the cleared log.
        """
        self._generation += 1
        task = self._capture_task
        self._capture_task = None

        if self.capture.is_active:
            await self.capture.stop()

        if task and not task.done() and task is not asyncio.current_task():
            task.cancel()
            with suppress(asyncio.CancelledError):
                await task

        self.session.clear()
        if self.conversation_repository:
            await self.conversation_repository.delete(self.client_id)

        logger.info("Conversation cleared", extra={"session_id": self.session_id})
        await self._emit(PhaseMessage(session_id=self.session_id, phase=self.session.phase))
        await self._emit(self.snapshot())
        return self.session.phase

    async def update_settings(self, settings: ConnectionSettings) -> None:
        """
        Replace the session settings.

        An exchange already in flight keeps the routing it was dispatched
        with; the next dispatch uses the new settings.
        """
        self.session.settings = settings
        if self.settings_repository:
            await self.settings_repository.save(settings, self.client_id)

        logger.info(
            "Session settings updated",
            extra={"session_id": self.session_id, "agent": settings.agent}
        )
        await self._emit(NoticeMessage(
            session_id=self.session_id,
            level=NoticeLevel.SUCCESS,
            message="Settings saved successfully!"
        ))

    async def restore(self) -> None:
        """Load a saved turn log, when conversation saving is configured"""
        if not self.conversation_repository:
            return
        turns = await self.conversation_repository.load(self.client_id)
        if turns:
            self.session.turns = turns
            logger.info(
                f"Restored {len(turns)} turns",
                extra={"session_id": self.session_id}
            )

    async def wait_until_settled(self) -> None:
        """Wait for the current capture/exchange task to finish"""
        task = self._capture_task
        if task and not task.done():
            with suppress(asyncio.CancelledError):
                await task

    async def close(self) -> None:
        """Tear down on disconnect"""
        self._generation += 1
        task = self._capture_task
        self._capture_task = None
        if self.capture.is_active:
            await self.capture.stop()
        if task and not task.done():
            task.cancel()
            with suppress(asyncio.CancelledError):
                await task

    def snapshot(self) -> StateMessage:
        """Full session state for the client"""
        return StateMessage(
            session_id=self.session_id,
            client_id=self.client_id,
            phase=self.session.phase,
            turns=[TurnPayload.from_turn(t) for t in self.session.turns],
            settings=self.session.settings.to_public_dict()
        )

    # ------------------------------------------------------------------
    # Capture and exchange
    # ------------------------------------------------------------------

    def _is_current(self, generation: int) -> bool:
        return generation == self._generation and self.session.phase is SessionPhase.LISTENING

    async def _run_capture(self, generation: int, events: AsyncIterator[TranscriptChunk]) -> None:
        """Consume one recognition stream until a final transcript or its end"""
        utterance: Optional[str] = None

        try:
            async with aclosing(events):
                async for chunk in events:
                    if not self._is_current(generation):
                        break

                    text = chunk.text.strip()
                    if not chunk.is_final:
                        if text:
                            self.session.partial_transcript = chunk.text
                            await self._emit(InterimMessage(session_id=self.session_id, text=chunk.text))
                        continue

                    if not text:
                        logger.debug(
                            "Discarding empty final transcript",
                            extra={"session_id": self.session_id}
                        )
                        continue

                    utterance = text
                    break

        except CaptureError as e:
            if not self._is_current(generation):
                return
            logger.warning(
                f"Speech recognition error: {e.error_code}",
                extra={"session_id": self.session_id, "error": e.error_code}
            )
            self.session.partial_transcript = ""
            if not e.is_expected:
                await self._notify_error(e, code="CAPTURE")
            await self._apply(SessionTrigger.CAPTURE_FAILED)
            return

        if not self._is_current(generation):
            return

        self.session.partial_transcript = ""
        if utterance is None:
            await self._apply(SessionTrigger.CAPTURE_ENDED)
            return

        await self.capture.stop()
        await self._run_exchange(utterance)

    async def _run_exchange(self, utterance: str) -> None:
        """Append the user turn, dispatch once, append the agent turn"""
        settings = self.session.settings
        missing = settings.missing_fields()
        if missing:
            # Settings changed while listening: never dispatch
            await self._notify_error(
                ConfigurationError("Please configure your Snowflake settings first", missing),
                code="CONFIGURATION"
            )
            await self._apply(SessionTrigger.CAPTURE_ENDED)
            return

        prompt = self.prompt_manager.build_prompt(self.session.turns, utterance)
        request = CompletionRequest.from_settings(prompt, settings)

        await self._apply(SessionTrigger.FINAL_TRANSCRIPT)
        await self._append(Speaker.USER, utterance)

        logger.info(
            "Dispatching prompt",
            extra={
                "session_id": self.session_id,
                "gateway": self.gateway.name,
                "agent": request.agent,
                "prompt_chars": len(prompt),
            }
        )

        timeout = self.response_policy.timeout_seconds
        try:
            result = await asyncio.wait_for(self.gateway.complete(request), timeout=timeout)
        except asyncio.TimeoutError:
            await self._record_failure(
                GatewayTimeoutError(f"Cortex Agent did not respond within {timeout:g} seconds")
            )
        except GatewayError as e:
            await self._record_failure(e)
        except Exception as e:
            logger.error(
                f"Unexpected gateway failure: {e}",
                extra={"session_id": self.session_id},
                exc_info=True
            )
            await self._record_failure(GatewayError(str(e) or type(e).__name__))
        else:
            text, was_empty = self.response_policy.normalize(result.text)
            if was_empty:
                logger.warning(
                    str(EmptyResultWarning(text)),
                    extra={"session_id": self.session_id, "gateway": self.gateway.name}
                )
            await self._append(Speaker.AGENT, text)
            self.session.exchange_count += 1

        await self._persist_turns()
        await self._apply(SessionTrigger.EXCHANGE_RESOLVED)

    async def _record_failure(self, error: GatewayError) -> None:
        logger.error(
            f"Error communicating with Cortex Agent: {error}",
            extra={"session_id": self.session_id, "status_code": error.status_code}
        )
        self.session.failed_exchange_count += 1
        await self._emit(NoticeMessage(
            session_id=self.session_id,
            level=NoticeLevel.ERROR,
            message=f"Error communicating with Cortex Agent: {error}",
            code="GATEWAY"
        ))
        await self._append(Speaker.AGENT, self.response_policy.failure_text())

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------

    async def _apply(self, trigger: SessionTrigger) -> None:
        """Fire a transition from the table; invalid pairs are logged and ignored"""
        current = self.session.phase
        target = next_phase(current, trigger)
        if target is None:
            logger.warning(
                f"No transition for phase={current.value}, trigger={trigger.value}",
                extra={"session_id": self.session_id}
            )
            return

        self.session.phase = target
        self.session.update_activity()
        logger.info(
            f"Phase transition: {current.value} -> {target.value} ({trigger.value})",
            extra={"session_id": self.session_id}
        )
        await self._emit(PhaseMessage(session_id=self.session_id, phase=target))

    async def _append(self, speaker: Speaker, text: str) -> Turn:
        turn = self.session.append_turn(speaker, text)
        await self._emit(TurnMessage(session_id=self.session_id, turn=TurnPayload.from_turn(turn)))
        return turn

    async def _persist_turns(self) -> None:
        if not self.conversation_repository:
            return
        try:
            await self.conversation_repository.save(self.session.turns, self.client_id)
        except Exception as e:
            logger.error(
                f"Failed to save conversation: {e}",
                extra={"session_id": self.session_id}
            )

    async def _notify_error(self, error: VibeCodingError, code: str) -> None:
        await self._emit(NoticeMessage(
            session_id=self.session_id,
            level=NoticeLevel.ERROR,
            message=str(error),
            code=code
        ))

    async def _emit(self, message: ServerMessage) -> None:
        """Deliver an event; a closed client must not break the session"""
        if not self.event_sink:
            return
        try:
            await self.event_sink(message)
        except Exception as e:
            logger.debug(
                f"Failed to deliver {message.type.value} event: {e}",
                extra={"session_id": self.session_id}
            )
