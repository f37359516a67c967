"""
Session WebSocket Endpoint
Drives one SessionController per browser connection

The browser runs speech recognition and forwards its events here;
the server owns turn-taking, prompt assembly and dispatch.
"""
import json
import logging
from typing import Optional

from fastapi import APIRouter, Query, WebSocket, WebSocketDisconnect
from pydantic import ValidationError

from vibecoding.domain.models.connection_settings import ConnectionSettings
from vibecoding.domain.models.conversation import TranscriptChunk
from vibecoding.domain.models.websocket_messages import (
    CaptureEndedMessage,
    CaptureErrorMessage,
    ClearMessage,
    ClientMessage,
    ErrorMessage,
    PingMessage,
    PongMessage,
    ServerMessage,
    StartCaptureMessage,
    StopCaptureMessage,
    TranscriptMessage,
    UpdateSettingsMessage,
    parse_message,
)
from vibecoding.domain.services.session_controller import SessionController
from vibecoding.domain.services.session_manager import SessionManager
from vibecoding.infrastructure.capture.browser import BrowserCaptureAdapter

logger = logging.getLogger(__name__)
router = APIRouter(tags=["websockets"])


def merge_settings(current: ConnectionSettings, update: dict) -> ConnectionSettings:
    """
    Apply a settings update from the client.

    Clients never receive the stored password, so an update without
    one keeps the current password.
    """
    data = current.to_storage_dict()
    data.update({k: v for k, v in update.items() if k != "has_password"})
    if not update.get("password"):
        data["password"] = current.password.get_secret_value()
    return ConnectionSettings.model_validate(data)


async def handle_client_message(
    controller: SessionController,
    capture: BrowserCaptureAdapter,
    message: ClientMessage
) -> Optional[ServerMessage]:
    """
    Route one client frame.

    Returns:
        A direct reply for the client, if any
    """
    if isinstance(message, StartCaptureMessage):
        await controller.start_capture()

    elif isinstance(message, StopCaptureMessage):
        await controller.stop_capture()

    elif isinstance(message, TranscriptMessage):
        capture.push(TranscriptChunk(
            text=message.text,
            is_final=message.is_final,
            confidence=message.confidence
        ))

    elif isinstance(message, CaptureEndedMessage):
        capture.end()

    elif isinstance(message, CaptureErrorMessage):
        capture.fail(message.error)

    elif isinstance(message, ClearMessage):
        await controller.clear()

    elif isinstance(message, UpdateSettingsMessage):
        try:
            settings = merge_settings(controller.session.settings, message.settings)
        except ValidationError as e:
            return ErrorMessage(error_code="INVALID_SETTINGS", error_message=str(e))
        await controller.update_settings(settings)

    elif isinstance(message, PingMessage):
        return PongMessage()

    return None


@router.websocket("/ws/session")
async def session_websocket(
    websocket: WebSocket,
    client_id: Optional[str] = Query(None, min_length=1, max_length=128)
):
    """
    Voice session protocol.

    ``client_id`` names the browser that owns the stored settings and
    conversation. Without it the session starts from defaults and its
    records are keyed by the new session id, which the snapshot returns.

    Server sends a ``state`` snapshot on connect, then ``phase``, ``turn``,
    ``interim`` and ``notice`` events as the conversation progresses.
    """
    await websocket.accept()

    async def send(message: ServerMessage) -> None:
        await websocket.send_json(message.model_dump(mode="json"))

    manager = await SessionManager.get_instance()
    controller: Optional[SessionController] = None

    try:
        controller = await manager.create_session(event_sink=send, client_id=client_id)
        capture = controller.capture
        if not isinstance(capture, BrowserCaptureAdapter):
            raise RuntimeError(f"Session WebSocket requires a browser capture adapter, got {capture.name}")

        await send(controller.snapshot())
        logger.info("Session WebSocket connected", extra={"session_id": controller.session_id})

        while True:
            raw = await websocket.receive_text()
            try:
                message = parse_message(json.loads(raw))
            except (ValueError, ValidationError) as e:
                logger.warning(
                    f"Invalid client message: {e}",
                    extra={"session_id": controller.session_id}
                )
                await send(ErrorMessage(error_code="INVALID_MESSAGE", error_message=str(e)))
                continue

            reply = await handle_client_message(controller, capture, message)
            if reply is not None:
                await send(reply)

    except WebSocketDisconnect:
        logger.info("Session WebSocket disconnected")

    except Exception as e:
        logger.error(f"Session WebSocket error: {e}", exc_info=True)
        try:
            await send(ErrorMessage(error_code="INTERNAL_ERROR", error_message=str(e)))
        except Exception:
            logger.debug("Could not deliver error frame, socket already closed")

    finally:
        if controller:
            await manager.end_session(controller.session_id)
