"""
Browser Capture Adapter
Implements CaptureAdapter for speech recognition that runs in the browser.

The browser owns the microphone and the recognizer; it forwards transcript
events over the session WebSocket and the endpoint pushes them here.
"""
import asyncio
import logging
from typing import AsyncIterator, Optional, Union

from vibecoding.domain.errors import CaptureError
from vibecoding.domain.interfaces.capture_adapter import CaptureAdapter
from vibecoding.domain.models.conversation import TranscriptChunk

logger = logging.getLogger(__name__)


class _StreamEnd:
    """Queue sentinel: the recognition stream ended normally"""


_END = _StreamEnd()

_Event = Union[TranscriptChunk, CaptureError, _StreamEnd]


class BrowserCaptureAdapter(CaptureAdapter):
    """
    Queue-fed capture adapter.

    Each call to ``stream()`` gets its own queue, so events pushed after
    a stop never leak into the next stream.
    """

    def __init__(self, max_queue_size: int = 100):
        self._max_queue_size = max_queue_size
        self._queue: Optional[asyncio.Queue] = None
        self._language: Optional[str] = None

        # Metrics
        self.chunks_received = 0
        self.chunks_dropped = 0

    @property
    def name(self) -> str:
        return "browser"

    @property
    def is_active(self) -> bool:
        return self._queue is not None

    @property
    def language(self) -> Optional[str]:
        """Locale of the current stream"""
        return self._language

    def stream(self, language: str = "en-US") -> AsyncIterator[TranscriptChunk]:
        # The queue exists as soon as the stream is requested, so events the
        # browser sends before the consumer first awaits are not lost.
        queue: asyncio.Queue = asyncio.Queue(maxsize=self._max_queue_size)
        self._queue = queue
        self._language = language
        logger.debug(f"Browser capture stream opened ({language})")
        return self._iterate(queue)

    async def _iterate(self, queue: asyncio.Queue) -> AsyncIterator[TranscriptChunk]:
        try:
            while True:
                event: _Event = await queue.get()
                if isinstance(event, _StreamEnd):
                    return
                if isinstance(event, CaptureError):
                    raise event
                yield event
        finally:
            if self._queue is queue:
                self._queue = None
                self._language = None
            logger.debug("Browser capture stream closed")

    async def stop(self) -> None:
        self.end()

    def push(self, chunk: TranscriptChunk) -> bool:
        """
        Deliver a transcript event from the browser.

        Returns:
            False if no stream is open and the event was dropped
        """
        return self._put(chunk)

    def end(self) -> bool:
        """The browser reported that recognition ended"""
        return self._put(_END, terminal=True)

    def fail(self, error_code: str) -> bool:
        """The browser reported a recognition error"""
        return self._put(CaptureError(error_code), terminal=True)

    def _put(self, event: _Event, terminal: bool = False) -> bool:
        queue = self._queue
        if queue is None:
            if not terminal:
                self.chunks_dropped += 1
            return False

        if terminal:
            # Nothing after the end of a stream belongs to it
            self._queue = None
            self._language = None

        if isinstance(event, TranscriptChunk):
            self.chunks_received += 1

        try:
            queue.put_nowait(event)
        except asyncio.QueueFull:
            # Drop the oldest event to keep up with the browser
            try:
                queue.get_nowait()
                self.chunks_dropped += 1
                queue.put_nowait(event)
            except asyncio.QueueEmpty:
                pass
        return True
