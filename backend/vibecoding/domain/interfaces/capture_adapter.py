"""
Capture Adapter Interface
Abstract base class for speech-to-text transcript sources
"""
from abc import ABC, abstractmethod
from typing import AsyncIterator

from vibecoding.domain.models.conversation import TranscriptChunk


class CaptureAdapter(ABC):
    """Abstract base class for continuous speech recognition streams"""

    @abstractmethod
    def stream(self, language: str = "en-US") -> AsyncIterator[TranscriptChunk]:
        """
        Open a recognition stream and yield transcript events.

        The iterator ends when the stream ends (silence, stop, cancel).

        Args:
            language: Recognition locale (BCP-47)

        Yields:
            TranscriptChunk: Interim or final transcripts

        Raises:
            CaptureError: Recognition failed for a reason other than silence
        """
        pass

    @abstractmethod
    async def stop(self) -> None:
        """End the current stream, if any"""
        pass

    @property
    @abstractmethod
    def is_active(self) -> bool:
        """Whether a stream is currently open"""
        pass

    @property
    @abstractmethod
    def name(self) -> str:
        """Adapter name"""
        pass
