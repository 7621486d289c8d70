"""Abstract base classes for transcription backends."""

from abc import ABC, abstractmethod
import logging

logger = logging.getLogger(__name__)


class AbstractTranscriptionBackend(ABC):
    """Abstract base class for remote transcription backends."""

    @property
    @abstractmethod
    def is_configured(self) -> bool:
        """True when the backend has the credentials it needs."""

    @abstractmethod
    async def transcribe(self, audio: bytes, filename: str, prompt: str = "") -> str:
        """Transcribe an audio file and return the recognized text.

        Args:
            audio: Encoded audio file (WAV, WebM, ...)
            filename: File name sent with the upload; its extension tells the
                service the container format
            prompt: Free-text hint for the model

        Returns:
            Recognized text (possibly empty)

        Raises:
            TranscriptionError: If the service rejects the request
        """

    async def close(self) -> None:
        """Release backend resources."""
