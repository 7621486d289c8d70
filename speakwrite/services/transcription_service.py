"""Transcription service that turns uploaded audio into text and saved records."""

import asyncio
import functools
import logging
from dataclasses import dataclass
from typing import Any, Callable, Optional

from ..errors import ValidationError
from ..models.transcription import TranscriptRecord
from ..storage.record_store import RecordStore
from ..transcription.base import AbstractTranscriptionBackend
from ..transcription.prompt import build_prompt

logger = logging.getLogger(__name__)

MIN_AUDIO_BYTES = 1024
# Fixed estimate; 16 kHz 16-bit mono PCM is really 32000 bytes per second
BYTES_PER_SECOND_ESTIMATE = 16000


def estimate_duration(audio_size: int) -> int:
    """Rough duration in whole seconds from an audio byte count."""
    return max(audio_size, 0) // BYTES_PER_SECOND_ESTIMATE


@dataclass
class TranscriptionOutcome:
    """Text produced for a request, plus the record if one was saved."""
    text: str
    record: Optional[TranscriptRecord] = None


class TranscriptionService:
    """Validates transcription requests, calls the backend and saves final transcripts."""

    def __init__(self, backend: AbstractTranscriptionBackend, store: RecordStore):
        """Initialize transcription service.

        Args:
            backend: Remote transcription backend
            store: Record store for dictionaries and saved transcripts
        """
        self.backend = backend
        self.store = store

    async def _in_executor(self, func: Callable[..., Any], *args) -> Any:
        # The record store does synchronous JSON file I/O
        loop = asyncio.get_running_loop()
        return await loop.run_in_executor(None, functools.partial(func, *args))

    async def transcribe(self,
                         user_id: int,
                         audio: Optional[bytes],
                         filename: str = "audio.webm",
                         is_streaming: bool = False,
                         previous_text: str = "",
                         final_text: str = "",
                         audio_size: Optional[int] = None) -> TranscriptionOutcome:
        """Handle one upload from a recorder.

        Args:
            user_id: Authenticated user
            audio: Uploaded audio file bytes (may be empty for final saves)
            filename: Uploaded file name
            is_streaming: True for partial chunks, False for a final save
            previous_text: Draft so far, used as prompt context
            final_text: Pre-merged transcript to store without transcribing
            audio_size: Captured audio size for the duration estimate;
                defaults to the length of ``audio``

        Returns:
            TranscriptionOutcome with the recognized or stored text

        Raises:
            ValidationError: If there is no audio to transcribe
            ServiceUnavailableError: If the backend has no credentials
            TranscriptionError: If the remote service fails
            PersistenceError: If saving the record fails
        """
        audio = audio or b""
        size_for_duration = len(audio) if audio_size is None else audio_size

        if final_text and not is_streaming:
            record = await self._in_executor(
                self.store.create_record, user_id, final_text, estimate_duration(size_for_duration))
            logger.info(f"Saved final transcript for user {user_id} without transcribing")
            return TranscriptionOutcome(text=final_text, record=record)

        if not audio:
            raise ValidationError("Audio file is required and must not be empty")

        if len(audio) < MIN_AUDIO_BYTES:
            logger.warning(f"Audio file too small: {len(audio)} bytes, skipping transcription call")
            return TranscriptionOutcome(text="")

        terms = await self._in_executor(self.store.list_terms, user_id)
        prompt = build_prompt(terms, previous_text, is_streaming)

        text = await self.backend.transcribe(audio, filename, prompt)

        record = None
        if not is_streaming and text:
            record = await self._in_executor(
                self.store.create_record, user_id, text, estimate_duration(size_for_duration))

        return TranscriptionOutcome(text=text, record=record)
