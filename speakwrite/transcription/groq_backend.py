"""Groq Whisper transcription backend."""

import json
import asyncio
import time
import logging
from typing import Optional

import aiohttp

from .base import AbstractTranscriptionBackend
from ..errors import TranscriptionError, ServiceUnavailableError

logger = logging.getLogger(__name__)

GROQ_API_URL = "https://api.groq.com/openai/v1/audio/transcriptions"
DEFAULT_MODEL = "whisper-large-v3-turbo"

UNSUPPORTED_FORMAT_MESSAGE = "Audio file format not supported. Please try recording again."
_UNSUPPORTED_FORMAT_MARKERS = ("could not process file", "valid media file")


def describe_remote_error(error_text: str) -> str:
    """Turn a remote error body into a message fit for the user.

    JSON bodies contribute their ``error.message``; other bodies are used
    verbatim. Known media-format failures get a clearer message.
    """
    message = "Failed to transcribe audio"
    try:
        error_json = json.loads(error_text)
    except ValueError:
        return error_text or message

    error = error_json.get("error") if isinstance(error_json, dict) else None
    if isinstance(error, dict) and error.get("message"):
        message = error["message"]
        if any(marker in message for marker in _UNSUPPORTED_FORMAT_MARKERS):
            message = UNSUPPORTED_FORMAT_MESSAGE
    return message


class GroqTranscriptionBackend(AbstractTranscriptionBackend):
    """Sends audio to Groq's OpenAI-compatible transcription endpoint."""

    def __init__(self,
                 api_key: Optional[str],
                 model: str = DEFAULT_MODEL,
                 api_url: str = GROQ_API_URL,
                 timeout_seconds: float = 60.0):
        """Initialize Groq backend.

        Args:
            api_key: Groq API key; requests fail with 503 without one
            model: Model identifier
            api_url: Transcription endpoint
            timeout_seconds: Total timeout per request
        """
        self.api_key = api_key
        self.model = model
        self.api_url = api_url
        self.timeout = aiohttp.ClientTimeout(total=timeout_seconds)
        self.service_name = "Groq Whisper"
        self._session: Optional[aiohttp.ClientSession] = None

        if not api_key:
            logger.warning("GROQ_API_KEY is not set. Transcription features will not work.")
        else:
            logger.info(f"GroqTranscriptionBackend initialized with model: {model}")

    @property
    def is_configured(self) -> bool:
        return bool(self.api_key)

    def _get_session(self) -> aiohttp.ClientSession:
        if self._session is None or self._session.closed:
            self._session = aiohttp.ClientSession(timeout=self.timeout)
        return self._session

    async def transcribe(self, audio: bytes, filename: str, prompt: str = "") -> str:
        """Transcribe audio using Groq."""
        if not self.is_configured:
            raise ServiceUnavailableError("Transcription service is not configured. Please contact support.")

        form = aiohttp.FormData()
        form.add_field("file", audio, filename=filename or "audio.webm",
                       content_type="application/octet-stream")
        form.add_field("model", self.model)
        form.add_field("response_format", "text")
        if prompt:
            form.add_field("prompt", prompt)

        headers = {"Authorization": f"Bearer {self.api_key}"}

        logger.info(f"Sending audio to Groq: size={len(audio)} bytes, name={filename}")
        start_time = time.time()
        try:
            async with self._get_session().post(self.api_url, data=form, headers=headers) as response:
                if response.status != 200:
                    error_text = await response.text()
                    logger.error(f"Groq error {response.status}: {error_text}")
                    raise TranscriptionError(describe_remote_error(error_text))

                content_type = response.headers.get("Content-Type", "")
                if "application/json" in content_type:
                    result = await response.json()
                    text = result if isinstance(result, str) else (result.get("text") or "")
                else:
                    text = await response.text()
        except (aiohttp.ClientError, asyncio.TimeoutError) as e:
            logger.error(f"Groq request failed: {e}")
            raise TranscriptionError("Failed to transcribe audio") from e

        text = text.strip()
        logger.debug(f"Transcribed {len(audio)} bytes in {time.time() - start_time:.3f}s: '{text[:50]}'")
        return text

    async def close(self) -> None:
        if self._session is not None and not self._session.closed:
            await self._session.close()
