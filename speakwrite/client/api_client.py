"""HTTP client for the SpeakWrite API."""

import asyncio
import logging
from typing import Any, Dict, List, Optional, Type

import aiohttp

from ..errors import (
    SpeakWriteError,
    AuthenticationError,
    TranscriptionError,
    PersistenceError,
    ValidationError,
)

logger = logging.getLogger(__name__)


class ApiClient:
    """Talks to the SpeakWrite server on behalf of the recorder and the CLI."""

    def __init__(self, base_url: str, token: Optional[str] = None, timeout_seconds: float = 90.0):
        """Initialize API client.

        Args:
            base_url: Server root, e.g. ``http://127.0.0.1:8080``
            token: Bearer token from login or signup
            timeout_seconds: Total timeout per request
        """
        self.base_url = base_url.rstrip("/")
        self.token = token
        self.timeout = aiohttp.ClientTimeout(total=timeout_seconds)
        self._session: Optional[aiohttp.ClientSession] = None

    async def __aenter__(self) -> "ApiClient":
        return self

    async def __aexit__(self, *exc_info) -> None:
        await self.close()

    def _get_session(self) -> aiohttp.ClientSession:
        if self._session is None or self._session.closed:
            self._session = aiohttp.ClientSession(timeout=self.timeout)
        return self._session

    async def close(self) -> None:
        if self._session is not None and not self._session.closed:
            await self._session.close()

    def _headers(self) -> Dict[str, str]:
        if not self.token:
            return {}
        return {"Authorization": f"Bearer {self.token}"}

    async def _request(self, method: str, path: str,
                       error_type: Type[SpeakWriteError] = SpeakWriteError,
                       **kwargs) -> Dict[str, Any]:
        url = f"{self.base_url}{path}"
        try:
            async with self._get_session().request(method, url, headers=self._headers(), **kwargs) as response:
                text = await response.text()
                try:
                    payload = await response.json(content_type=None) if text else {}
                except ValueError:
                    payload = {"error": text}

                if response.status == 401:
                    raise AuthenticationError(payload.get("error") or "Not authenticated")
                if response.status == 400:
                    raise ValidationError(payload.get("error") or "Bad request")
                if response.status >= 300:
                    raise error_type(payload.get("error") or f"Request failed with status {response.status}")
                return payload
        except asyncio.TimeoutError as e:
            logger.error(f"{method} {path} timed out after {self.timeout.total}s")
            raise error_type(f"Request timed out after {self.timeout.total:g} seconds") from e
        except aiohttp.ClientError as e:
            logger.error(f"{method} {path} failed: {e}")
            raise error_type(f"Could not reach server: {e}") from e

    # Auth

    async def signup(self, email: str, password: str, name: Optional[str] = None) -> Dict[str, Any]:
        payload = await self._request("POST", "/api/auth/signup",
                                      json={"email": email, "password": password, "name": name})
        self.token = payload["token"]
        return payload

    async def login(self, email: str, password: str) -> Dict[str, Any]:
        payload = await self._request("POST", "/api/auth/login",
                                      json={"email": email, "password": password})
        self.token = payload["token"]
        return payload

    async def verify(self) -> Dict[str, Any]:
        payload = await self._request("GET", "/api/auth/verify")
        return payload["user"]

    # Transcription

    async def transcribe_chunk(self, audio: bytes, previous_text: str = "",
                               filename: str = "slice.wav") -> str:
        """Upload a streaming chunk and return its text.

        Raises:
            AuthenticationError: If the token was rejected
            TranscriptionError: If the server or remote service failed
        """
        form = aiohttp.FormData()
        form.add_field("audio", audio, filename=filename, content_type="audio/wav")
        form.add_field("isStreaming", "true")
        form.add_field("previousText", previous_text)

        payload = await self._request("POST", "/api/transcribe", error_type=TranscriptionError, data=form)
        return payload.get("transcription") or ""

    async def save_transcript(self, text: str, audio_size: int) -> str:
        """Store the final transcript without re-sending audio.

        Args:
            text: Merged draft
            audio_size: Bytes of audio captured, used for the duration estimate

        Raises:
            PersistenceError: If the server could not store it
        """
        form = aiohttp.FormData()
        form.add_field("audio", b"", filename="final.wav", content_type="audio/wav")
        form.add_field("isStreaming", "false")
        form.add_field("finalText", text)
        form.add_field("audioSize", str(audio_size))

        payload = await self._request("POST", "/api/transcribe", error_type=PersistenceError, data=form)
        return payload.get("transcription") or ""

    # History

    async def list_transcriptions(self) -> List[Dict[str, Any]]:
        payload = await self._request("GET", "/api/transcriptions")
        return payload["transcriptions"]

    async def delete_transcription(self, transcription_id: int) -> None:
        await self._request("DELETE", f"/api/transcriptions/{transcription_id}")

    # Dictionary

    async def list_words(self) -> List[Dict[str, Any]]:
        payload = await self._request("GET", "/api/dictionary")
        return payload["words"]

    async def add_word(self, word: str, pronunciation: Optional[str] = None) -> Dict[str, Any]:
        payload = await self._request("POST", "/api/dictionary",
                                      json={"word": word, "pronunciation": pronunciation})
        return payload["word"]

    async def delete_word(self, word_id: int) -> None:
        await self._request("DELETE", f"/api/dictionary/{word_id}")
