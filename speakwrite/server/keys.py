"""Application keys for services shared by the handlers."""

from aiohttp import web

from ..services.auth_service import AuthService
from ..services.transcription_service import TranscriptionService
from ..storage.record_store import RecordStore
from ..transcription.base import AbstractTranscriptionBackend

STORE_KEY = web.AppKey("store", RecordStore)
AUTH_KEY = web.AppKey("auth", AuthService)
TRANSCRIPTION_KEY = web.AppKey("transcription", TranscriptionService)
BACKEND_KEY = web.AppKey("backend", AbstractTranscriptionBackend)
