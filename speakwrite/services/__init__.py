"""Services layer for SpeakWrite application logic."""

from .auth_service import AuthService
from .transcription_service import TranscriptionService, TranscriptionOutcome

__all__ = [
    "AuthService",
    "TranscriptionService",
    "TranscriptionOutcome",
]
