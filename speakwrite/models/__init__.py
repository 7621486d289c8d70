"""Data models for the SpeakWrite application."""

from .audio import AudioChunk
from .session import SessionState, SessionStatus, SessionResult
from .transcription import TranscriptRecord, DictionaryTerm
from .user import User, TokenPayload

__all__ = [
    "AudioChunk",
    "SessionState",
    "SessionStatus",
    "SessionResult",
    "TranscriptRecord",
    "DictionaryTerm",
    "User",
    "TokenPayload",
]
