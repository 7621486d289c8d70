"""Transcription-related data models."""

from dataclasses import dataclass, field
from datetime import datetime
from typing import Optional, Dict, Any


@dataclass(frozen=True)
class TranscriptRecord:
    """A saved transcript."""
    id: int
    user_id: int
    content: str
    duration_seconds: int  # bytes / 16000, not measured playback time
    created_at: datetime

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "user_id": self.user_id,
            "content": self.content,
            "duration_seconds": self.duration_seconds,
            "created_at": self.created_at.isoformat(),
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "TranscriptRecord":
        return cls(
            id=data["id"],
            user_id=data["user_id"],
            content=data["content"],
            duration_seconds=data["duration_seconds"],
            created_at=datetime.fromisoformat(data["created_at"]),
        )


@dataclass
class DictionaryTerm:
    """A custom word, optionally with the spelling the transcriber should use."""
    id: int
    user_id: int
    word: str
    pronunciation: Optional[str] = None
    created_at: datetime = field(default_factory=datetime.now)

    @property
    def hint(self) -> str:
        """Spelling to feed the transcription prompt."""
        return self.pronunciation or self.word

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "user_id": self.user_id,
            "word": self.word,
            "pronunciation": self.pronunciation,
            "created_at": self.created_at.isoformat(),
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "DictionaryTerm":
        return cls(
            id=data["id"],
            user_id=data["user_id"],
            word=data["word"],
            pronunciation=data.get("pronunciation"),
            created_at=datetime.fromisoformat(data["created_at"]),
        )
