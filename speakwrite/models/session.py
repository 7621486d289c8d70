"""Recording session models."""

from dataclasses import dataclass
from enum import Enum
from typing import Optional


class SessionState(Enum):
    """Lifecycle of a recording session."""
    IDLE = "idle"
    RECORDING = "recording"
    STOPPING = "stopping"


@dataclass
class SessionStatus:
    """Snapshot published to the display on every tick."""
    state: SessionState = SessionState.IDLE
    elapsed_seconds: int = 0
    draft: str = ""
    pending_uploads: int = 0
    peak_level: float = 0.0
    capture_error: Optional[str] = None


@dataclass
class SessionResult:
    """Outcome of stopping a session."""
    text: str
    audio_bytes: int
    saved: bool = False
    error: Optional[str] = None
    capture_error: Optional[str] = None
