"""Audio-related data models."""

from dataclasses import dataclass


@dataclass
class AudioChunk:
    """A segment of encoded audio handed out by the capture source."""
    data: bytes
    timestamp: float  # Time when this chunk was emitted
    sequence_number: int

    @property
    def size(self) -> int:
        return len(self.data)
