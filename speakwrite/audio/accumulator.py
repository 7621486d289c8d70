"""Chunk accumulator that batches undersized audio chunks for upload."""

import logging
from typing import List, Optional

from ..models.audio import AudioChunk

logger = logging.getLogger(__name__)

MIN_UPLOAD_BYTES = 80000
MIN_FLUSH_BYTES = 1024


class ChunkAccumulator:
    """Holds small chunks until together they are large enough to transcribe."""

    def __init__(self, min_bytes: int = MIN_UPLOAD_BYTES, flush_min_bytes: int = MIN_FLUSH_BYTES):
        """Initialize chunk accumulator.

        Args:
            min_bytes: Held chunks are released once their total reaches this size.
                Any single chunk at least this large is released on its own.
            flush_min_bytes: Residual audio smaller than this is dropped at flush.
        """
        self.min_bytes = min_bytes
        self.flush_min_bytes = flush_min_bytes

        self.chunks: List[AudioChunk] = []
        self.pending_bytes = 0

        logger.debug(f"ChunkAccumulator initialized: min_bytes={min_bytes}, "
                     f"flush_min_bytes={flush_min_bytes}")

    @property
    def pending_chunks(self) -> int:
        return len(self.chunks)

    def add_chunk(self, chunk: AudioChunk) -> Optional[bytes]:
        """Add a chunk and return a blob if one is ready for transcription.

        Args:
            chunk: Newly captured audio chunk

        Returns:
            The chunk's data if it is large enough on its own, the concatenation
            of all held chunks once their total reaches ``min_bytes``, else None
        """
        if chunk.size == 0:
            return None

        if chunk.size >= self.min_bytes:
            logger.debug(f"Chunk {chunk.sequence_number} ({chunk.size} bytes) emitted directly")
            return chunk.data

        self.chunks.append(chunk)
        self.pending_bytes += chunk.size

        if self.pending_bytes < self.min_bytes:
            logger.debug(f"Holding chunk {chunk.sequence_number}: "
                         f"{self.pending_bytes}/{self.min_bytes} bytes buffered")
            return None

        blob = self._take()
        logger.debug(f"Emitting {len(blob)} bytes of accumulated audio")
        return blob

    def flush(self) -> Optional[bytes]:
        """Release whatever is held at the end of a session.

        Returns:
            The held audio if it is at least ``flush_min_bytes``, else None.
            The buffer is cleared either way.
        """
        if not self.chunks:
            return None

        blob = self._take()
        if len(blob) < self.flush_min_bytes:
            logger.debug(f"Discarding {len(blob)} residual bytes (< {self.flush_min_bytes})")
            return None

        logger.debug(f"Flushing {len(blob)} residual bytes")
        return blob

    def _take(self) -> bytes:
        blob = b''.join(chunk.data for chunk in self.chunks)
        self.clear()
        return blob

    def clear(self) -> None:
        """Drop all held chunks."""
        self.chunks.clear()
        self.pending_bytes = 0
