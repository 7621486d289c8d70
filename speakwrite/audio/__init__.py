"""Audio capture and chunk batching."""

from .accumulator import ChunkAccumulator
from .wav import encode_wav

__all__ = [
    'ChunkAccumulator',
    'encode_wav',
]
