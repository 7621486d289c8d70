"""Transcription backends, prompt building and transcript merging."""

from .base import AbstractTranscriptionBackend
from .groq_backend import GroqTranscriptionBackend
from .merge import merge_transcript
from .prompt import build_prompt

__all__ = [
    "AbstractTranscriptionBackend",
    "GroqTranscriptionBackend",
    "merge_transcript",
    "build_prompt",
]
