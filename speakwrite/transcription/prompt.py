"""Prompt construction for the transcription model."""

from typing import Iterable

from ..models.transcription import DictionaryTerm

MAX_PROMPT_CHARS = 200
CONTEXT_WORDS = 10
PROMPT_SUFFIX = "Transcribe accurately, maintaining natural flow and punctuation."


def build_prompt(terms: Iterable[DictionaryTerm], previous_text: str = "", is_streaming: bool = False) -> str:
    """Build the free-text hint sent with each transcription request.

    Args:
        terms: The user's custom dictionary
        previous_text: Draft transcribed so far
        is_streaming: Previous context is only added for streaming chunks

    Returns:
        Prompt truncated to MAX_PROMPT_CHARS
    """
    prompt = ""
    hints = [term.hint for term in terms]
    if hints:
        prompt += f"Custom words: {', '.join(hints)}. "

    if previous_text and is_streaming:
        last_words = " ".join(previous_text.split()[-CONTEXT_WORDS:])
        if last_words:
            prompt += f"Previous context: {last_words}. "

    prompt += PROMPT_SUFFIX
    return prompt[:MAX_PROMPT_CHARS]
