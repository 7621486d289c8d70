"""Merge partial transcripts into a running draft."""

import re
from typing import List

OVERLAP_PROBE_WORDS = 5

_WORD_CHARS = re.compile(r"[^\w']+")


def merge_transcript(draft: str, fragment: str, deduplicate: bool = False) -> str:
    """Combine a newly transcribed fragment with the draft so far.

    The last five words of the draft are used as an overlap probe. When the
    fragment does not contain the probe it is appended after a single space.
    When it does, the draft is stripped and the fragment is still appended
    whole: no words are removed unless ``deduplicate`` is set.

    Args:
        draft: Transcript accumulated so far (may be empty)
        fragment: Text returned for the latest audio chunk
        deduplicate: Drop the longest run of leading fragment words that
            repeats the draft's trailing words

    Returns:
        Updated draft
    """
    if not fragment:
        return draft
    if not draft:
        return fragment

    if deduplicate:
        fragment = _drop_repeated_prefix(draft, fragment)
        if not fragment:
            return draft

    probe = " ".join(draft.split()[-OVERLAP_PROBE_WORDS:])
    if probe.lower() not in fragment.lower():
        return draft + " " + fragment

    # Likely repeated tail; kept as-is
    return draft.strip() + " " + fragment


def _normalize(word: str) -> str:
    return _WORD_CHARS.sub("", word.lower())


def _drop_repeated_prefix(draft: str, fragment: str) -> str:
    """Remove fragment words that repeat the end of the draft."""
    tail: List[str] = [_normalize(w) for w in draft.split()]
    words = fragment.split()
    head = [_normalize(w) for w in words]

    for size in range(min(len(tail), len(head)), 0, -1):
        if tail[-size:] == head[:size]:
            return " ".join(words[size:])
    return fragment
