"""Text segmenter: splits long input into sentence-aligned segments.

The synthesis service only accepts short requests, so input text is cut
into segments no longer than a character budget.  Cuts only happen at
sentence boundaries:

1. Terminators are runs of ``.``, ``?``, ``!``, ``।`` (Bengali danda)
   or newline, and stay attached to the sentence they close.
2. Sentences accumulate into a chunk until the next one would push it
   past the budget; the chunk is then closed and a new one started.
3. A single sentence longer than the budget becomes its own segment.
   It is never truncated.
"""

from __future__ import annotations

import re
from dataclasses import dataclass

from longform_tts.logging import get_logger

logger = get_logger("text_segmenter")

# Capturing group keeps the terminator runs in the split output
_TERMINATOR_SPLIT_RE = re.compile(r"([.?!।\n]+)")


@dataclass(frozen=True)
class Segment:
    """One bounded slice of input text, 1-indexed in sequence order."""

    index: int
    text: str


def split_sentences(text: str) -> list[str]:
    """Split text into sentences with their trailing terminator runs attached."""
    parts = _TERMINATOR_SPLIT_RE.split(text)
    sentences: list[str] = []
    # parts alternates body, terminator, body, terminator, ..., body
    for i in range(0, len(parts), 2):
        body = parts[i]
        terminator = parts[i + 1] if i + 1 < len(parts) else ""
        if body or terminator:
            sentences.append(body + terminator)
    return sentences


def segment_text(text: str, limit: int) -> list[Segment]:
    """Split ``text`` into ordered segments of at most ``limit`` characters.

    Returns an empty list for empty or whitespace-only input; callers
    must treat that as a validation error.
    """
    if limit <= 0:
        raise ValueError(f"limit must be positive, got {limit}")

    chunks: list[str] = []
    current = ""

    for sentence in split_sentences(text):
        if current and len(current) + len(sentence) > limit:
            _close_chunk(chunks, current)
            current = ""
        current += sentence

    _close_chunk(chunks, current)

    segments = [Segment(index=i, text=chunk) for i, chunk in enumerate(chunks, start=1)]
    oversized = sum(1 for s in segments if len(s.text) > limit)
    if oversized:
        logger.warning(
            "%d segment(s) exceed the %d-char budget (single long sentence)",
            oversized,
            limit,
            extra={"segment_count": len(segments), "event": "segment_oversized"},
        )
    return segments


def _close_chunk(chunks: list[str], chunk: str) -> None:
    trimmed = chunk.strip()
    if trimmed:
        chunks.append(trimmed)
