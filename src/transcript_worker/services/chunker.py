"""Group timed words into caption-sized transcript chunks.

A chunk is closed when adding the next word would push it past either
``max_words`` words or ``max_duration_ms`` milliseconds, measured from the
chunk's first word start to the candidate word's end. Limits are only
checked against a non-empty chunk, so a single word is never split even
when it alone is longer than ``max_duration_ms``.
"""

from __future__ import annotations

import logging
import math
from collections.abc import Sequence

from transcript_worker.errors import SegmentationError
from transcript_worker.types import TranscriptChunk, Word

logger = logging.getLogger(__name__)


def to_milliseconds(seconds: float) -> int:
    # Half-up, not banker's rounding.
    return int(math.floor(seconds * 1000 + 0.5))


def _seconds(value: object, default: float) -> float:
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        return default
    if not math.isfinite(value):
        return default
    return float(value)


def _flush(words: list[Word], start_seconds: float) -> TranscriptChunk | None:
    text = " ".join(token for token in (word.text.strip() for word in words) if token)
    if not text:
        return None

    offset = to_milliseconds(start_seconds)
    last_start = _seconds(words[-1].start, 0.0)
    last_end = _seconds(words[-1].end, last_start)
    duration = max(0, to_milliseconds(last_end) - offset)
    return TranscriptChunk(text=text, offset=offset, duration=duration)


def create_transcript_chunks(
    words: Sequence[Word] | None,
    max_words: int,
    max_duration_ms: int,
) -> list[TranscriptChunk]:
    if max_words < 1 or max_duration_ms < 0:
        raise SegmentationError(
            f"Invalid chunk limits: max_words={max_words}, max_duration_ms={max_duration_ms}"
        )
    if not words:
        logger.debug("No words provided for chunking")
        return []

    chunks: list[TranscriptChunk] = []
    current: list[Word] = []
    current_start = 0.0

    for word in words:
        word_start = _seconds(word.start, 0.0)
        word_end_ms = to_milliseconds(_seconds(word.end, word_start))

        if current:
            next_count = len(current) + 1
            next_duration_ms = word_end_ms - to_milliseconds(current_start)
            if next_count > max_words or next_duration_ms > max_duration_ms:
                chunk = _flush(current, current_start)
                if chunk is not None:
                    chunks.append(chunk)
                current = [word]
                current_start = word_start
                continue
        else:
            current_start = word_start
        current.append(word)

    if current:
        chunk = _flush(current, current_start)
        if chunk is not None:
            chunks.append(chunk)

    logger.debug("Created %d chunks from %d words", len(chunks), len(words))
    return chunks
