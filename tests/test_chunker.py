import pytest

from transcript_worker.errors import SegmentationError
from transcript_worker.services.chunker import create_transcript_chunks, to_milliseconds
from transcript_worker.types import TranscriptChunk, Word


def _spaced_words(count: int, step: float = 0.1) -> list[Word]:
    return [Word(text=f"w{i}", start=i * step, end=(i + 1) * step) for i in range(count)]


def test_single_short_phrase() -> None:
    words = [Word("the", 0.0, 0.2), Word("quick", 0.2, 0.5), Word("fox", 0.5, 0.9)]
    chunks = create_transcript_chunks(words, max_words=15, max_duration_ms=6000)
    assert chunks == [TranscriptChunk(text="the quick fox", offset=0, duration=900)]


def test_word_count_split() -> None:
    words = [Word(text=f"w{i}", start=i / 10, end=(i + 1) / 10) for i in range(20)]
    chunks = create_transcript_chunks(words, max_words=5, max_duration_ms=6000)
    assert [chunk.offset for chunk in chunks] == [0, 500, 1000, 1500]
    assert all(len(chunk.text.split()) == 5 for chunk in chunks)
    assert chunks[0].text == "w0 w1 w2 w3 w4"
    assert chunks[0].duration == 500


def test_single_word_longer_than_limit_is_kept_whole() -> None:
    chunks = create_transcript_chunks([Word("x", 10.0, 10.05)], max_words=15, max_duration_ms=10)
    assert chunks == [TranscriptChunk(text="x", offset=10000, duration=50)]


def test_empty_input() -> None:
    assert create_transcript_chunks([], max_words=15, max_duration_ms=6000) == []
    assert create_transcript_chunks(None, max_words=15, max_duration_ms=6000) == []


def test_duration_split_starts_new_chunk_at_word_start() -> None:
    words = [Word("a", 0.0, 1.0), Word("b", 1.0, 2.0), Word("c", 2.5, 3.5)]
    chunks = create_transcript_chunks(words, max_words=15, max_duration_ms=2000)
    assert chunks == [
        TranscriptChunk(text="a b", offset=0, duration=2000),
        TranscriptChunk(text="c", offset=2500, duration=1000),
    ]


def test_duration_at_limit_does_not_split() -> None:
    words = [Word("a", 0.0, 1.0), Word("b", 1.0, 2.0)]
    chunks = create_transcript_chunks(words, max_words=2, max_duration_ms=2000)
    assert len(chunks) == 1


def test_blank_words_are_dropped_from_text() -> None:
    words = [Word(" ", 0.0, 0.1), Word("", 0.1, 0.2), Word("hi", 0.3, 0.4), Word("", 0.5, 0.6)]
    chunks = create_transcript_chunks(words, max_words=2, max_duration_ms=6000)
    assert chunks == [TranscriptChunk(text="hi", offset=300, duration=300)]


def test_invalid_timestamps_are_defaulted() -> None:
    words = [Word("a", float("nan"), 0.5), Word("b", 0.5, float("nan"))]
    chunks = create_transcript_chunks(words, max_words=15, max_duration_ms=6000)
    assert chunks == [TranscriptChunk(text="a b", offset=0, duration=500)]


def test_end_before_start_floors_duration_at_zero() -> None:
    chunks = create_transcript_chunks([Word("a", 2.0, 1.0)], max_words=15, max_duration_ms=6000)
    assert chunks == [TranscriptChunk(text="a", offset=2000, duration=0)]


def test_chunks_respect_limits_and_preserve_text() -> None:
    words = _spaced_words(137, step=0.37)
    chunks = create_transcript_chunks(words, max_words=7, max_duration_ms=1500)

    assert " ".join(chunk.text for chunk in chunks) == " ".join(word.text for word in words)
    for chunk in chunks:
        assert chunk.offset >= 0
        assert chunk.duration >= 0
        assert len(chunk.text.split()) <= 7
        assert chunk.duration <= 1500


def test_segmentation_is_deterministic() -> None:
    words = _spaced_words(50, step=0.23)
    first = create_transcript_chunks(words, max_words=4, max_duration_ms=800)
    second = create_transcript_chunks(words, max_words=4, max_duration_ms=800)
    assert first == second


def test_to_milliseconds_rounds_half_up() -> None:
    assert to_milliseconds(0.0625) == 63
    assert to_milliseconds(0.3125) == 313
    assert to_milliseconds(10.05) == 10050


def test_invalid_limits_are_rejected() -> None:
    with pytest.raises(SegmentationError):
        create_transcript_chunks([Word("a", 0.0, 1.0)], max_words=0, max_duration_ms=6000)
