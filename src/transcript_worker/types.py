from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path
from typing import Literal

JobStatus = Literal["queued", "acquiring", "transcribing", "segmenting", "completed", "failed"]
SourceKind = Literal["video", "generic"]
GenericUrlMode = Literal["download", "passthrough"]


@dataclass(frozen=True, slots=True)
class ClassifiedUrl:
    kind: SourceKind
    url: str
    video_id: str | None = None


@dataclass(frozen=True, slots=True)
class AcquisitionResult:
    """Audio input for the transcriber: a local file we own, or a URL forwarded as-is."""

    audio_path: Path | None = None
    remote_url: str | None = None

    @property
    def needs_cleanup(self) -> bool:
        return self.audio_path is not None

    @property
    def transcription_input(self) -> Path | str | None:
        if self.audio_path is not None:
            return self.audio_path
        return self.remote_url


@dataclass(slots=True)
class Word:
    text: str
    start: float
    end: float


@dataclass(slots=True)
class TranscriptionResult:
    text: str
    words: list[Word] = field(default_factory=list)


@dataclass(frozen=True, slots=True)
class TranscriptChunk:
    text: str
    offset: int
    duration: int

    def as_dict(self) -> dict[str, object]:
        return {"text": self.text, "offset": self.offset, "duration": self.duration}
