from __future__ import annotations

import logging
from collections.abc import Callable, Iterator
from contextlib import contextmanager

from transcript_worker.config import Settings
from transcript_worker.errors import AcquisitionError
from transcript_worker.services.chunker import create_transcript_chunks
from transcript_worker.services.downloader import AcquisitionEngine, build_acquisition_engine
from transcript_worker.services.scratch import ScratchFiles
from transcript_worker.services.transcriber import WhisperTranscriber
from transcript_worker.types import JobStatus, TranscriptChunk
from transcript_worker.utils.url import classify_url

logger = logging.getLogger(__name__)

StatusCallback = Callable[[JobStatus], None]


@contextmanager
def scratch_files(job_id: str) -> Iterator[ScratchFiles]:
    scratch = ScratchFiles(job_id)
    try:
        yield scratch
    finally:
        scratch.release()


class TranscriptionPipeline:
    """Runs one job: classify, acquire, transcribe, segment.

    Any temporary file created during acquisition is removed once the job
    finishes, whether it succeeded or failed. Cleanup problems are logged and
    never replace the job's own result or error.
    """

    def __init__(
        self,
        *,
        acquisition: AcquisitionEngine,
        transcriber: WhisperTranscriber,
        max_words_per_chunk: int,
        max_duration_ms: int,
    ) -> None:
        self.acquisition = acquisition
        self.transcriber = transcriber
        self.max_words_per_chunk = max_words_per_chunk
        self.max_duration_ms = max_duration_ms

    def run(self, *, job_id: str, url: str, on_status: StatusCallback | None = None) -> list[TranscriptChunk]:
        notify = on_status or (lambda _status: None)
        source = classify_url(url)
        logger.info("Job %s: %s classified as %s", job_id, url, source.kind)

        with scratch_files(job_id) as scratch:
            notify("acquiring")
            acquired = self.acquisition.acquire(source, job_id=job_id, scratch=scratch)
            audio_input = acquired.transcription_input
            if audio_input is None:
                raise AcquisitionError("No audio input resolved for transcription")

            notify("transcribing")
            transcription = self.transcriber.transcribe(audio_input, job_id=job_id)

            notify("segmenting")
            chunks = create_transcript_chunks(
                transcription.words,
                self.max_words_per_chunk,
                self.max_duration_ms,
            )

        logger.info("Job %s: produced %d chunks", job_id, len(chunks))
        return chunks


def build_pipeline(settings: Settings) -> TranscriptionPipeline:
    transcriber = WhisperTranscriber(
        api_key=settings.groq_api_key,
        api_url=settings.groq_api_url,
        model=settings.whisper_model,
        timeout_seconds=settings.transcribe_timeout_seconds,
    )
    return TranscriptionPipeline(
        acquisition=build_acquisition_engine(settings),
        transcriber=transcriber,
        max_words_per_chunk=settings.max_words_per_chunk,
        max_duration_ms=settings.max_duration_ms,
    )
