from __future__ import annotations

import logging
from threading import Event, Thread

from transcript_worker.db.jobs import JobsRepository
from transcript_worker.pipeline import TranscriptionPipeline

logger = logging.getLogger(__name__)


class BackgroundWorker:
    def __init__(
        self,
        *,
        jobs: JobsRepository,
        pipeline: TranscriptionPipeline,
        poll_interval_seconds: int,
        concurrency: int = 2,
    ) -> None:
        self.jobs = jobs
        self.pipeline = pipeline
        self.poll_interval_seconds = poll_interval_seconds
        self._stop_event = Event()
        self._threads = [
            Thread(target=self._run_loop, name=f"transcript-worker-{slot}", daemon=True)
            for slot in range(max(1, concurrency))
        ]

    def start(self) -> None:
        for thread in self._threads:
            if not thread.is_alive():
                thread.start()

    def stop(self, timeout_seconds: float = 10.0) -> None:
        # Stops intake only; a job already running is left to finish.
        self._stop_event.set()
        for thread in self._threads:
            if thread.is_alive():
                thread.join(timeout=timeout_seconds)

    @property
    def is_running(self) -> bool:
        return any(thread.is_alive() for thread in self._threads) and not self._stop_event.is_set()

    def _run_loop(self) -> None:
        while not self._stop_event.is_set():
            job = self.jobs.claim_next()
            if job is None:
                self._stop_event.wait(self.poll_interval_seconds)
                continue

            self.process_job(job_id=str(job["id"]), url=str(job["url"]))

    def process_job(self, *, job_id: str, url: str) -> None:
        try:
            logger.info("Processing job %s for %s", job_id, url)
            chunks = self.pipeline.run(
                job_id=job_id,
                url=url,
                on_status=lambda status: self.jobs.set_status(job_id, status),
            )
        except Exception as exc:  # pylint: disable=broad-except
            message = self._failure_message(exc)
            logger.exception("Job %s failed: %s", job_id, message)
            self.jobs.mark_failed(job_id, message[:2000])
            return

        self.jobs.mark_completed(job_id, chunks)
        logger.info("Completed job %s with %d chunks", job_id, len(chunks))

    @staticmethod
    def _failure_message(exc: BaseException) -> str:
        message = str(exc).strip() or "Unknown worker error"
        stage = getattr(exc, "stage", None)
        if stage:
            return f"{stage.capitalize()} failed: {message}"
        return message
