from pathlib import Path

from transcript_worker.db.database import Database
from transcript_worker.db.jobs import JobsRepository
from transcript_worker.types import TranscriptChunk


def test_job_lifecycle(tmp_path: Path) -> None:
    db = Database(tmp_path / "test.sqlite3")
    jobs = JobsRepository(db)

    created = jobs.enqueue("https://example.com/v/1")
    assert created["status"] == "queued"
    assert created["result"] is None

    claimed = jobs.claim_next()
    assert claimed is not None
    assert claimed["status"] == "acquiring"
    assert claimed["started_at"] is not None
    assert jobs.claim_next() is None

    jobs.set_status(str(claimed["id"]), "transcribing")
    transcribing = jobs.get(str(claimed["id"]))
    assert transcribing is not None
    assert transcribing["status"] == "transcribing"

    jobs.mark_completed(str(claimed["id"]), [TranscriptChunk(text="hello", offset=0, duration=400)])
    completed = jobs.get(str(claimed["id"]))
    assert completed is not None
    assert completed["status"] == "completed"
    assert completed["result"] == [{"text": "hello", "offset": 0, "duration": 400}]


def test_claim_order_and_failure(tmp_path: Path) -> None:
    db = Database(tmp_path / "test.sqlite3")
    jobs = JobsRepository(db)

    first = jobs.enqueue("https://example.com/1")
    second = jobs.enqueue("https://example.com/2")

    claimed = jobs.claim_next()
    assert claimed is not None and claimed["id"] == first["id"]

    jobs.mark_failed(str(first["id"]), "Acquisition failed: yt-dlp reported: Private video")
    failed = jobs.get(str(first["id"]))
    assert failed is not None
    assert failed["status"] == "failed"
    assert failed["error"] == "Acquisition failed: yt-dlp reported: Private video"

    next_claim = jobs.claim_next()
    assert next_claim is not None and next_claim["id"] == second["id"]
    assert jobs.get("missing") is None
