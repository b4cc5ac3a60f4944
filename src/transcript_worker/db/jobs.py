from __future__ import annotations

import json
import uuid
from collections.abc import Sequence
from typing import Any

from transcript_worker.db.database import Database
from transcript_worker.types import JobStatus, TranscriptChunk


class JobsRepository:
    def __init__(self, db: Database) -> None:
        self.db = db

    def enqueue(self, url: str) -> dict[str, Any]:
        job_id = str(uuid.uuid4())
        with self.db.lock:
            self.db.conn.execute(
                "INSERT INTO jobs(id, url, status) VALUES (?, ?, 'queued')",
                (job_id, url),
            )
            self.db.conn.commit()

        job = self.get(job_id)
        if job is None:
            raise RuntimeError("Failed to create job")
        return job

    def get(self, job_id: str) -> dict[str, Any] | None:
        with self.db.lock:
            row = self.db.conn.execute("SELECT * FROM jobs WHERE id = ?", (job_id,)).fetchone()
        if row is None:
            return None
        job = dict(row)
        job["result"] = json.loads(job["result"]) if job.get("result") else None
        return job

    def claim_next(self) -> dict[str, Any] | None:
        with self.db.lock:
            self.db.conn.execute("BEGIN IMMEDIATE")
            row = self.db.conn.execute(
                """
                SELECT id FROM jobs
                WHERE status = 'queued'
                ORDER BY created_at ASC, rowid ASC
                LIMIT 1
                """
            ).fetchone()
            if row is None:
                self.db.conn.commit()
                return None

            job_id = row["id"]
            self.db.conn.execute(
                """
                UPDATE jobs
                SET status = 'acquiring', started_at = datetime('now')
                WHERE id = ?
                """,
                (job_id,),
            )
            self.db.conn.commit()

        return self.get(str(job_id))

    def set_status(self, job_id: str, status: JobStatus) -> None:
        with self.db.lock:
            self.db.conn.execute("UPDATE jobs SET status = ? WHERE id = ?", (status, job_id))
            self.db.conn.commit()

    def mark_completed(self, job_id: str, chunks: Sequence[TranscriptChunk]) -> None:
        result = json.dumps([chunk.as_dict() for chunk in chunks])
        with self.db.lock:
            self.db.conn.execute(
                """
                UPDATE jobs
                SET status = 'completed', completed_at = datetime('now'), result = ?, error = NULL
                WHERE id = ?
                """,
                (result, job_id),
            )
            self.db.conn.commit()

    def mark_failed(self, job_id: str, error: str) -> None:
        with self.db.lock:
            self.db.conn.execute(
                """
                UPDATE jobs
                SET status = 'failed', completed_at = datetime('now'), error = ?, result = NULL
                WHERE id = ?
                """,
                (error, job_id),
            )
            self.db.conn.commit()
