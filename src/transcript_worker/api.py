from __future__ import annotations

import json
from typing import Any

from fastmcp import FastMCP
from mcp.types import ToolAnnotations
from starlette.requests import Request
from starlette.responses import JSONResponse

from transcript_worker.db.jobs import JobsRepository

MISSING_URL_ERROR = 'Missing or invalid "url" in request body'


def describe_job(job: dict[str, Any]) -> dict[str, Any]:
    status = str(job.get("status", ""))
    if status == "completed":
        return {"status": "success", "content": job.get("result") or []}
    if status == "failed":
        return {"status": "error", "error": job.get("error") or "Job failed with an unknown error"}
    return {"status": "processing"}


class ToolRegistry:
    def __init__(self, jobs: JobsRepository) -> None:
        self.jobs = jobs

    def submit(self, url: object) -> dict[str, Any] | None:
        if not isinstance(url, str) or not url.strip():
            return None
        job = self.jobs.enqueue(url.strip())
        return {"jobId": job["id"], "status": job["status"]}

    def result(self, job_id: str) -> dict[str, Any] | None:
        job = self.jobs.get(job_id)
        if job is None:
            return None
        return describe_job(job)

    def register(self, mcp: FastMCP) -> None:
        @mcp.tool(annotations=ToolAnnotations(readOnlyHint=False, idempotentHint=False))
        def transcribe(url: str) -> dict[str, Any]:
            """Queue a video or audio URL for transcription into caption chunks."""
            submitted = self.submit(url)
            if submitted is None:
                return {"error": MISSING_URL_ERROR}
            return submitted

        @mcp.tool(annotations=ToolAnnotations(readOnlyHint=True))
        def transcription_result(job_id: str) -> dict[str, Any]:
            """Get the state of a transcription job, with its chunks once completed."""
            described = self.result(job_id)
            if described is None:
                return {"error": "job_not_found", "job_id": job_id}
            return described

        @mcp.custom_route("/transcribe", methods=["POST"])
        async def submit_route(request: Request) -> JSONResponse:
            try:
                body = await request.json()
            except (json.JSONDecodeError, UnicodeDecodeError):
                body = None
            url = body.get("url") if isinstance(body, dict) else None
            submitted = self.submit(url)
            if submitted is None:
                return JSONResponse({"error": MISSING_URL_ERROR}, status_code=400)
            return JSONResponse({"jobId": submitted["jobId"]})

        @mcp.custom_route("/getTranscriptionResult/{job_id}", methods=["GET"])
        async def result_route(request: Request) -> JSONResponse:
            job_id = request.path_params["job_id"]
            described = self.result(job_id)
            if described is None:
                return JSONResponse({"error": f"Job with ID {job_id} not found."}, status_code=404)
            return JSONResponse(described)
