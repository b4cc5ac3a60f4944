from __future__ import annotations

import atexit
import logging
import sys

from fastmcp import FastMCP
from starlette.requests import Request
from starlette.responses import JSONResponse

from transcript_worker.api import ToolRegistry
from transcript_worker.config import Settings, load_settings
from transcript_worker.db.database import Database
from transcript_worker.db.jobs import JobsRepository
from transcript_worker.errors import ConfigurationError
from transcript_worker.pipeline import build_pipeline
from transcript_worker.worker import BackgroundWorker

logging.basicConfig(level=logging.INFO, format="%(asctime)s %(levelname)s %(name)s - %(message)s")
logger = logging.getLogger(__name__)


class AppRuntime:
    def __init__(self, settings: Settings) -> None:
        self.settings = settings
        self.database = Database(settings.database_path)
        self.jobs = JobsRepository(self.database)
        self.pipeline = build_pipeline(settings)
        self.worker = BackgroundWorker(
            jobs=self.jobs,
            pipeline=self.pipeline,
            poll_interval_seconds=settings.poll_interval_seconds,
            concurrency=settings.worker_concurrency,
        )
        self._closed = False

    def close(self) -> None:
        if self._closed:
            return
        self._closed = True
        logger.info("Shutting down worker")
        self.worker.stop()
        self.database.close()
        logger.info("Worker shutdown complete")


def create_app(runtime: AppRuntime) -> FastMCP:
    mcp = FastMCP(name="transcript-worker")

    tools = ToolRegistry(runtime.jobs)
    tools.register(mcp)

    @mcp.custom_route(runtime.settings.health_path, methods=["GET"])
    async def health(_: Request) -> JSONResponse:
        return JSONResponse(
            {
                "ok": True,
                "worker_running": runtime.worker.is_running,
                "concurrency": runtime.settings.worker_concurrency,
                "model": runtime.settings.whisper_model,
                "generic_url_mode": runtime.settings.generic_url_mode,
                "mcp_path": runtime.settings.mcp_path,
            }
        )

    return mcp


def cli() -> None:
    try:
        settings = load_settings()
    except ConfigurationError as exc:
        logger.error("FATAL: %s", exc)
        sys.exit(1)

    runtime = AppRuntime(settings)
    runtime.worker.start()
    atexit.register(runtime.close)

    app = create_app(runtime)
    logger.info(
        "Starting server on %s:%s (%d worker slots)",
        settings.host,
        settings.port,
        settings.worker_concurrency,
    )
    app.run(
        transport="http",
        host=settings.host,
        port=settings.port,
        path=settings.mcp_path,
    )


if __name__ == "__main__":
    cli()
