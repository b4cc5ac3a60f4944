from __future__ import annotations

import os
import tempfile
from dataclasses import dataclass
from pathlib import Path

from dotenv import load_dotenv

from transcript_worker.errors import ConfigurationError
from transcript_worker.types import GenericUrlMode

DEFAULT_GROQ_API_URL = "https://api.groq.com/openai/v1/audio/transcriptions"
DEFAULT_WHISPER_MODEL = "whisper-large-v3"


@dataclass(slots=True)
class Settings:
    host: str
    port: int
    mcp_path: str
    health_path: str
    poll_interval_seconds: int
    worker_concurrency: int
    data_dir: Path
    database_path: Path
    work_dir: Path
    groq_api_key: str
    groq_api_url: str
    whisper_model: str
    ytdlp_path: str
    ffmpeg_dir: str | None
    generic_url_mode: GenericUrlMode
    download_timeout_seconds: float
    transcribe_timeout_seconds: float
    max_words_per_chunk: int
    max_duration_ms: int


def _as_int(name: str, default: int) -> int:
    raw = os.getenv(name)
    if raw is None or not raw.strip():
        return default
    try:
        return int(raw)
    except ValueError as exc:
        raise ConfigurationError(f"{name} must be an integer, got {raw!r}") from exc


def _as_float(name: str, default: float) -> float:
    raw = os.getenv(name)
    if raw is None or not raw.strip():
        return default
    try:
        return float(raw)
    except ValueError as exc:
        raise ConfigurationError(f"{name} must be a number, got {raw!r}") from exc


def _normalized_path(path: str) -> str:
    if not path.startswith("/"):
        path = f"/{path}"
    return path


def _generic_url_mode() -> GenericUrlMode:
    mode = os.getenv("GENERIC_URL_MODE", "download").strip().lower()
    if mode == "download":
        return "download"
    if mode == "passthrough":
        return "passthrough"
    raise ConfigurationError(f"GENERIC_URL_MODE must be 'download' or 'passthrough', got {mode!r}")


def load_settings() -> Settings:
    load_dotenv()
    data_dir = Path(os.getenv("DATA_DIR", "/data")).resolve()
    database_path = Path(os.getenv("DATABASE_PATH", str(data_dir / "transcript_worker.sqlite3"))).resolve()
    work_dir = Path(os.getenv("WORK_DIR") or tempfile.gettempdir()).resolve()

    groq_api_key = os.getenv("GROQ_API_KEY", "").strip()
    if not groq_api_key:
        raise ConfigurationError("GROQ_API_KEY is required")

    return Settings(
        host=os.getenv("HOST", "0.0.0.0"),
        port=_as_int("PORT", 4000),
        mcp_path=_normalized_path(os.getenv("MCP_PATH", "/mcp")),
        health_path=_normalized_path(os.getenv("HEALTH_PATH", "/healthz")),
        poll_interval_seconds=_as_int("POLL_INTERVAL_SECONDS", 2),
        worker_concurrency=max(1, _as_int("WORKER_CONCURRENCY", 2)),
        data_dir=data_dir,
        database_path=database_path,
        work_dir=work_dir,
        groq_api_key=groq_api_key,
        groq_api_url=os.getenv("GROQ_API_URL") or DEFAULT_GROQ_API_URL,
        whisper_model=os.getenv("WHISPER_MODEL") or DEFAULT_WHISPER_MODEL,
        ytdlp_path=os.getenv("YTDLP_PATH") or "yt-dlp",
        ffmpeg_dir=os.getenv("FFMPEG_DIR_PATH") or None,
        generic_url_mode=_generic_url_mode(),
        download_timeout_seconds=_as_float("DOWNLOAD_TIMEOUT_SECONDS", 30.0),
        transcribe_timeout_seconds=_as_float("TRANSCRIBE_TIMEOUT_SECONDS", 600.0),
        max_words_per_chunk=_as_int("MAX_WORDS_PER_CHUNK", 15),
        max_duration_ms=_as_int("MAX_DURATION_MS", 6000),
    )
