from __future__ import annotations

import logging
import os
import re
import subprocess
import time
from dataclasses import dataclass
from pathlib import Path
from typing import Protocol
from urllib.parse import urlparse

import httpx

from transcript_worker.config import Settings
from transcript_worker.errors import AcquisitionError
from transcript_worker.services.scratch import ScratchFiles
from transcript_worker.types import AcquisitionResult, ClassifiedUrl, SourceKind

logger = logging.getLogger(__name__)

_DESTINATION_PATTERNS = (
    re.compile(r"\[ExtractAudio\] Destination: (.+)"),
    re.compile(r"\[download\] Destination: (.+)"),
)
PROBE_EXTENSIONS = ("webm", "m4a", "mp3", "opus")
_ACCEPTED_CONTENT_PREFIXES = ("audio/", "video/")


class AudioAcquirer(Protocol):
    def acquire(self, url: str, *, job_id: str, scratch: ScratchFiles) -> AcquisitionResult: ...


@dataclass(slots=True)
class ToolOutput:
    exit_code: int
    stdout: str
    stderr: str


def parse_destination(output: ToolOutput) -> Path | None:
    """Return the file yt-dlp reported writing, preferring the extracted audio."""
    for pattern in _DESTINATION_PATTERNS:
        for stream in (output.stderr, output.stdout):
            match = pattern.search(stream or "")
            if match and match.group(1).strip():
                return Path(match.group(1).strip())
    return None


def probe_output(base_path: Path) -> Path | None:
    for ext in PROBE_EXTENSIONS:
        candidate = base_path.with_name(f"{base_path.name}.{ext}")
        if candidate.exists():
            return candidate
    return None


def describe_known_failure(stderr: str) -> str | None:
    if not stderr:
        return None
    if "Video unavailable" in stderr:
        return "yt-dlp reported: Video unavailable"
    if "Private video" in stderr:
        return "yt-dlp reported: Private video"
    if ("ffprobe" in stderr or "ffmpeg" in stderr) and "not found" in stderr:
        return (
            "yt-dlp requires ffmpeg/ffprobe, but they were not found. "
            "Install them or set FFMPEG_DIR_PATH."
        )
    return None


def _millis() -> int:
    return int(time.time() * 1000)


class YtDlpAcquirer:
    def __init__(self, work_dir: Path, *, executable: str = "yt-dlp", ffmpeg_dir: str | None = None) -> None:
        self.work_dir = work_dir
        self.executable = executable
        self.ffmpeg_dir = ffmpeg_dir
        self.work_dir.mkdir(parents=True, exist_ok=True)

    def build_command(self, url: str, output_template: str) -> list[str]:
        cmd = [self.executable, "--no-check-certificate"]
        if self.ffmpeg_dir:
            cmd.extend(["--ffmpeg-location", self.ffmpeg_dir])
        cmd.extend(["-f", "worstaudio/worst", "-x", "--no-playlist", "-o", output_template, url])
        return cmd

    def acquire(self, url: str, *, job_id: str, scratch: ScratchFiles) -> AcquisitionResult:
        base_path = self.work_dir / f"job_{job_id}_yt_{_millis()}"
        output_template = f"{base_path}.%(ext)s"
        cmd = self.build_command(url, output_template)

        logger.info("Job %s: running %s", job_id, " ".join(cmd))
        output = self._run(cmd)
        if output.stdout:
            logger.debug("Job %s: yt-dlp stdout: %s", job_id, output.stdout)
        if output.stderr:
            logger.debug("Job %s: yt-dlp stderr: %s", job_id, output.stderr)

        if output.exit_code != 0:
            self._track_leftovers(base_path, output, scratch)
            raise AcquisitionError(
                describe_known_failure(output.stderr)
                or f"yt-dlp execution failed (exit code {output.exit_code}): "
                f"{output.stderr.strip() or output.stdout.strip()}"
            )

        destination = parse_destination(output)
        if destination is None:
            logger.warning("Job %s: no destination in yt-dlp output, probing %s.*", job_id, base_path)
            destination = probe_output(base_path)

        if destination is None or not destination.exists():
            self._track_leftovers(base_path, output, scratch)
            raise AcquisitionError(
                describe_known_failure(output.stderr)
                or f"yt-dlp finished, but could not determine or find output file from template "
                f"{output_template}. Check stderr: {output.stderr.strip()}"
            )

        scratch.track(destination)
        logger.info("Job %s: audio downloaded to %s", job_id, destination)
        return AcquisitionResult(audio_path=destination)

    def _track_leftovers(self, base_path: Path, output: ToolOutput, scratch: ScratchFiles) -> None:
        """Hand whatever a failed run left behind to the job's cleanup."""
        candidates = sorted(self.work_dir.glob(f"{base_path.name}.*"))
        reported = parse_destination(output)
        if reported is not None:
            candidates.append(reported)
        for path in candidates:
            if path.exists():
                scratch.track(path)

    def _run(self, cmd: list[str]) -> ToolOutput:
        env = None
        if self.ffmpeg_dir:
            env = dict(os.environ)
            env["PATH"] = f"{self.ffmpeg_dir}{os.pathsep}{env.get('PATH', '')}"

        try:
            completed = subprocess.run(cmd, capture_output=True, text=True, errors="replace", check=False, env=env)
        except FileNotFoundError as exc:
            raise AcquisitionError(
                f"Cannot find yt-dlp executable ({self.executable!r}). "
                "Install it on PATH or set YTDLP_PATH."
            ) from exc
        except PermissionError as exc:
            raise AcquisitionError(f"yt-dlp executable ({self.executable!r}) is not executable") from exc

        return ToolOutput(exit_code=completed.returncode, stdout=completed.stdout or "", stderr=completed.stderr or "")


class DirectDownloadAcquirer:
    def __init__(
        self,
        work_dir: Path,
        *,
        timeout_seconds: float = 30.0,
        transport: httpx.BaseTransport | None = None,
    ) -> None:
        self.work_dir = work_dir
        self.timeout_seconds = timeout_seconds
        self.transport = transport
        self.work_dir.mkdir(parents=True, exist_ok=True)

    @staticmethod
    def guess_extension(url: str) -> str:
        try:
            suffix = Path(urlparse(url).path).suffix.lstrip(".")
        except ValueError:
            return "bin"
        if not suffix or len(suffix) > 5:
            return "bin"
        return suffix

    def acquire(self, url: str, *, job_id: str, scratch: ScratchFiles) -> AcquisitionResult:
        target = self.work_dir / f"job_{job_id}_direct_{_millis()}.{self.guess_extension(url)}"
        logger.info("Job %s: downloading %s to %s", job_id, url, target)

        try:
            with httpx.Client(
                timeout=self.timeout_seconds,
                follow_redirects=True,
                transport=self.transport,
            ) as client:
                with client.stream("GET", url) as response:
                    if not 200 <= response.status_code < 300:
                        raise AcquisitionError(
                            f"Direct download failed with status code: {response.status_code}"
                        )

                    content_type = response.headers.get("content-type")
                    if content_type and not self._is_media_type(content_type):
                        logger.warning(
                            "Job %s: content type %s might not be suitable for transcription",
                            job_id,
                            content_type,
                        )

                    scratch.track(target)
                    with target.open("wb") as handle:
                        for chunk in response.iter_bytes():
                            handle.write(chunk)
        except (httpx.HTTPError, httpx.InvalidURL) as exc:
            raise AcquisitionError(f"Direct download failed: {exc}") from exc
        except OSError as exc:
            raise AcquisitionError(f"Could not write download to {target}: {exc}") from exc

        logger.info("Job %s: direct download finished", job_id)
        return AcquisitionResult(audio_path=target)

    @staticmethod
    def _is_media_type(content_type: str) -> bool:
        value = content_type.split(";", 1)[0].strip().lower()
        return value.startswith(_ACCEPTED_CONTENT_PREFIXES) or value == "application/octet-stream"


class PassThroughAcquirer:
    """Forwards the URL to a provider that fetches remote media itself."""

    def acquire(self, url: str, *, job_id: str, scratch: ScratchFiles) -> AcquisitionResult:
        logger.info("Job %s: forwarding %s to the transcription provider", job_id, url)
        return AcquisitionResult(remote_url=url)


class AcquisitionEngine:
    def __init__(self, acquirers: dict[SourceKind, AudioAcquirer]) -> None:
        self.acquirers = acquirers

    def acquire(self, source: ClassifiedUrl, *, job_id: str, scratch: ScratchFiles) -> AcquisitionResult:
        acquirer = self.acquirers.get(source.kind)
        if acquirer is None:
            raise AcquisitionError(f"No acquisition strategy for {source.kind} URLs")
        return acquirer.acquire(source.url, job_id=job_id, scratch=scratch)


def build_acquisition_engine(settings: Settings) -> AcquisitionEngine:
    generic: AudioAcquirer
    if settings.generic_url_mode == "passthrough":
        generic = PassThroughAcquirer()
    else:
        generic = DirectDownloadAcquirer(settings.work_dir, timeout_seconds=settings.download_timeout_seconds)

    video = YtDlpAcquirer(settings.work_dir, executable=settings.ytdlp_path, ffmpeg_dir=settings.ffmpeg_dir)
    return AcquisitionEngine({"video": video, "generic": generic})
