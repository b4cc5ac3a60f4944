from __future__ import annotations

import json
import logging
import math
from pathlib import Path
from typing import Any

import httpx

from transcript_worker.errors import TranscriptionError
from transcript_worker.types import TranscriptionResult, Word

logger = logging.getLogger(__name__)


def is_remote_url(value: Path | str) -> bool:
    if isinstance(value, Path):
        return False
    return value.startswith(("http://", "https://"))


class WhisperTranscriber:
    """Client for an OpenAI-compatible transcription endpoint (Groq by default)."""

    def __init__(
        self,
        api_key: str | None,
        api_url: str,
        model: str,
        timeout_seconds: float = 600.0,
        transport: httpx.BaseTransport | None = None,
    ) -> None:
        self.api_key = api_key
        self.api_url = api_url
        self.model = model
        self.timeout_seconds = timeout_seconds
        self.transport = transport

    def transcribe(self, source: Path | str, *, job_id: str | None = None) -> TranscriptionResult:
        if not self.api_key:
            raise TranscriptionError("Transcription API key is missing")

        fields = {
            "model": self.model,
            "response_format": "verbose_json",
            "timestamp_granularities[]": "word",
        }
        remote = is_remote_url(source)

        try:
            with httpx.Client(timeout=self.timeout_seconds, transport=self.transport) as client:
                if remote:
                    logger.info("Job %s: transcribing from URL %s using model %s", job_id, source, self.model)
                    response = self._post(client, fields, files={"url": (None, str(source))})
                else:
                    audio_path = Path(source)
                    if not audio_path.exists():
                        raise TranscriptionError(f"Audio file not found: {audio_path}")
                    logger.info("Job %s: transcribing file %s using model %s", job_id, audio_path, self.model)
                    with audio_path.open("rb") as audio_stream:
                        response = self._post(client, fields, files={"file": (audio_path.name, audio_stream)})
        except httpx.HTTPError as exc:
            raise TranscriptionError(f"Failed to call transcription API: {exc}") from exc

        if not response.is_success:
            if remote and response.status_code == 413:
                raise TranscriptionError(
                    "Transcription API error (413): the file referenced by the URL "
                    "exceeds the provider's size limit"
                )
            raise TranscriptionError(
                f"Transcription API error ({response.status_code}): {response.text[:400]}"
            )

        try:
            payload = response.json()
        except json.JSONDecodeError:
            logger.warning("Job %s: transcription response is not JSON: %s", job_id, response.text[:200])
            payload = {}
        if not isinstance(payload, dict):
            payload = {}

        text = str(payload.get("text") or "").strip()
        raw_words = payload.get("words")
        if not isinstance(raw_words, list):
            logger.warning('Job %s: transcription response missing expected "words" array', job_id)
            return TranscriptionResult(text=text, words=[])

        words = self._extract_words(raw_words)
        logger.info("Job %s: transcription returned %d words", job_id, len(words))
        return TranscriptionResult(text=text, words=words)

    def _post(self, client: httpx.Client, fields: dict[str, str], files: dict[str, Any]) -> httpx.Response:
        headers = {"Authorization": f"Bearer {self.api_key}"}
        return client.post(self.api_url, headers=headers, data=fields, files=files)

    def _extract_words(self, raw_words: list[object]) -> list[Word]:
        words: list[Word] = []
        for item in raw_words:
            if not isinstance(item, dict):
                continue
            start = self._as_seconds(item.get("start"), 0.0)
            end = self._as_seconds(item.get("end"), start)
            words.append(Word(text=str(item.get("word") or ""), start=start, end=end))
        return words

    @staticmethod
    def _as_seconds(value: object, default: float) -> float:
        if isinstance(value, bool) or not isinstance(value, (int, float)):
            return default
        if not math.isfinite(value):
            return default
        return float(value)
