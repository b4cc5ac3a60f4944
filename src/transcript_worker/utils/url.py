from __future__ import annotations

import re
from urllib.parse import parse_qs, urlparse

from transcript_worker.types import ClassifiedUrl

_WATCH_HOSTS = {"youtube.com", "www.youtube.com", "m.youtube.com", "music.youtube.com"}
_SHORT_HOSTS = {"youtu.be", "www.youtu.be"}
_PATH_PREFIXES = ("shorts", "embed", "live")
_RAW_VIDEO_ID = re.compile(r"^[a-zA-Z0-9_-]{11}$")


def _id_from_link(url: str) -> str | None:
    try:
        parsed = urlparse(url.strip())
        host = (parsed.hostname or "").lower()
    except ValueError:
        return None

    if host in _WATCH_HOSTS:
        video_id = parse_qs(parsed.query).get("v", [""])[0]
        if video_id:
            return video_id
        parts = [part for part in parsed.path.split("/") if part]
        if len(parts) >= 2 and parts[0] in _PATH_PREFIXES:
            return parts[1]

    if host in _SHORT_HOSTS:
        parts = [part for part in parsed.path.split("/") if part]
        if parts:
            return parts[0]
    return None


def extract_video_id(url: str) -> str | None:
    if not url:
        return None

    video_id = _id_from_link(url)
    if video_id:
        return video_id

    if _RAW_VIDEO_ID.match(url):
        return url
    return None


def classify_url(url: str) -> ClassifiedUrl:
    video_id = extract_video_id(url)
    if video_id:
        return ClassifiedUrl(kind="video", url=url, video_id=video_id)
    return ClassifiedUrl(kind="generic", url=url)
