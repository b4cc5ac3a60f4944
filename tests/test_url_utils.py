from transcript_worker.utils.url import classify_url, extract_video_id


def test_watch_url_is_video() -> None:
    source = classify_url("https://www.youtube.com/watch?v=dQw4w9WgXcQ&t=42")
    assert source.kind == "video"
    assert source.video_id == "dQw4w9WgXcQ"
    assert source.url == "https://www.youtube.com/watch?v=dQw4w9WgXcQ&t=42"


def test_short_host_and_path_forms() -> None:
    assert extract_video_id("https://youtu.be/dQw4w9WgXcQ?si=abc") == "dQw4w9WgXcQ"
    assert extract_video_id("https://m.youtube.com/watch?v=abc123") == "abc123"
    assert extract_video_id("https://www.youtube.com/shorts/abc123def45") == "abc123def45"
    assert extract_video_id("https://www.youtube.com/embed/abc123def45") == "abc123def45"


def test_raw_identifier_fallback() -> None:
    source = classify_url("dQw4w9WgXcQ")
    assert source.kind == "video"
    assert source.video_id == "dQw4w9WgXcQ"


def test_other_urls_are_generic() -> None:
    for url in (
        "https://example.com/podcast/episode.mp3",
        "https://www.youtube.com/feed/subscriptions",
        "https://youtu.be/",
        "not-a-video",
        "",
    ):
        source = classify_url(url)
        assert source.kind == "generic", url
        assert source.video_id is None


def test_malformed_url_is_generic() -> None:
    for url in ("https://[::1/a.mp3", "http://[not-an-ip]/x"):
        source = classify_url(url)
        assert source.kind == "generic", url
        assert extract_video_id(url) is None
