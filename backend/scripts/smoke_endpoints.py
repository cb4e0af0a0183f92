from __future__ import annotations

import asyncio
import sys
from pathlib import Path
from unittest.mock import patch

ROOT_DIR = Path(__file__).resolve().parents[2]
if str(ROOT_DIR) not in sys.path:
    sys.path.insert(0, str(ROOT_DIR))

import backend.main as main_module
from backend.app.errors import InvalidInput, UpstreamError
from backend.app.services import mirror, youtube_api

CHANNEL_ID = "UC" + "S" * 22


def assert_true(condition: bool, message: str) -> None:
    if not condition:
        raise AssertionError(message)


def call_videos(channel_url: str, sort_mode: str = "likes", max_videos: int = 50) -> dict:
    return asyncio.run(main_module.videos(channelUrl=channel_url, sortMode=sort_mode, maxVideos=max_videos))


def fake_mirror_get(instances: list[str], path: str, params: dict | None = None, timeout: int = 15):
    _ = (instances, params, timeout)
    if path == "/api/v1/search":
        return [{"type": "channel", "authorId": CHANNEL_ID, "channelHandle": "@smoke"}]
    if path.endswith("/videos"):
        return {
            "videos": [
                {"videoId": "m1", "title": "Mirror one"},
                {"videoId": "m2", "title": "Mirror two"},
                {"videoId": "m3", "title": "Mirror three"},
            ]
        }
    stats = {
        "/api/v1/videos/m1": {"viewCount": 1000, "likeCount": 10},
        "/api/v1/videos/m2": {"viewCount": 50, "likeCount": 25},
        "/api/v1/videos/m3": {},
    }
    return stats[path]


def fake_youtube_api_get(url: str, params: dict, timeout: int = 15) -> dict:
    _ = timeout
    if url == youtube_api.YOUTUBE_CHANNELS_LIST:
        return {"items": [{"id": CHANNEL_ID}]}
    if url == youtube_api.YOUTUBE_SEARCH_LIST:
        return {"items": [{"id": {"videoId": "y1"}, "snippet": {"title": "API one"}}]}
    return {"items": [{"statistics": {"viewCount": "42", "likeCount": "7"}}]}


def test_health() -> None:
    payload = main_module.health()
    assert_true(payload.get("ok") is True, "/health should return ok=true")


def test_mirror_ranking() -> None:
    with (
        patch.object(main_module, "MIRROR_INSTANCES", ["https://inv.smoke"]),
        patch.object(mirror, "mirror_get", side_effect=fake_mirror_get),
    ):
        by_likes = call_videos("https://www.youtube.com/@smoke", "likes")
        by_ratio = call_videos("https://www.youtube.com/@smoke", "ratio")

    assert_true([v["videoId"] for v in by_likes["data"]] == ["m2", "m1", "m3"], "likes order is wrong")
    assert_true([v["videoId"] for v in by_ratio["data"]] == ["m2", "m1", "m3"], "ratio order is wrong")
    blank = by_likes["data"][-1]
    assert_true(blank["views"] == 0 and blank["likes"] == 0, "missing stats should be zero-filled")


def test_api_fallback() -> None:
    def broken_mirror_get(*args, **kwargs):
        raise UpstreamError("All mirrors failed")

    with (
        patch.object(main_module, "MIRROR_INSTANCES", ["https://inv.smoke"]),
        patch.object(main_module, "YOUTUBE_API_KEY", "SMOKE_KEY"),
        patch.object(mirror, "mirror_get", side_effect=broken_mirror_get),
        patch.object(youtube_api, "youtube_api_get", side_effect=fake_youtube_api_get),
    ):
        payload = call_videos("https://www.youtube.com/@smoke")

    assert_true(payload["data"] == [{"title": "API one", "videoId": "y1", "views": 42, "likes": 7}],
                "fallback should return YouTube API data")


def test_input_rejections() -> None:
    for channel_url, max_videos in (("not-a-url", 50), ("https://www.youtube.com/@smoke", 10)):
        try:
            call_videos(channel_url, max_videos=max_videos)
        except InvalidInput:
            continue
        raise AssertionError(f"{channel_url} / {max_videos} should be rejected")


def run() -> int:
    checks = [
        ("health", test_health),
        ("mirror ranking", test_mirror_ranking),
        ("youtube api fallback", test_api_fallback),
        ("input rejections", test_input_rejections),
    ]
    failures = []

    for check_name, check_fn in checks:
        try:
            check_fn()
            print(f"[PASS] {check_name}")
        except Exception as exc:  # pragma: no cover - smoke script output path
            failures.append((check_name, str(exc)))
            print(f"[FAIL] {check_name}: {exc}")

    if failures:
        print(f"\nSmoke checks failed: {len(failures)}")
        for check_name, message in failures:
            print(f"- {check_name}: {message}")
        return 1

    print("\nAll smoke checks passed.")
    return 0


if __name__ == "__main__":
    sys.exit(run())
