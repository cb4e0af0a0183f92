"""
Invidious mirror federation: unauthenticated read path for public channel data.

Every request walks the configured instances in preference order and moves on
to the next one on any failure.
"""
from __future__ import annotations

import logging
from typing import Any

import requests

from ..errors import ResolutionError, UpstreamError
from ..models import ChannelIdentifier, IdentifierKind, VideoStats, VideoSummary, coerce_count
from .youtube_api import normalize_custom_url

logger = logging.getLogger(__name__)

DEFAULT_MIRROR_INSTANCES = [
    "https://inv.nadeko.net",
    "https://yewtu.be",
    "https://invidious.nerdvpn.de",
]
CHANNEL_SEARCH_CANDIDATES = 5


def parse_instances(raw: str | None) -> list[str]:
    if raw is None:
        return list(DEFAULT_MIRROR_INSTANCES)
    return [base.strip().rstrip("/") for base in raw.split(",") if base.strip()]


def mirror_get(instances: list[str], path: str, params: dict[str, Any] | None = None, timeout: int = 15) -> Any:
    if not instances:
        raise UpstreamError("No mirror instances configured")

    last_error: Exception | None = None
    for base in instances:
        url = f"{base}{path}"
        try:
            response = requests.get(url, params=params or {}, timeout=timeout)
            response.raise_for_status()
            return response.json()
        except (requests.RequestException, ValueError) as exc:
            last_error = exc
            logger.warning("Mirror %s failed for %s: %s", base, path, exc)
            continue

    raise UpstreamError(f"All mirrors failed for {path}: {last_error}")


def _channel_handle(item: dict[str, Any]) -> str | None:
    handle = item.get("channelHandle")
    if isinstance(handle, str) and handle:
        return handle
    author_url = item.get("authorUrl") or ""
    if author_url.startswith("/@"):
        return author_url[1:]
    return None


def resolve_channel_id(instances: list[str], identifier: ChannelIdentifier) -> str:
    if identifier.kind is IdentifierKind.channel_id:
        return identifier.value

    results = mirror_get(instances, "/api/v1/search", {"q": identifier.value, "type": "channel"})
    candidates = [
        item for item in (results if isinstance(results, list) else [])
        if isinstance(item, dict) and item.get("type") == "channel" and item.get("authorId")
    ][:CHANNEL_SEARCH_CANDIDATES]
    if not candidates:
        raise ResolutionError("channel not found")

    wanted = identifier.value.lower()
    for item in candidates:
        handle = _channel_handle(item)
        if handle and normalize_custom_url(handle) == wanted:
            return item["authorId"]
    return candidates[0]["authorId"]


def list_channel_videos(instances: list[str], channel_id: str, max_videos: int) -> list[VideoSummary]:
    videos: list[VideoSummary] = []
    seen: set[str] = set()
    continuation = None
    while len(videos) < max_videos:
        params = {"sort_by": "newest"}
        if continuation:
            params["continuation"] = continuation
        payload = mirror_get(instances, f"/api/v1/channels/{channel_id}/videos", params)
        if not isinstance(payload, dict):
            raise UpstreamError("Mirror returned an unexpected channel listing")

        items = payload.get("videos") or []
        if not items:
            break
        for item in items:
            video_id = item.get("videoId")
            if not video_id or video_id in seen:
                continue
            seen.add(video_id)
            videos.append(VideoSummary(video_id=video_id, title=item.get("title") or ""))

        continuation = payload.get("continuation")
        if not continuation:
            break

    logger.info("Listed %d videos from channel %s via mirrors", min(len(videos), max_videos), channel_id)
    return videos[:max_videos]


def fetch_video_stats(instances: list[str], video_id: str) -> VideoStats:
    payload = mirror_get(instances, f"/api/v1/videos/{video_id}", {"fields": "videoId,viewCount,likeCount"})
    if not isinstance(payload, dict):
        payload = {}
    return VideoStats(
        video_id=video_id,
        views=coerce_count(payload.get("viewCount")),
        likes=coerce_count(payload.get("likeCount")),
    )
