import logging
from typing import Any

import requests

from ..errors import QuotaExceededError, ResolutionError, UpstreamError
from ..models import ChannelIdentifier, IdentifierKind, VideoStats, VideoSummary, coerce_count

logger = logging.getLogger(__name__)

YOUTUBE_SEARCH_LIST = "https://www.googleapis.com/youtube/v3/search"
YOUTUBE_CHANNELS_LIST = "https://www.googleapis.com/youtube/v3/channels"
YOUTUBE_VIDEOS_LIST = "https://www.googleapis.com/youtube/v3/videos"

SEARCH_PAGE_SIZE = 50
CHANNEL_SEARCH_CANDIDATES = 5


def youtube_api_get(url: str, params: dict[str, Any], timeout: int = 15) -> dict[str, Any]:
    try:
        response = requests.get(url, params=params, timeout=timeout)
    except requests.RequestException as exc:
        raise UpstreamError(f"YouTube is temporarily unavailable: {exc}") from exc

    if response.status_code == 200:
        try:
            return response.json()
        except ValueError as exc:
            raise UpstreamError("YouTube returned a malformed response") from exc

    lowered = response.text.lower()
    if response.status_code in {403, 429} and (
        "quotaexceeded" in lowered or "quota exceeded" in lowered or "youtube.quota" in lowered
    ):
        raise QuotaExceededError("YouTube API quota exceeded")

    raise UpstreamError(
        f"YouTube API request failed with status {response.status_code}",
        status_code=response.status_code,
    )


def _first_channel_id(payload: dict[str, Any]) -> str | None:
    items = payload.get("items", [])
    if items and items[0].get("id"):
        return items[0]["id"]
    return None


def lookup_channel_by_handle(handle: str, api_key: str) -> str | None:
    """Exact lookup by handle, then by legacy username."""
    for param, value in (("forHandle", f"@{handle}"), ("forUsername", handle)):
        try:
            payload = youtube_api_get(
                YOUTUBE_CHANNELS_LIST,
                {
                    "part": "id",
                    param: value,
                    "maxResults": 1,
                    "key": api_key,
                },
            )
        except UpstreamError as exc:
            logger.warning("%s lookup failed for %r: %s", param, handle, exc)
            continue
        channel_id = _first_channel_id(payload)
        if channel_id:
            return channel_id
    return None


def fetch_custom_urls(channel_ids: list[str], api_key: str) -> dict[str, str]:
    payload = youtube_api_get(
        YOUTUBE_CHANNELS_LIST,
        {
            "part": "snippet",
            "id": ",".join(channel_ids),
            "maxResults": len(channel_ids),
            "key": api_key,
        },
    )
    custom_urls = {}
    for item in payload.get("items", []):
        custom_url = (item.get("snippet") or {}).get("customUrl")
        if item.get("id") and custom_url:
            custom_urls[item["id"]] = custom_url
    return custom_urls


def normalize_custom_url(value: str) -> str:
    return value.strip().lstrip("@").lower()


def pick_channel(candidate_ids: list[str], custom_urls: dict[str, str], query: str) -> str:
    """Exact custom URL match wins; otherwise settle for the top search hit."""
    wanted = query.lower()
    for channel_id in candidate_ids:
        custom_url = custom_urls.get(channel_id)
        if custom_url and normalize_custom_url(custom_url) == wanted:
            return channel_id
    return candidate_ids[0]


def search_channel_id(query: str, api_key: str) -> str:
    payload = youtube_api_get(
        YOUTUBE_SEARCH_LIST,
        {
            "part": "snippet",
            "type": "channel",
            "q": query,
            "maxResults": CHANNEL_SEARCH_CANDIDATES,
            "key": api_key,
        },
    )
    candidate_ids = []
    for item in payload.get("items", []):
        channel_id = (item.get("id") or {}).get("channelId")
        if channel_id and channel_id not in candidate_ids:
            candidate_ids.append(channel_id)
    if not candidate_ids:
        raise ResolutionError("channel not found")

    try:
        custom_urls = fetch_custom_urls(candidate_ids, api_key)
    except UpstreamError as exc:
        logger.warning("Custom URL lookup failed for %r, using first search hit: %s", query, exc)
        custom_urls = {}
    return pick_channel(candidate_ids, custom_urls, query)


def resolve_channel_id(identifier: ChannelIdentifier, api_key: str) -> str:
    if identifier.kind is IdentifierKind.channel_id:
        return identifier.value

    if identifier.kind is IdentifierKind.handle:
        channel_id = lookup_channel_by_handle(identifier.value, api_key)
        if channel_id:
            return channel_id

    return search_channel_id(identifier.value, api_key)


def list_channel_videos(channel_id: str, max_videos: int, api_key: str) -> list[VideoSummary]:
    videos: list[VideoSummary] = []
    seen: set[str] = set()
    page_token = None
    while len(videos) < max_videos:
        params: dict[str, Any] = {
            "part": "snippet,id",
            "channelId": channel_id,
            "type": "video",
            "order": "date",
            "maxResults": SEARCH_PAGE_SIZE,
            "key": api_key,
        }
        if page_token:
            params["pageToken"] = page_token
        payload = youtube_api_get(YOUTUBE_SEARCH_LIST, params)

        items = payload.get("items") or []
        if not items:
            break
        for item in items:
            video_id = (item.get("id") or {}).get("videoId")
            if not video_id or video_id in seen:
                continue
            seen.add(video_id)
            videos.append(VideoSummary(video_id=video_id, title=(item.get("snippet") or {}).get("title") or ""))

        logger.debug("Fetched %d videos so far from channel %s", len(videos), channel_id)
        page_token = payload.get("nextPageToken")
        if not page_token:
            break

    logger.info("Listed %d videos from channel %s", min(len(videos), max_videos), channel_id)
    return videos[:max_videos]


def fetch_video_stats(video_id: str, api_key: str) -> VideoStats:
    payload = youtube_api_get(
        YOUTUBE_VIDEOS_LIST,
        {
            "part": "statistics",
            "id": video_id,
            "key": api_key,
        },
    )
    items = payload.get("items") or []
    statistics = (items[0].get("statistics") or {}) if items else {}
    return VideoStats(
        video_id=video_id,
        views=coerce_count(statistics.get("viewCount")),
        likes=coerce_count(statistics.get("likeCount")),
    )
