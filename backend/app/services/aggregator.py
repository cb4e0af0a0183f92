from __future__ import annotations

import logging
from typing import Sequence

from ..errors import InvalidInput, UpstreamError
from ..models import RankedVideo
from .channel_url import parse_channel_url
from .ranking import SORT_MODES, rank_videos
from .sources import VideoSource

logger = logging.getLogger(__name__)

MIN_VIDEOS = 50
MAX_VIDEOS = 350
DEFAULT_MAX_VIDEOS = 50
DEFAULT_SORT_MODE = "likes"


def validate_max_videos(max_videos: int) -> int:
    if not MIN_VIDEOS <= max_videos <= MAX_VIDEOS:
        raise InvalidInput(f"maxVideos must be between {MIN_VIDEOS} and {MAX_VIDEOS}")
    return max_videos


def validate_sort_mode(sort_mode: str | None) -> str:
    mode = (sort_mode or DEFAULT_SORT_MODE).lower()
    if mode not in SORT_MODES:
        raise InvalidInput(f"sortMode must be one of: {', '.join(SORT_MODES)}")
    return mode


async def aggregate(
    channel_url: str | None,
    sort_mode: str | None,
    max_videos: int,
    sources: Sequence[VideoSource],
) -> list[RankedVideo]:
    """
    Rank a channel's videos. Input is validated before any upstream call;
    sources are tried in order and the first one that succeeds wins.
    """
    max_videos = validate_max_videos(max_videos)
    mode = validate_sort_mode(sort_mode)
    if not (channel_url or "").strip():
        raise InvalidInput("Missing channelUrl param")

    identifier = parse_channel_url(channel_url)
    if identifier is None:
        raise InvalidInput("Could not parse channel URL")

    last_error: Exception | None = None
    for source in sources:
        try:
            videos = await source.fetch_channel_videos(identifier, max_videos)
        except Exception as exc:
            last_error = exc
            logger.warning("Source %s failed for %s: %s", source.name, channel_url, exc)
            continue
        logger.info("Source %s returned %d videos for %s", source.name, len(videos), channel_url)
        return rank_videos(videos[:max_videos], mode)

    if last_error is None:
        raise UpstreamError("No video sources configured")
    raise last_error
