import math

from ..errors import InvalidInput
from ..models import RankedVideo

SORT_MODES = ("likes", "ratio")


def like_ratio(video: RankedVideo) -> float:
    """
    Likes per view. Zero-view videos with likes rank above everything else,
    zero-view videos without likes rank as a plain 0.
    """
    if video.views == 0:
        return math.inf if video.likes > 0 else 0.0
    return video.likes / video.views


def rank_videos(videos: list[RankedVideo], sort_mode: str) -> list[RankedVideo]:
    """Return a new list sorted descending; ties keep their incoming order."""
    if sort_mode == "likes":
        return sorted(videos, key=lambda video: video.likes, reverse=True)
    if sort_mode == "ratio":
        return sorted(videos, key=like_ratio, reverse=True)
    raise InvalidInput(f"sortMode must be one of: {', '.join(SORT_MODES)}")
