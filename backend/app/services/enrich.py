from __future__ import annotations

import asyncio
import logging
from typing import Callable

from ..errors import QuotaExceededError, UpstreamError
from ..models import RankedVideo, VideoStats, VideoSummary

logger = logging.getLogger(__name__)

DEFAULT_STATS_CONCURRENCY = 10

StatsFetcher = Callable[[str], VideoStats]


async def enrich_all(
    videos: list[VideoSummary],
    fetch_stats: StatsFetcher,
    concurrency: int = DEFAULT_STATS_CONCURRENCY,
) -> list[RankedVideo]:
    """
    Fetch stats for every video concurrently and join them back in listing order.

    A failed item is zero-filled. When every item fails the source itself is
    treated as down and UpstreamError is raised.
    """
    semaphore = asyncio.Semaphore(max(1, concurrency))
    failed: list[str] = []

    async def enrich_one(video: VideoSummary) -> RankedVideo:
        async with semaphore:
            try:
                stats = await asyncio.to_thread(fetch_stats, video.video_id)
            except QuotaExceededError:
                raise
            except UpstreamError as exc:
                logger.warning("Stats unavailable for %s, using zeros: %s", video.video_id, exc)
                failed.append(video.video_id)
                stats = VideoStats(video_id=video.video_id)
        return RankedVideo(
            title=video.title,
            videoId=video.video_id,
            views=stats.views,
            likes=stats.likes,
        )

    ranked = list(await asyncio.gather(*(enrich_one(video) for video in videos)))
    if videos and len(failed) == len(videos):
        raise UpstreamError("Stats unavailable for every video")
    return ranked
