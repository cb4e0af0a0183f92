"""Interchangeable places to pull a channel's videos and stats from."""
from __future__ import annotations

import asyncio
import logging
from functools import partial

from ..errors import MissingCredentialError
from ..models import ChannelIdentifier, RankedVideo
from . import mirror, youtube_api
from .enrich import DEFAULT_STATS_CONCURRENCY, enrich_all

logger = logging.getLogger(__name__)


class VideoSource:
    name = "source"

    async def fetch_channel_videos(self, identifier: ChannelIdentifier, max_videos: int) -> list[RankedVideo]:
        raise NotImplementedError


class MirrorSource(VideoSource):
    name = "mirror"

    def __init__(self, instances: list[str], concurrency: int = DEFAULT_STATS_CONCURRENCY):
        self.instances = list(instances)
        self.concurrency = concurrency

    async def fetch_channel_videos(self, identifier: ChannelIdentifier, max_videos: int) -> list[RankedVideo]:
        channel_id = await asyncio.to_thread(mirror.resolve_channel_id, self.instances, identifier)
        logger.info("Mirror resolved %s to %s", identifier.value, channel_id)
        videos = await asyncio.to_thread(mirror.list_channel_videos, self.instances, channel_id, max_videos)
        return await enrich_all(
            videos,
            partial(mirror.fetch_video_stats, self.instances),
            concurrency=self.concurrency,
        )


class YouTubeApiSource(VideoSource):
    name = "youtube_api"

    def __init__(self, api_key: str | None, concurrency: int = DEFAULT_STATS_CONCURRENCY):
        self.api_key = api_key
        self.concurrency = concurrency

    async def fetch_channel_videos(self, identifier: ChannelIdentifier, max_videos: int) -> list[RankedVideo]:
        if not self.api_key:
            raise MissingCredentialError()

        channel_id = await asyncio.to_thread(youtube_api.resolve_channel_id, identifier, self.api_key)
        logger.info("YouTube API resolved %s to %s", identifier.value, channel_id)
        videos = await asyncio.to_thread(youtube_api.list_channel_videos, channel_id, max_videos, self.api_key)
        return await enrich_all(
            videos,
            partial(youtube_api.fetch_video_stats, api_key=self.api_key),
            concurrency=self.concurrency,
        )
