from __future__ import annotations

from dataclasses import dataclass
from enum import Enum

from pydantic import BaseModel, Field


class IdentifierKind(str, Enum):
    channel_id = "channel_id"
    handle = "handle"
    legacy_custom_path = "legacy_custom_path"


@dataclass(frozen=True)
class ChannelIdentifier:
    kind: IdentifierKind
    value: str

    @property
    def is_channel_id(self) -> bool:
        return self.kind is IdentifierKind.channel_id


@dataclass(frozen=True)
class VideoSummary:
    video_id: str
    title: str


@dataclass(frozen=True)
class VideoStats:
    video_id: str
    views: int = 0
    likes: int = 0


class RankedVideo(BaseModel):
    title: str
    videoId: str
    views: int = Field(default=0, ge=0)
    likes: int = Field(default=0, ge=0)


class VideosResponse(BaseModel):
    data: list[RankedVideo] = Field(default_factory=list)


class ResolveResponse(BaseModel):
    channelUrl: str
    channelId: str


class ErrorResponse(BaseModel):
    error: str


def coerce_count(value) -> int:
    """YouTube sends counts as strings and omits them when hidden."""
    try:
        count = int(value or 0)
    except (TypeError, ValueError):
        return 0
    return max(count, 0)
