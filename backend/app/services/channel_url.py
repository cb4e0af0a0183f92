"""Parse YouTube channel URLs into channel identifiers."""
from __future__ import annotations

from urllib.parse import urlparse

from ..models import ChannelIdentifier, IdentifierKind

YOUTUBE_HOSTS = {"youtube.com", "www.youtube.com", "youtu.be", "www.youtu.be"}
CHANNEL_ID_PREFIX = "UC"
CHANNEL_ID_MIN_LENGTH = 24


def _first_segment(rest: str) -> str:
    return rest.split("/")[0]


def parse_channel_url(url: str) -> ChannelIdentifier | None:
    """
    Supported formats:
    - https://www.youtube.com/channel/UCxxxxxxxxxxxxxxxxxxxxxx
    - https://www.youtube.com/@handle
    - https://www.youtube.com/c/CustomName
    - https://www.youtube.com/user/LegacyName (treated as a handle)

    Returns None for anything else, including malformed URLs and foreign hosts.
    """
    try:
        parsed = urlparse((url or "").strip())
        host = (parsed.hostname or "").lower()
    except ValueError:
        return None

    if parsed.scheme not in {"http", "https"} or host not in YOUTUBE_HOSTS:
        return None

    path = parsed.path.rstrip("/")

    if path.startswith("/channel/"):
        channel_id = _first_segment(path[len("/channel/"):])
        if channel_id.startswith(CHANNEL_ID_PREFIX) and len(channel_id) >= CHANNEL_ID_MIN_LENGTH:
            return ChannelIdentifier(IdentifierKind.channel_id, channel_id)
        return None

    if path.startswith("/@"):
        handle = _first_segment(path[len("/@"):])
        return ChannelIdentifier(IdentifierKind.handle, handle) if handle else None

    if path.startswith("/c/"):
        name = _first_segment(path[len("/c/"):])
        return ChannelIdentifier(IdentifierKind.legacy_custom_path, name) if name else None

    if path.startswith("/user/"):
        username = _first_segment(path[len("/user/"):])
        return ChannelIdentifier(IdentifierKind.handle, username) if username else None

    return None
