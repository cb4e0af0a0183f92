import asyncio

import pytest

import backend.app.services.mirror as mirror
import backend.app.services.youtube_api as youtube_api
from backend.app.errors import InvalidInput, MissingCredentialError, ResolutionError, UpstreamError
from backend.app.models import IdentifierKind, RankedVideo, VideoStats, VideoSummary
from backend.app.services.aggregator import aggregate, validate_max_videos
from backend.app.services.sources import MirrorSource, VideoSource, YouTubeApiSource

CHANNEL_ID = "UC" + "X" * 22
CHANNEL_URL = f"https://www.youtube.com/channel/{CHANNEL_ID}"


def make_ranked(video_id, views, likes):
    return RankedVideo(title=f"Video {video_id}", videoId=video_id, views=views, likes=likes)


class FakeSource(VideoSource):
    def __init__(self, name, videos=None, error=None):
        self.name = name
        self.videos = videos or []
        self.error = error
        self.calls = []

    async def fetch_channel_videos(self, identifier, max_videos):
        self.calls.append((identifier, max_videos))
        if self.error:
            raise self.error
        return list(self.videos)


SNAPSHOT = [make_ranked("a", 100, 5), make_ranked("b", 10, 9), make_ranked("c", 1000, 20)]


@pytest.mark.parametrize("value", [50, 200, 350])
def test_validate_max_videos_accepts_range(value):
    assert validate_max_videos(value) == value


@pytest.mark.parametrize("value", [10, 49, 351, 0, -1])
def test_validate_max_videos_rejects_outside_range(value):
    with pytest.raises(InvalidInput):
        validate_max_videos(value)


def test_out_of_range_rejected_before_any_source_runs():
    source = FakeSource("mirror", SNAPSHOT)
    with pytest.raises(InvalidInput):
        asyncio.run(aggregate(CHANNEL_URL, "likes", 10, [source]))
    assert source.calls == []


def test_unparseable_url_is_invalid_input():
    source = FakeSource("mirror", SNAPSHOT)
    with pytest.raises(InvalidInput, match="Could not parse channel URL"):
        asyncio.run(aggregate("not-a-url", "likes", 50, [source]))
    with pytest.raises(InvalidInput, match="Missing channelUrl"):
        asyncio.run(aggregate(None, "likes", 50, [source]))
    assert source.calls == []


def test_unknown_sort_mode_is_invalid_input():
    with pytest.raises(InvalidInput):
        asyncio.run(aggregate(CHANNEL_URL, "views", 50, [FakeSource("mirror", SNAPSHOT)]))


def test_primary_source_wins_and_result_is_ranked():
    primary = FakeSource("mirror", SNAPSHOT)
    fallback = FakeSource("youtube_api", [make_ranked("z", 1, 1)])

    ranked = asyncio.run(aggregate(CHANNEL_URL, "likes", 50, [primary, fallback]))
    assert [v.videoId for v in ranked] == ["c", "b", "a"]
    assert fallback.calls == []
    identifier, max_videos = primary.calls[0]
    assert identifier.kind is IdentifierKind.channel_id
    assert max_videos == 50


def test_falls_back_when_primary_fails():
    primary = FakeSource("mirror", error=UpstreamError("All mirrors failed"))
    fallback = FakeSource("youtube_api", SNAPSHOT)

    ranked = asyncio.run(aggregate(CHANNEL_URL, "ratio", 50, [primary, fallback]))
    assert [v.videoId for v in ranked] == ["b", "a", "c"]
    assert len(fallback.calls) == 1


def test_falls_back_on_unexpected_primary_errors():
    primary = FakeSource("mirror", error=KeyError("authorId"))
    fallback = FakeSource("youtube_api", SNAPSHOT)
    assert len(asyncio.run(aggregate(CHANNEL_URL, "likes", 50, [primary, fallback]))) == 3


def test_last_failure_is_surfaced_when_every_source_fails():
    primary = FakeSource("mirror", error=ResolutionError("channel not found"))
    fallback = FakeSource("youtube_api", error=MissingCredentialError())

    with pytest.raises(MissingCredentialError) as exc:
        asyncio.run(aggregate(CHANNEL_URL, "likes", 50, [primary, fallback]))
    assert exc.value.status_code == 500
    assert "not configured" in exc.value.message


def test_no_sources_is_upstream_error():
    with pytest.raises(UpstreamError):
        asyncio.run(aggregate(CHANNEL_URL, "likes", 50, []))


def test_result_is_capped_to_max_videos():
    many = [make_ranked(f"v{i}", 100, i) for i in range(80)]
    ranked = asyncio.run(aggregate(CHANNEL_URL, "likes", 50, [FakeSource("mirror", many)]))
    assert len(ranked) == 50
    assert ranked[0].videoId == "v49"


def test_identical_calls_are_idempotent():
    source = FakeSource("mirror", SNAPSHOT)
    first = asyncio.run(aggregate(CHANNEL_URL, "ratio", 50, [source]))
    second = asyncio.run(aggregate(CHANNEL_URL, "ratio", 50, [source]))
    assert first == second


def test_youtube_api_source_requires_credential():
    source = YouTubeApiSource(api_key=None)
    with pytest.raises(MissingCredentialError):
        asyncio.run(aggregate(CHANNEL_URL, "likes", 50, [source]))


def test_youtube_api_source_channel_id_skips_lookup(monkeypatch):
    calls = []

    def fake_youtube_api_get(url, params, timeout=15):
        calls.append(url)
        if url == youtube_api.YOUTUBE_SEARCH_LIST:
            assert params["channelId"] == CHANNEL_ID
            return {"items": [
                {"id": {"videoId": "low"}, "snippet": {"title": "Low"}},
                {"id": {"videoId": "high"}, "snippet": {"title": "High"}},
            ]}
        stats = {"low": {"viewCount": "100", "likeCount": "1"}, "high": {"viewCount": "100", "likeCount": "9"}}
        return {"items": [{"statistics": stats[params["id"]]}]}

    monkeypatch.setattr(youtube_api, "youtube_api_get", fake_youtube_api_get)
    ranked = asyncio.run(aggregate(CHANNEL_URL, "likes", 50, [YouTubeApiSource("KEY")]))

    assert [v.videoId for v in ranked] == ["high", "low"]
    assert youtube_api.YOUTUBE_CHANNELS_LIST not in calls
    assert calls.count(youtube_api.YOUTUBE_SEARCH_LIST) == 1


def test_handle_with_empty_statistics_yields_zeros(monkeypatch):
    def fake_mirror_get(instances, path, params=None, timeout=15):
        if path == "/api/v1/search":
            return [{"type": "channel", "authorId": "UC_TEST", "channelHandle": "@testhandle"}]
        if path == "/api/v1/channels/UC_TEST/videos":
            return {"videos": [{"videoId": "seen", "title": "Seen"}, {"videoId": "blank", "title": "Blank"}]}
        if path == "/api/v1/videos/seen":
            return {"viewCount": 500, "likeCount": 25}
        return {}

    monkeypatch.setattr(mirror, "mirror_get", fake_mirror_get)
    ranked = asyncio.run(
        aggregate("https://www.youtube.com/@testhandle", "likes", 50, [MirrorSource(["https://inv.test"])])
    )
    assert [(v.videoId, v.views, v.likes) for v in ranked] == [("seen", 500, 25), ("blank", 0, 0)]


def test_mirror_failure_falls_back_to_youtube_api(monkeypatch):
    def failing_mirror_get(instances, path, params=None, timeout=15):
        raise UpstreamError(f"All mirrors failed for {path}")

    monkeypatch.setattr(mirror, "mirror_get", failing_mirror_get)
    monkeypatch.setattr(youtube_api, "resolve_channel_id", lambda identifier, api_key: "UC_API")
    monkeypatch.setattr(
        youtube_api,
        "list_channel_videos",
        lambda channel_id, max_videos, api_key: [VideoSummary("api1", "From API")],
    )
    monkeypatch.setattr(youtube_api, "fetch_video_stats", lambda video_id, api_key: VideoStats(video_id, 10, 3))

    sources = [MirrorSource(["https://inv.test"]), YouTubeApiSource("KEY")]
    ranked = asyncio.run(aggregate("https://www.youtube.com/@testhandle", "likes", 50, sources))
    assert ranked == [RankedVideo(title="From API", videoId="api1", views=10, likes=3)]


def test_mirror_stats_outage_falls_back_to_youtube_api(monkeypatch):
    def fake_mirror_get(instances, path, params=None, timeout=15):
        if path == "/api/v1/search":
            return [{"type": "channel", "authorId": "UC_TEST", "channelHandle": "@testhandle"}]
        if path == "/api/v1/channels/UC_TEST/videos":
            return {"videos": [{"videoId": "a", "title": "A"}, {"videoId": "b", "title": "B"}]}
        raise UpstreamError(f"All mirrors failed for {path}")

    api_stats = {"a": VideoStats("a", 1000, 40), "b": VideoStats("b", 200, 90)}
    monkeypatch.setattr(mirror, "mirror_get", fake_mirror_get)
    monkeypatch.setattr(youtube_api, "resolve_channel_id", lambda identifier, api_key: "UC_TEST")
    monkeypatch.setattr(
        youtube_api,
        "list_channel_videos",
        lambda channel_id, max_videos, api_key: [VideoSummary("a", "A"), VideoSummary("b", "B")],
    )
    monkeypatch.setattr(youtube_api, "fetch_video_stats", lambda video_id, api_key: api_stats[video_id])

    sources = [MirrorSource(["https://inv.test"]), YouTubeApiSource("KEY")]
    ranked = asyncio.run(aggregate("https://www.youtube.com/@testhandle", "likes", 50, sources))
    assert [(v.videoId, v.views, v.likes) for v in ranked] == [("b", 200, 90), ("a", 1000, 40)]
