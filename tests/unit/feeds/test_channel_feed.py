"""Unit tests for channel feed listing."""

from __future__ import annotations

import asyncio

import httpx

from feeds.channel_feed import (
    ChannelFeedReader,
    ChannelRequest,
    extract_channel_handle,
    find_channel_id,
    parse_feed_entries,
)
from tests.fixture_paths import fixture_path

_CHANNEL_PAGE = '<html><script>var data = {"externalId":"UC_example"};</script></html>'


def _feed_xml() -> str:
    return fixture_path("channel_feed.xml").read_text(encoding="utf-8")


def _youtube_transport(requested: list[str]) -> httpx.MockTransport:
    def _handler(request: httpx.Request) -> httpx.Response:
        requested.append(str(request.url))
        if request.url.path == "/@example":
            return httpx.Response(200, text=_CHANNEL_PAGE)
        if request.url.path == "/feeds/videos.xml":
            return httpx.Response(200, text=_feed_xml())
        return httpx.Response(404, text="not found")

    return httpx.MockTransport(_handler)


def test_list_videos_reads_feed_for_channel_id() -> None:
    """The feed should be requested for the id found on the channel page."""
    requested: list[str] = []
    reader = ChannelFeedReader(transport=_youtube_transport(requested))

    videos = asyncio.run(
        reader.list_videos([ChannelRequest(url="https://www.youtube.com/@example", group="Talks")])
    )

    assert requested[-1] == "https://www.youtube.com/feeds/videos.xml?channel_id=UC_example"
    assert len(videos) == 5


def test_list_videos_attaches_channel_context() -> None:
    """Listed videos should carry the group, handle, and watch URL."""
    reader = ChannelFeedReader(transport=_youtube_transport([]))

    videos = asyncio.run(
        reader.list_videos([ChannelRequest(url="https://www.youtube.com/@example", group="Talks")])
    )

    first = videos[0]
    assert (first.title, first.upload_date, first.group, first.channel_handle, first.url) == (
        "First & Foremost",
        "2025-01-05",
        "Talks",
        "example",
        "https://www.youtube.com/watch?v=vid00001",
    )


def test_list_videos_skips_failing_and_incomplete_channels() -> None:
    """Unknown channels and entries without a group should be skipped."""
    reader = ChannelFeedReader(transport=_youtube_transport([]))

    videos = asyncio.run(
        reader.list_videos(
            [
                ChannelRequest(url="https://www.youtube.com/@missing", group="Talks"),
                ChannelRequest(url="https://www.youtube.com/@example", group=""),
                ChannelRequest(url="https://www.youtube.com/c/legacy", group="Talks"),
            ]
        )
    )

    assert videos == []


def test_extract_channel_handle_ignores_trailing_path() -> None:
    """Handles should stop at the next path segment or query."""
    assert extract_channel_handle("https://www.youtube.com/@example/videos?view=0") == "example"


def test_find_channel_id_prefers_first_pattern() -> None:
    """The channelId pattern should win over later patterns."""
    page_html = '"browseId":"UC_browse" "channelId":"UC_channel"'

    assert find_channel_id(page_html) == "UC_channel"


def test_parse_feed_entries_defaults_missing_author_and_date() -> None:
    """Entries without author or date should use Unknown placeholders."""
    entries = parse_feed_entries(_feed_xml(), max_entries=5)

    assert (entries[3].channel_title, entries[3].upload_date) == ("Unknown", "Unknown")
