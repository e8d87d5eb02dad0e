"""Recent-upload listing for YouTube channels.

This module turns a channel URL into its public RSS feed: it extracts
the ``@handle``, scrapes the channel page for the channel id, and parses
the newest feed entries into batch-ready video descriptions.
"""

from __future__ import annotations

from dataclasses import dataclass
import re
from typing import Sequence
import xml.etree.ElementTree as ElementTree

from dateutil.parser import isoparse
import httpx

from core.constants import (
    CHANNEL_FEED_MAX_ENTRIES,
    CHANNEL_FEED_URL,
    CHANNEL_PAGE_URL,
    FEED_REQUEST_TIMEOUT_SECONDS,
    WATCH_URL,
)
from core.errors import FeedError
from core.logging_config import get_logger

_LOGGER = get_logger(__name__)
_HANDLE_PATTERN = re.compile(r"@([^/?#]+)")
_CHANNEL_ID_PATTERNS = (
    re.compile(r'"channelId":"([^"]+)"'),
    re.compile(r'"externalId":"([^"]+)"'),
    re.compile(r'channel_id=([^&"]+)'),
    re.compile(r'"browseId":"([^"]+)"'),
)
_FEED_NAMESPACES = {
    "atom": "http://www.w3.org/2005/Atom",
    "yt": "http://www.youtube.com/xml/schemas/2015",
}


@dataclass(frozen=True)
class ChannelRequest:
    """One channel to list, with the group its videos will be filed under."""

    url: str
    group: str


@dataclass(frozen=True)
class ChannelVideo:
    """One recent channel upload, shaped like a batch video entry."""

    video_id: str
    title: str
    upload_date: str
    channel_title: str
    url: str
    group: str
    channel_url: str
    channel_handle: str


class ChannelFeedReader:
    """Read recent uploads for channels over HTTP."""

    def __init__(
        self,
        transport: httpx.AsyncBaseTransport | None = None,
        max_entries: int = CHANNEL_FEED_MAX_ENTRIES,
    ) -> None:
        self._transport = transport
        self._max_entries = max_entries

    async def list_videos(self, channels: Sequence[ChannelRequest]) -> list[ChannelVideo]:
        """List recent uploads for every channel.

        Channels with a missing URL or group, or whose lookup fails, are
        logged and skipped.

        Args:
            channels: Channels to list.

        Returns:
            Videos from all channels that could be read, in channel order.
        """
        videos: list[ChannelVideo] = []
        async with httpx.AsyncClient(
            transport=self._transport,
            timeout=FEED_REQUEST_TIMEOUT_SECONDS,
            follow_redirects=True,
        ) as client:
            for channel in channels:
                if not channel.url or not channel.group:
                    _LOGGER.warning("channel_skipped", channel_url=channel.url, reason="missing url or group")
                    continue
                try:
                    videos.extend(await self._read_channel(client, channel))
                except FeedError as error:
                    _LOGGER.warning("channel_failed", channel_url=channel.url, error=str(error))
        _LOGGER.info("channels_listed", channel_count=len(channels), video_count=len(videos))
        return videos

    async def _read_channel(
        self,
        client: httpx.AsyncClient,
        channel: ChannelRequest,
    ) -> list[ChannelVideo]:
        handle = extract_channel_handle(channel.url)
        if handle is None:
            raise FeedError(f"Invalid channel URL {channel.url}: expected an @handle URL.")
        page_html = await _fetch_text(client, CHANNEL_PAGE_URL.format(handle=handle))
        channel_id = find_channel_id(page_html)
        if channel_id is None:
            raise FeedError(f"Could not find a channel id on the page for @{handle}.")
        feed_xml = await _fetch_text(client, CHANNEL_FEED_URL.format(channel_id=channel_id))
        return [
            ChannelVideo(
                video_id=entry.video_id,
                title=entry.title,
                upload_date=entry.upload_date,
                channel_title=entry.channel_title,
                url=WATCH_URL.format(video_id=entry.video_id),
                group=channel.group,
                channel_url=channel.url,
                channel_handle=handle,
            )
            for entry in parse_feed_entries(feed_xml, self._max_entries)
        ]


@dataclass(frozen=True)
class FeedEntry:
    """One parsed feed entry before channel context is attached."""

    video_id: str
    title: str
    upload_date: str
    channel_title: str


def extract_channel_handle(channel_url: str) -> str | None:
    """Return the ``@handle`` part of a channel URL, without the ``@``."""
    match = _HANDLE_PATTERN.search(channel_url)
    return match.group(1) if match else None


def find_channel_id(page_html: str) -> str | None:
    """Find the channel id embedded in a channel page."""
    for pattern in _CHANNEL_ID_PATTERNS:
        match = pattern.search(page_html)
        if match:
            return match.group(1)
    return None


def parse_feed_entries(feed_xml: str, max_entries: int) -> list[FeedEntry]:
    """Parse up to ``max_entries`` entries from a channel Atom feed.

    Raises:
        FeedError: If the feed is not well-formed XML.
    """
    try:
        root = ElementTree.fromstring(feed_xml)
    except ElementTree.ParseError as error:
        raise FeedError(f"Channel feed is not valid XML: {error}.") from error
    entries: list[FeedEntry] = []
    for entry in root.findall("atom:entry", _FEED_NAMESPACES):
        video_id = entry.findtext("yt:videoId", default="", namespaces=_FEED_NAMESPACES).strip()
        title = entry.findtext("atom:title", default="", namespaces=_FEED_NAMESPACES).strip()
        if not video_id or not title:
            continue
        published = entry.findtext("atom:published", default="", namespaces=_FEED_NAMESPACES)
        author = entry.findtext("atom:author/atom:name", default="", namespaces=_FEED_NAMESPACES)
        entries.append(
            FeedEntry(
                video_id=video_id,
                title=title,
                upload_date=_format_published(published),
                channel_title=author.strip() or "Unknown",
            )
        )
        if len(entries) >= max_entries:
            break
    return entries


def _format_published(published: str) -> str:
    if not published.strip():
        return "Unknown"
    try:
        return isoparse(published.strip()).date().isoformat()
    except ValueError:
        return published.strip()


async def _fetch_text(client: httpx.AsyncClient, url: str) -> str:
    try:
        response = await client.get(url)
        response.raise_for_status()
    except httpx.HTTPError as error:
        raise FeedError(f"Request to {url} failed: {error}.") from error
    return response.text
