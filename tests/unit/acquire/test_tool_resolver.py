"""Unit tests for retrieval tool resolution and provisioning."""

from __future__ import annotations

import asyncio
from pathlib import Path

import httpx
import pytest

from acquire.tool_resolver import RetrievalToolResolver, download_release_asset
from core.errors import ToolNotFoundError
from tests.factories import make_config


class _CountingFetcher:
    """Fake release download that writes a small file after yielding once."""

    def __init__(self, fail_times: int = 0) -> None:
        self.calls = 0
        self._fail_times = fail_times

    async def __call__(self, asset_url: str, destination: Path) -> None:
        self.calls += 1
        await asyncio.sleep(0)
        if self.calls <= self._fail_times:
            raise httpx.ConnectError("network unreachable")
        destination.write_bytes(b"#!/bin/sh\n")


def _no_tool_on_path(name: str) -> None:
    return None


def test_resolve_prefers_configured_path(tmp_path) -> None:
    """An existing configured path should win over every other strategy."""
    tool_path = tmp_path / "yt-dlp"
    tool_path.write_bytes(b"")
    resolver = RetrievalToolResolver(
        make_config(tmp_path, ytdlp_path=str(tool_path)),
        which=lambda name: "/usr/bin/yt-dlp",
    )

    assert asyncio.run(resolver.resolve()) == tool_path


def test_resolve_falls_back_to_search_path_when_configured_missing(tmp_path) -> None:
    """A configured path that does not exist should fall through to PATH lookup."""
    resolver = RetrievalToolResolver(
        make_config(tmp_path, ytdlp_path=str(tmp_path / "missing")),
        which=lambda name: "/usr/local/bin/yt-dlp",
    )

    assert asyncio.run(resolver.resolve()) == Path("/usr/local/bin/yt-dlp")


def test_resolve_raises_when_provisioning_disabled(tmp_path) -> None:
    """With provisioning disabled a missing tool should fail with a hint."""
    resolver = RetrievalToolResolver(make_config(tmp_path), which=_no_tool_on_path)

    with pytest.raises(ToolNotFoundError, match="YTDLP_PATH"):
        asyncio.run(resolver.resolve())


def test_concurrent_resolves_share_one_provisioning(tmp_path) -> None:
    """Concurrent first-time callers should trigger exactly one download."""
    fetcher = _CountingFetcher()
    resolver = RetrievalToolResolver(
        make_config(tmp_path, tool_auto_provision=True),
        fetch_binary=fetcher,
        which=_no_tool_on_path,
        platform_key="linux",
    )

    async def _resolve_many() -> list[Path]:
        return list(await asyncio.gather(*(resolver.resolve() for _ in range(5))))

    paths = asyncio.run(_resolve_many())

    assert fetcher.calls == 1 and len(set(paths)) == 1


def test_provisioned_path_is_memoized(tmp_path) -> None:
    """Later resolves should reuse the provisioned binary without downloading."""
    fetcher = _CountingFetcher()
    resolver = RetrievalToolResolver(
        make_config(tmp_path, tool_auto_provision=True),
        fetch_binary=fetcher,
        which=_no_tool_on_path,
        platform_key="linux",
    )

    asyncio.run(resolver.resolve())
    asyncio.run(resolver.resolve())

    assert fetcher.calls == 1


def test_provisioning_failure_is_retried_on_next_resolve(tmp_path) -> None:
    """A failed provisioning should not be cached as the final outcome."""
    fetcher = _CountingFetcher(fail_times=1)
    resolver = RetrievalToolResolver(
        make_config(tmp_path, tool_auto_provision=True),
        fetch_binary=fetcher,
        which=_no_tool_on_path,
        platform_key="linux",
    )

    with pytest.raises(ToolNotFoundError):
        asyncio.run(resolver.resolve())
    tool_path = asyncio.run(resolver.resolve())

    assert tool_path.is_file() and fetcher.calls == 2


def test_provisioning_rejects_unsupported_platform(tmp_path) -> None:
    """Platforms without a release binary should fail with ToolNotFoundError."""
    resolver = RetrievalToolResolver(
        make_config(tmp_path, tool_auto_provision=True),
        fetch_binary=_CountingFetcher(),
        which=_no_tool_on_path,
        platform_key="plan9",
    )

    with pytest.raises(ToolNotFoundError, match="plan9"):
        asyncio.run(resolver.resolve())


class _BrokenStream(httpx.AsyncByteStream):
    """Response body that fails after the first chunk."""

    async def __aiter__(self):
        yield b"#!/bin/sh\n"
        raise httpx.ReadError("connection reset")


def test_download_release_asset_writes_destination(tmp_path) -> None:
    """A completed download should land at the destination only."""
    transport = httpx.MockTransport(lambda request: httpx.Response(200, content=b"binary"))
    destination = tmp_path / "yt-dlp_linux"

    asyncio.run(download_release_asset("https://example.test/yt-dlp_linux", destination, transport))

    assert destination.read_bytes() == b"binary" and sorted(tmp_path.iterdir()) == [destination]


def test_download_release_asset_removes_partial_file_on_failure(tmp_path) -> None:
    """An interrupted download should leave neither a partial nor a final file."""
    transport = httpx.MockTransport(lambda request: httpx.Response(200, stream=_BrokenStream()))

    with pytest.raises(httpx.ReadError):
        asyncio.run(
            download_release_asset(
                "https://example.test/yt-dlp_linux", tmp_path / "yt-dlp_linux", transport
            )
        )

    assert list(tmp_path.iterdir()) == []
