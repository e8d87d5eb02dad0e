"""Retrieval tool resolution and lazy provisioning.

This module finds the yt-dlp executable. Strategies are tried in order:
an explicitly configured path, the executable search path, and finally
a pre-built release binary downloaded once into a scratch directory.
Concurrent first-time callers share one in-flight provisioning task.
"""

from __future__ import annotations

import asyncio
import os
from pathlib import Path
import platform
import shutil
import stat
import sys
from typing import Awaitable, Callable

import httpx

from core.config import FerryConfig
from core.constants import (
    TOOL_DOWNLOAD_TIMEOUT_SECONDS,
    TOOL_EXECUTABLE_NAME,
    TOOL_RELEASE_ASSETS,
    TOOL_RELEASE_BASE_URL,
)
from core.errors import ToolNotFoundError
from core.logging_config import get_logger

_LOGGER = get_logger(__name__)

BinaryFetcher = Callable[[str, Path], Awaitable[None]]
PathLookup = Callable[[str], "str | None"]

REMEDIATION_HINT = (
    "Set YTDLP_PATH to an existing yt-dlp executable, install yt-dlp on PATH "
    "(pip install yt-dlp), or enable automatic provisioning with FERRY_TOOL_AUTO_PROVISION=1."
)


class RetrievalToolResolver:
    """Resolve the retrieval tool path with single-flight provisioning."""

    def __init__(
        self,
        config: FerryConfig,
        fetch_binary: BinaryFetcher | None = None,
        which: PathLookup = shutil.which,
        platform_key: str | None = None,
    ) -> None:
        self._config = config
        self._fetch_binary = fetch_binary or download_release_asset
        self._which = which
        self._platform_key = platform_key or current_platform_key()
        self._provision_task: asyncio.Future[Path] | None = None
        self._provisioned_path: Path | None = None

    async def resolve(self) -> Path:
        """Return a runnable tool path.

        Returns:
            Path to the retrieval tool executable.

        Raises:
            ToolNotFoundError: If every strategy fails.
        """
        configured_path = self._configured_path()
        if configured_path is not None:
            return configured_path
        search_path = self._which(TOOL_EXECUTABLE_NAME)
        if search_path:
            return Path(search_path)
        if not self._config.tool_auto_provision:
            raise ToolNotFoundError(
                f"{TOOL_EXECUTABLE_NAME} not found and automatic provisioning is disabled. "
                f"{REMEDIATION_HINT}"
            )
        try:
            return await self._provision_once()
        except (httpx.HTTPError, OSError) as error:
            raise ToolNotFoundError(
                f"{TOOL_EXECUTABLE_NAME} not found and provisioning failed: {error}. "
                f"{REMEDIATION_HINT}"
            ) from error

    def _configured_path(self) -> Path | None:
        if not self._config.ytdlp_path:
            return None
        configured = Path(self._config.ytdlp_path).expanduser()
        if configured.is_file():
            return configured
        _LOGGER.warning("configured_tool_missing", ytdlp_path=str(configured))
        return None

    async def _provision_once(self) -> Path:
        if self._provisioned_path is not None and self._provisioned_path.exists():
            return self._provisioned_path
        if self._provision_task is None:
            self._provision_task = asyncio.ensure_future(self._provision())
        task = self._provision_task
        try:
            tool_path = await asyncio.shield(task)
        finally:
            if task.done() and self._provision_task is task:
                self._provision_task = None
        self._provisioned_path = tool_path
        return tool_path

    async def _provision(self) -> Path:
        asset_name = TOOL_RELEASE_ASSETS.get(self._platform_key)
        if asset_name is None:
            raise ToolNotFoundError(
                f"No pre-built {TOOL_EXECUTABLE_NAME} binary for platform '{self._platform_key}'. "
                f"{REMEDIATION_HINT}"
            )
        cache_dir = self._config.tool_cache_dir
        destination = cache_dir / asset_name
        if _is_executable(destination):
            _LOGGER.info("tool_reused", tool_path=str(destination))
            return destination
        cache_dir.mkdir(parents=True, exist_ok=True)
        asset_url = f"{TOOL_RELEASE_BASE_URL}/{asset_name}"
        _LOGGER.info("tool_provisioning_started", asset_url=asset_url, destination=str(destination))
        await self._fetch_binary(asset_url, destination)
        _mark_executable(destination)
        _LOGGER.info("tool_provisioned", tool_path=str(destination))
        return destination


async def download_release_asset(
    asset_url: str,
    destination: Path,
    transport: httpx.AsyncBaseTransport | None = None,
) -> None:
    """Stream a release binary to disk, replacing the destination atomically.

    The partial file is removed if the download does not complete.

    Args:
        asset_url: Public download URL.
        destination: Final binary path.
        transport: Optional HTTP transport override.

    Raises:
        httpx.HTTPError: If the download fails.
        OSError: If the file cannot be written.
    """
    partial_path = destination.with_name(destination.name + ".download")
    try:
        async with httpx.AsyncClient(
            transport=transport,
            follow_redirects=True,
            timeout=TOOL_DOWNLOAD_TIMEOUT_SECONDS,
        ) as client:
            async with client.stream("GET", asset_url) as response:
                response.raise_for_status()
                with partial_path.open("wb") as handle:
                    async for chunk in response.aiter_bytes():
                        handle.write(chunk)
        os.replace(partial_path, destination)
    finally:
        partial_path.unlink(missing_ok=True)


def current_platform_key() -> str:
    """Map the running interpreter platform onto a release asset key."""
    if sys.platform.startswith("linux"):
        if platform.machine().lower() in {"aarch64", "arm64"}:
            return "linux-aarch64"
        return "linux"
    return sys.platform


def _is_executable(path: Path) -> bool:
    return path.is_file() and os.access(path, os.X_OK)


def _mark_executable(path: Path) -> None:
    mode = path.stat().st_mode
    path.chmod(mode | stat.S_IXUSR | stat.S_IXGRP | stat.S_IXOTH)
