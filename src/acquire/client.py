"""Service wiring for acquisition workflows.

This module builds the storage handles, resolver, downloader, and
coordinator once, and exposes them through one client used by the
HTTP API and the CLI.
"""

from __future__ import annotations

from pathlib import Path
from typing import Sequence

from acquire.coordinator import AcquisitionCoordinator
from acquire.downloader import MediaDownloader
from acquire.progress import LoggingProgressReporter, ProgressReporter
from acquire.tool_resolver import RetrievalToolResolver
from core.auth import is_authorized
from core.config import FerryConfig
from core.types import AcquisitionRequest, BatchSummary
from feeds.channel_feed import ChannelFeedReader, ChannelRequest, ChannelVideo
from store.aws_clients import create_dynamodb_client, create_s3_client, create_session
from store.media_record import MediaRecordPersister
from store.object_store import S3MediaUploader


class FerryClient:
    """Primary entry point for batch acquisition and channel listing."""

    def __init__(
        self,
        config: FerryConfig | None = None,
        coordinator: AcquisitionCoordinator | None = None,
        resolver: RetrievalToolResolver | None = None,
        feed_reader: ChannelFeedReader | None = None,
    ) -> None:
        """Create the client and its long-lived service handles.

        Args:
            config: Optional runtime configuration.
            coordinator: Optional prebuilt coordinator, mainly for tests.
            resolver: Optional prebuilt tool resolver.
            feed_reader: Optional prebuilt channel feed reader.
        """
        self._config = config or FerryConfig.from_env()
        self._resolver = resolver or RetrievalToolResolver(self._config)
        self._coordinator = coordinator or build_coordinator(self._config, self._resolver)
        self._feed_reader = feed_reader or ChannelFeedReader()

    @property
    def config(self) -> FerryConfig:
        return self._config

    async def run_batch(
        self,
        requests: Sequence[AcquisitionRequest],
        provided_token: str | None,
        reporter: ProgressReporter | None = None,
    ) -> BatchSummary:
        """Run one acquisition batch.

        Raises:
            BatchValidationError: If the batch is empty.
            SetupError: If required configuration is missing.
            AuthorizationError: If the caller secret does not match.
        """
        return await self._coordinator.run_batch(requests, provided_token, reporter)

    def check_batch(self, requests: Sequence[AcquisitionRequest], provided_token: str | None) -> None:
        """Apply batch-level gates before a streamed run starts."""
        self._coordinator.check_batch(requests, provided_token)

    def is_authorized(self, provided_token: str | None) -> bool:
        """Return whether the token matches the configured admin secret."""
        return is_authorized(provided_token, self._config.admin_token)

    async def resolve_tool(self) -> Path:
        """Resolve the retrieval tool path, provisioning it when needed."""
        return await self._resolver.resolve()

    async def list_channel_videos(self, channels: Sequence[ChannelRequest]) -> list[ChannelVideo]:
        """List recent videos for each channel, skipping channels that fail."""
        return await self._feed_reader.list_videos(channels)


def build_coordinator(
    config: FerryConfig,
    resolver: RetrievalToolResolver,
    reporter: ProgressReporter | None = None,
) -> AcquisitionCoordinator:
    """Construct AWS handles and the coordinator that uses them."""
    session = create_session(config)
    uploader = S3MediaUploader(
        create_s3_client(session),
        bucket=config.video_bucket or "",
        region=config.aws_region,
    )
    persister = MediaRecordPersister(
        create_dynamodb_client(session),
        table_name=config.table_name or "",
    )
    return AcquisitionCoordinator(
        config=config,
        downloader=MediaDownloader(resolver),
        uploader=uploader,
        persister=persister,
        reporter=reporter or LoggingProgressReporter(),
    )
