"""Batch acquisition orchestration.

This module validates a batch once, then runs each request strictly in
order through download, upload, and metadata persistence. A failing
item is recorded and the batch moves on; temp files are always removed
before an item's terminal result is recorded.
"""

from __future__ import annotations

import asyncio
from dataclasses import replace
from pathlib import Path
import re
import time
from typing import Callable, Mapping, Protocol, Sequence
import uuid

from acquire.downloader import ProgressCallback, candidate_output_paths
from acquire.progress import NullProgressReporter, ProgressReporter
from core.auth import require_authorized
from core.config import FerryConfig
from core.constants import (
    DEFAULT_OUTPUT_EXTENSION,
    FALLBACK_SAFE_TITLE,
    PARTIAL_DOWNLOAD_SUFFIXES,
    PROGRESS_MESSAGE_MAX_CHARS,
    SAFE_TITLE_MAX_CHARS,
)
from core.errors import BatchValidationError, ItemError, SetupError
from core.logging_config import get_logger
from core.types import (
    AcquisitionRequest,
    AcquisitionResult,
    BatchSummary,
    MediaRecord,
    MediaRecordDraft,
    PipelineItemState,
    UploadReceipt,
)
from store.object_store import format_size

_LOGGER = get_logger(__name__)
_UNSAFE_TITLE_CHARS = re.compile(r"[^a-zA-Z0-9_-]")


class Downloader(Protocol):
    async def download(
        self, source_url: str, output_template: Path, on_progress: ProgressCallback
    ) -> Path: ...


class Uploader(Protocol):
    def upload(self, local_path: Path, destination_key: str) -> UploadReceipt: ...


class Persister(Protocol):
    def persist(self, draft: MediaRecordDraft) -> MediaRecord: ...


class AcquisitionCoordinator:
    """Sequential batch runner with per-item failure isolation."""

    def __init__(
        self,
        config: FerryConfig,
        downloader: Downloader,
        uploader: Uploader,
        persister: Persister,
        reporter: ProgressReporter | None = None,
        clock: Callable[[], float] = time.time,
    ) -> None:
        self._config = config
        self._downloader = downloader
        self._uploader = uploader
        self._persister = persister
        self._reporter = reporter or NullProgressReporter()
        self._clock = clock

    async def run_batch(
        self,
        requests: Sequence[AcquisitionRequest],
        provided_token: str | None,
        reporter: ProgressReporter | None = None,
    ) -> BatchSummary:
        """Run every request in order and summarize the outcomes.

        Args:
            requests: Ordered acquisition requests.
            provided_token: Shared secret presented by the caller.
            reporter: Optional per-run progress sink overriding the default.

        Returns:
            Batch summary with one result per request, in submission order.

        Raises:
            BatchValidationError: If the batch is empty.
            SetupError: If required configuration is missing.
            AuthorizationError: If the caller secret does not match.
        """
        self.check_batch(requests, provided_token)
        batch_run = _BatchRun(reporter or self._reporter)
        _LOGGER.info("batch_started", total=len(requests))
        results: list[AcquisitionResult] = []
        for position, request in enumerate(requests):
            if request.request_index != position:
                request = _reindex(request, position)
            results.append(await self._run_item(request, batch_run))
        summary = summarize_results(results)
        _LOGGER.info(
            "batch_completed",
            total=summary.total,
            success_count=summary.success_count,
            fail_count=summary.fail_count,
        )
        return summary

    def check_batch(self, requests: Sequence[AcquisitionRequest], provided_token: str | None) -> None:
        """Apply the batch-level gates without running anything.

        Raises:
            BatchValidationError: If the batch is empty.
            SetupError: If required configuration is missing.
            AuthorizationError: If the caller secret does not match.
        """
        if not requests:
            raise BatchValidationError("No videos: submit at least one item in 'videos'.")
        missing_settings = self._config.missing_required_settings()
        if missing_settings:
            raise SetupError(
                f"Missing required configuration: {', '.join(missing_settings)}. "
                "Set these environment variables and restart the service."
            )
        require_authorized(provided_token, self._config.admin_token)

    async def _run_item(self, request: AcquisitionRequest, batch_run: _BatchRun) -> AcquisitionResult:
        index = request.request_index
        batch_run.advance(index, "fetching", {"title": request.display_title})
        safe_title = sanitize_title(request.display_title)
        temp_path = self._allocate_temp_path(safe_title)
        _LOGGER.info("item_started", request_index=index, title=request.display_title)
        try:
            result = await self._acquire(request, safe_title, temp_path, batch_run)
        except ItemError as error:
            result = self._failed_result(request, batch_run, error)
        except Exception as error:
            _LOGGER.error("item_crashed", request_index=index, error=repr(error))
            result = self._failed_result(request, batch_run, error)
        finally:
            remove_temp_files(temp_path)
        if result.success:
            batch_run.advance(
                index, "done", {"storage_url": result.storage_url, "size": result.size_descriptor}
            )
        else:
            batch_run.advance(index, "error", {"message": _short_message(result.error_description)})
        return result

    async def _acquire(
        self,
        request: AcquisitionRequest,
        safe_title: str,
        temp_path: Path,
        batch_run: _BatchRun,
    ) -> AcquisitionResult:
        index = request.request_index
        temp_path.parent.mkdir(parents=True, exist_ok=True)
        batch_run.advance(index, "downloading", {"source_url": request.source_url})
        downloaded_path = await self._downloader.download(
            request.source_url,
            temp_path,
            lambda percent: batch_run.report(index, "downloading", {"percent": percent}),
        )
        batch_run.advance(index, "uploading")
        object_key = self._build_object_key(safe_title, downloaded_path.suffix)
        receipt = await asyncio.to_thread(self._uploader.upload, downloaded_path, object_key)
        batch_run.advance(index, "saving", {"storage_url": receipt.public_url})
        record = await asyncio.to_thread(self._persister.persist, _build_draft(request, receipt))
        _LOGGER.info(
            "item_succeeded",
            request_index=index,
            primary_key=record.primary_key,
            storage_url=receipt.public_url,
            size_bytes=receipt.size_bytes,
            upload_elapsed_ms=receipt.elapsed_ms,
        )
        return AcquisitionResult(
            request_index=index,
            success=True,
            storage_url=receipt.public_url,
            size_descriptor=format_size(receipt.size_bytes),
        )

    def _failed_result(
        self,
        request: AcquisitionRequest,
        batch_run: _BatchRun,
        error: Exception,
    ) -> AcquisitionResult:
        index = request.request_index
        _LOGGER.warning(
            "item_failed",
            request_index=index,
            stage=batch_run.states.get(index),
            error_type=type(error).__name__,
            error=str(error),
        )
        return AcquisitionResult(
            request_index=index,
            success=False,
            error_description=str(error) or type(error).__name__,
            error_type=type(error).__name__,
        )

    def _allocate_temp_path(self, safe_title: str) -> Path:
        token = uuid.uuid4().hex[:8]
        file_name = f"{self._millis()}_{token}_{safe_title}{DEFAULT_OUTPUT_EXTENSION}"
        return self._config.temp_dir / file_name

    def _build_object_key(self, safe_title: str, extension: str) -> str:
        file_name = f"{self._millis()}_{safe_title}{extension or DEFAULT_OUTPUT_EXTENSION}"
        return f"{self._config.key_prefix}/{file_name}"

    def _millis(self) -> int:
        return int(self._clock() * 1000)


class _BatchRun:
    """Per-run item states and the progress sink they are reported to."""

    def __init__(self, reporter: ProgressReporter) -> None:
        self.reporter = reporter
        self.states: dict[int, PipelineItemState] = {}

    def advance(
        self,
        index: int,
        stage: PipelineItemState,
        details: Mapping[str, object] | None = None,
    ) -> None:
        self.states[index] = stage
        self.report(index, stage, details)

    def report(
        self,
        index: int,
        stage: PipelineItemState,
        details: Mapping[str, object] | None = None,
    ) -> None:
        self.reporter.emit(index, stage, details)


def summarize_results(results: Sequence[AcquisitionResult]) -> BatchSummary:
    """Aggregate per-item results into a batch summary."""
    success_count = sum(1 for result in results if result.success)
    return BatchSummary(
        total=len(results),
        success_count=success_count,
        fail_count=len(results) - success_count,
        results=tuple(results),
    )


def sanitize_title(title: str) -> str:
    """Reduce a display title to a short filesystem and key safe fragment."""
    safe_title = _UNSAFE_TITLE_CHARS.sub("_", title)[:SAFE_TITLE_MAX_CHARS]
    return safe_title or FALLBACK_SAFE_TITLE


def remove_temp_files(output_template: Path) -> None:
    """Remove every file the retrieval tool may have left for one item.

    Removal failures are logged and never raised.
    """
    for candidate in candidate_output_paths(output_template):
        for path in [candidate, *(Path(f"{candidate}{suffix}") for suffix in PARTIAL_DOWNLOAD_SUFFIXES)]:
            try:
                path.unlink(missing_ok=True)
            except OSError as error:
                _LOGGER.warning("temp_cleanup_failed", path=str(path), error=str(error))


def _build_draft(request: AcquisitionRequest, receipt: UploadReceipt) -> MediaRecordDraft:
    return MediaRecordDraft(
        storage_url=receipt.public_url,
        category=request.target_category,
        group=request.target_group,
        title=request.display_title,
        attributed_person=request.attributed_person,
        external_upload_date=request.external_upload_date,
        view_count_hint=request.view_count_hint,
    )


def _reindex(request: AcquisitionRequest, position: int) -> AcquisitionRequest:
    return replace(request, request_index=position)


def _short_message(description: str | None) -> str:
    lines = (description or "").splitlines()
    first_line = lines[0] if lines else "failed"
    return first_line[:PROGRESS_MESSAGE_MAX_CHARS]
