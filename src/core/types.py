"""Shared typed models.

This module defines immutable data models used by the acquisition
pipeline, storage adapters, API, and CLI to keep interfaces explicit.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Literal, Mapping

from core.constants import DEFAULT_CATEGORY

PipelineItemState = Literal["fetching", "downloading", "uploading", "saving", "done", "error"]


@dataclass(frozen=True)
class AcquisitionRequest:
    """One caller-submitted media acquisition request.

    Attributes:
        request_index: Zero-based position in the submitted batch.
        source_url: Remote page or media URL handed to the retrieval tool.
        display_title: Human title stored on the record.
        target_group: Group the record is filed under.
        target_category: Section the record is filed under.
        attributed_person: Optional person or channel credited for the media.
        external_upload_date: Optional free-form upload date from the source.
        view_count_hint: Optional view count reported by the source.
        external_id: Optional caller-side id echoed back in results.
    """

    request_index: int
    source_url: str
    display_title: str
    target_group: str
    target_category: str = DEFAULT_CATEGORY
    attributed_person: str | None = None
    external_upload_date: str | None = None
    view_count_hint: int | None = None
    external_id: str | None = None


@dataclass(frozen=True)
class MediaRecordDraft:
    """Unnormalized record fields handed to the metadata persister."""

    storage_url: str
    category: str
    group: str
    title: str
    attributed_person: str | None
    external_upload_date: str | None
    view_count_hint: int | None


@dataclass(frozen=True)
class MediaRecord:
    """Persisted media metadata record.

    Attributes:
        primary_key: Generated ``MEDIA#<millis>#<random>`` key.
        storage_url: Public object storage URL of the media.
        category: Section name.
        group: Group name.
        title: Display title.
        attributed_person: Credited person or channel, when known.
        normalized_date: Canonical ``YYYY-MM-DD`` date.
        description: Human-readable upload/view summary.
        created_at: ISO-8601 UTC creation timestamp.
        updated_at: ISO-8601 UTC update timestamp.
        active: Visibility flag, always true when written here.
    """

    primary_key: str
    storage_url: str
    category: str
    group: str
    title: str
    attributed_person: str | None
    normalized_date: str
    description: str
    created_at: str
    updated_at: str
    active: bool = True


@dataclass(frozen=True)
class UploadReceipt:
    """Outcome of one object storage upload."""

    public_url: str
    size_bytes: int
    elapsed_ms: int


@dataclass(frozen=True)
class AcquisitionResult:
    """Terminal outcome for one acquisition request."""

    request_index: int
    success: bool
    storage_url: str | None = None
    size_descriptor: str | None = None
    error_description: str | None = None
    error_type: str | None = None


@dataclass(frozen=True)
class BatchSummary:
    """Aggregated outcome of one batch run, in submission order."""

    total: int
    success_count: int
    fail_count: int
    results: tuple[AcquisitionResult, ...]


@dataclass(frozen=True)
class ProgressEvent:
    """One progress notification for a batch item."""

    request_index: int
    stage: PipelineItemState
    details: Mapping[str, object] = field(default_factory=dict)
