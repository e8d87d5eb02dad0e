"""Request and response bodies for the admin HTTP API.

Wire field names are camelCase to match the existing admin frontend;
Python attributes stay snake_case through pydantic aliases.
"""

from __future__ import annotations

from typing import Sequence

from pydantic import BaseModel, ConfigDict, Field

from core.constants import DEFAULT_CATEGORY
from core.types import AcquisitionRequest, BatchSummary, ProgressEvent
from feeds.channel_feed import ChannelRequest, ChannelVideo


class _WireModel(BaseModel):
    model_config = ConfigDict(populate_by_name=True)


class VideoSubmission(_WireModel):
    """One video entry in a batch request body."""

    url: str = Field(min_length=1)
    title: str = Field(min_length=1)
    group: str = Field(min_length=1)
    section: str | None = None
    channel_title: str | None = Field(default=None, alias="channelTitle")
    upload_date: str | None = Field(default=None, alias="uploadDate")
    view_count: int | None = Field(default=None, alias="viewCount", ge=0)
    video_id: str | None = Field(default=None, alias="videoId")

    def to_request(self, request_index: int) -> AcquisitionRequest:
        return AcquisitionRequest(
            request_index=request_index,
            source_url=self.url.strip(),
            display_title=self.title.strip(),
            target_group=self.group.strip(),
            target_category=_clean(self.section) or DEFAULT_CATEGORY,
            attributed_person=_clean(self.channel_title),
            external_upload_date=_clean(self.upload_date),
            view_count_hint=self.view_count,
            external_id=_clean(self.video_id),
        )


class BatchRequest(_WireModel):
    """Batch acquisition request body."""

    videos: list[VideoSubmission] = Field(default_factory=list)

    def to_requests(self) -> list[AcquisitionRequest]:
        """Convert submissions into indexed acquisition requests."""
        return [video.to_request(index) for index, video in enumerate(self.videos)]


class VideoResult(_WireModel):
    """Outcome of one submitted video."""

    success: bool
    video_id: str | None = Field(default=None, alias="videoId")
    title: str
    s3_url: str | None = Field(default=None, alias="s3Url")
    size: str | None = None
    error: str | None = None


class BatchResponse(_WireModel):
    """Batch acquisition response body."""

    success: bool = True
    success_count: int = Field(alias="successCount")
    fail_count: int = Field(alias="failCount")
    total: int
    results: list[VideoResult]


class ChannelSubmission(_WireModel):
    """One channel entry in a channel listing request."""

    url: str = ""
    group: str = ""


class FetchVideosRequest(_WireModel):
    """Channel listing request body."""

    channels: list[ChannelSubmission]

    def to_channel_requests(self) -> list[ChannelRequest]:
        return [ChannelRequest(url=channel.url.strip(), group=channel.group.strip()) for channel in self.channels]


class ChannelVideoModel(_WireModel):
    """One listed channel video, ready to submit as a batch entry."""

    video_id: str = Field(alias="videoId")
    title: str
    upload_date: str = Field(alias="uploadDate")
    channel_title: str = Field(alias="channelTitle")
    url: str
    group: str
    channel_url: str = Field(alias="channelUrl")
    channel_handle: str = Field(alias="channelHandle")


class FetchVideosResponse(_WireModel):
    """Channel listing response body."""

    success: bool = True
    videos: list[ChannelVideoModel]
    count: int


class ValidateResponse(BaseModel):
    """Admin token check response body."""

    ok: bool


def build_batch_response(
    requests: Sequence[AcquisitionRequest],
    summary: BatchSummary,
) -> BatchResponse:
    """Join batch results with their requests into the response body."""
    results = [
        VideoResult(
            success=result.success,
            video_id=requests[result.request_index].external_id,
            title=requests[result.request_index].display_title,
            s3_url=result.storage_url,
            size=result.size_descriptor,
            error=result.error_description,
        )
        for result in summary.results
    ]
    return BatchResponse(
        success=True,
        success_count=summary.success_count,
        fail_count=summary.fail_count,
        total=summary.total,
        results=results,
    )


def build_fetch_videos_response(videos: Sequence[ChannelVideo]) -> FetchVideosResponse:
    """Map listed channel videos into the response body."""
    return FetchVideosResponse(
        success=True,
        videos=[
            ChannelVideoModel(
                video_id=video.video_id,
                title=video.title,
                upload_date=video.upload_date,
                channel_title=video.channel_title,
                url=video.url,
                group=video.group,
                channel_url=video.channel_url,
                channel_handle=video.channel_handle,
            )
            for video in videos
        ],
        count=len(videos),
    )


def progress_event_payload(event: ProgressEvent) -> dict[str, object]:
    """Render one progress event as a stream line payload."""
    return {
        "type": "progress",
        "index": event.request_index,
        "stage": event.stage,
        **dict(event.details),
    }


def _clean(value: str | None) -> str | None:
    if value is None:
        return None
    return value.strip() or None
