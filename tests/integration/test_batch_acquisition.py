"""Integration tests for batch acquisition through the real pipeline stages."""

from __future__ import annotations

import asyncio
from pathlib import Path
import re
import sys
from typing import Sequence

from boto3.dynamodb.types import TypeDeserializer
import pytest

from acquire.coordinator import AcquisitionCoordinator
from acquire.downloader import MediaDownloader
from acquire.process_runner import AsyncioProcessRunner, LineHandler, ProcessRunner
from acquire.progress import ListenerProgressReporter
from acquire.tool_resolver import RetrievalToolResolver
from core.types import ProgressEvent
from store.media_record import MediaRecordPersister
from store.object_store import S3MediaUploader
from tests.factories import TEST_ADMIN_TOKEN, TEST_BUCKET, TEST_REGION, make_config, make_request

_S3_URL_PATTERN = re.compile(
    r"https://media-bucket\.s3\.ca-central-1\.amazonaws\.com/youtube-videos/\d+_[A-Za-z0-9_-]+\.webm"
)
_DATE_PATTERN = re.compile(r"\d{4}-\d{2}-\d{2}")


class _ScriptedToolRunner:
    """Stand in for yt-dlp: unreachable hosts fail, others write a webm file."""

    def __init__(self) -> None:
        self.source_urls: list[str] = []

    async def run(self, argv: Sequence[str], on_line: LineHandler) -> int:
        source_url = argv[-1]
        self.source_urls.append(source_url)
        template = Path(argv[argv.index("-o") + 1])
        if "unreachable" in source_url:
            Path(f"{template.with_suffix('.webm')}.part").write_bytes(b"partial")
            on_line("stderr", "ERROR: Unable to download webpage: Name or service not known")
            return 1
        for percent in ("10.0", "55.5", "100"):
            on_line("stdout", f"[download] {percent}% of 4.00MiB")
        template.with_suffix(".webm").write_bytes(b"w" * 4096)
        return 0


class _RecordingS3Client:
    def __init__(self) -> None:
        self.objects: dict[str, bytes] = {}

    def upload_file(self, filename: str, bucket: str, key: str, ExtraArgs: dict[str, object]) -> None:
        self.objects[f"{bucket}/{key}"] = Path(filename).read_bytes()


class _RecordingTable:
    """DynamoDB client double that keeps decoded items."""

    def __init__(self) -> None:
        self.items: list[dict[str, object]] = []

    def put_item(self, TableName: str, Item: dict[str, dict[str, object]]) -> None:
        deserializer = TypeDeserializer()
        self.items.append({name: deserializer.deserialize(value) for name, value in Item.items()})


def _pipeline(
    tmp_path: Path,
    runner: ProcessRunner | None = None,
    tool_script: str = "",
) -> tuple[AcquisitionCoordinator, _RecordingS3Client, _RecordingTable]:
    tool_path = tmp_path / "yt-dlp"
    tool_path.write_text(tool_script, encoding="utf-8")
    tool_path.chmod(0o755)
    config = make_config(tmp_path, ytdlp_path=str(tool_path))
    s3_client = _RecordingS3Client()
    table = _RecordingTable()
    coordinator = AcquisitionCoordinator(
        config=config,
        downloader=MediaDownloader(
            RetrievalToolResolver(config), runner=runner or _ScriptedToolRunner()
        ),
        uploader=S3MediaUploader(s3_client, bucket=TEST_BUCKET, region=TEST_REGION),
        persister=MediaRecordPersister(table, table_name="media-table"),
    )
    return coordinator, s3_client, table


def test_single_request_is_uploaded_and_recorded(tmp_path: Path) -> None:
    """One valid request should land in storage and the document store."""
    coordinator, s3_client, table = _pipeline(tmp_path)
    request = make_request(0, title="Test", target_group="News", source_url="https://video.example/abc")

    summary = asyncio.run(coordinator.run_batch([request], TEST_ADMIN_TOKEN))

    assert (summary.total, summary.success_count, summary.fail_count) == (1, 1, 0)
    assert _S3_URL_PATTERN.fullmatch(summary.results[0].storage_url or "")
    assert len(s3_client.objects) == 1
    assert (table.items[0]["url"], table.items[0]["group"]) == (summary.results[0].storage_url, "News")


def test_unreachable_first_request_does_not_abort_batch(tmp_path: Path) -> None:
    """A failing first item should leave the second item unaffected."""
    coordinator, _, table = _pipeline(tmp_path)
    requests = [
        make_request(0, source_url="https://unreachable.invalid/watch"),
        make_request(1, source_url="https://video.example/ok"),
    ]

    summary = asyncio.run(coordinator.run_batch(requests, TEST_ADMIN_TOKEN))

    assert [result.success for result in summary.results] == [False, True]
    assert summary.results[0].error_type == "DownloadFailedError"
    assert "Name or service not known" in (summary.results[0].error_description or "")
    assert (summary.success_count, summary.fail_count, len(table.items)) == (1, 1, 1)


def test_batch_leaves_no_temp_files(tmp_path: Path) -> None:
    """Downloads and partial files should be gone after the batch returns."""
    coordinator, _, _ = _pipeline(tmp_path)
    requests = [
        make_request(0, source_url="https://unreachable.invalid/watch"),
        make_request(1, source_url="https://video.example/ok"),
    ]

    asyncio.run(coordinator.run_batch(requests, TEST_ADMIN_TOKEN))

    assert list((tmp_path / "downloads").iterdir()) == []


def test_unparsable_upload_date_still_persists(tmp_path: Path) -> None:
    """A nonsense upload date should produce a record with a valid date."""
    coordinator, _, table = _pipeline(tmp_path)
    request = make_request(0, external_upload_date="around the holidays")

    summary = asyncio.run(coordinator.run_batch([request], TEST_ADMIN_TOKEN))

    assert summary.results[0].success
    assert _DATE_PATTERN.fullmatch(str(table.items[0]["date"]))
    assert table.items[0]["description"] == "Uploaded: around the holidays | Views: 1,234"


def test_progress_events_are_ordered_per_item(tmp_path: Path) -> None:
    """Each item should report its stages in order, ending in a terminal stage."""
    coordinator, _, _ = _pipeline(tmp_path)
    events: list[ProgressEvent] = []
    requests = [
        make_request(0, source_url="https://unreachable.invalid/watch"),
        make_request(1, source_url="https://video.example/ok"),
    ]

    asyncio.run(
        coordinator.run_batch(requests, TEST_ADMIN_TOKEN, ListenerProgressReporter([events.append]))
    )

    second_item = [event for event in events if event.request_index == 1]
    assert [event.stage for event in events if event.request_index == 0][-1] == "error"
    assert [event.details.get("percent") for event in second_item if "percent" in event.details] == [
        10,
        55,
        100,
    ]
    assert [event.stage for event in second_item][-3:] == ["uploading", "saving", "done"]


_SLOW_TOOL_SCRIPT = """#!/bin/sh
while [ "$#" -gt 0 ]; do
  if [ "$1" = "-o" ]; then out="$2"; fi
  shift
done
echo "[download]   1.0% of 4.00MiB"
sleep 1
echo data > "$out"
"""


@pytest.mark.skipif(sys.platform == "win32", reason="uses a POSIX shell script as the tool")
def test_cancelled_batch_leaves_no_temp_files(tmp_path: Path) -> None:
    """Cancelling mid-download should stop the tool before it writes output."""
    coordinator, _, table = _pipeline(
        tmp_path, runner=AsyncioProcessRunner(), tool_script=_SLOW_TOOL_SCRIPT
    )
    events: list[ProgressEvent] = []
    reporter = ListenerProgressReporter([events.append])

    async def _cancel_mid_download() -> None:
        batch_task = asyncio.ensure_future(
            coordinator.run_batch([make_request(0)], TEST_ADMIN_TOKEN, reporter)
        )
        for _ in range(100):
            if any(event.details.get("percent") == 1 for event in events):
                break
            await asyncio.sleep(0.05)
        batch_task.cancel()
        with pytest.raises(asyncio.CancelledError):
            await batch_task
        await asyncio.sleep(1.5)

    asyncio.run(_cancel_mid_download())

    assert list((tmp_path / "downloads").iterdir()) == []
    assert table.items == []
