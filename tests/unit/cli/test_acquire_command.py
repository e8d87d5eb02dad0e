"""Unit tests for the acquire CLI command."""

from __future__ import annotations

import json
from typing import Sequence

import pytest

from cli.main import main
from core.config import FerryConfig
from core.types import AcquisitionRequest, AcquisitionResult, BatchSummary
from tests.fixture_paths import fixture_path


class _FakeClient:
    tokens: list[str | None] = []

    def __init__(self, config: FerryConfig) -> None:
        self.config = config

    async def run_batch(
        self,
        requests: Sequence[AcquisitionRequest],
        provided_token: str | None,
        reporter: object = None,
    ) -> BatchSummary:
        _FakeClient.tokens.append(provided_token)
        reporter.emit(0, "done", {"storage_url": "https://media-bucket/x.mp4"})
        results = (
            AcquisitionResult(request_index=0, success=True, storage_url="https://media-bucket/x.mp4", size_descriptor="1.00 MB"),
            AcquisitionResult(request_index=1, success=False, error_description="gone", error_type="DownloadFailedError"),
        )
        return BatchSummary(total=2, success_count=1, fail_count=1, results=results)


@pytest.fixture(autouse=True)
def _fake_client(monkeypatch: pytest.MonkeyPatch) -> None:
    _FakeClient.tokens = []
    monkeypatch.setenv("ADMIN_TOKEN", "env-token")
    monkeypatch.setattr("cli.main.FerryClient", _FakeClient)
    monkeypatch.setattr("cli.main.configure_logging", lambda level_name: None)


def test_acquire_prints_summary_and_fails_on_partial_failure(capsys) -> None:
    """acquire should print the summary JSON and exit 1 when any item failed."""
    exit_code = main(["acquire", str(fixture_path("batches/valid_batch.json"))])

    summary = json.loads(capsys.readouterr().out)
    assert (exit_code, summary["successCount"], summary["results"][1]["error"]) == (1, 1, "gone")


def test_acquire_defaults_token_to_environment(capsys) -> None:
    """Local runs should present ADMIN_TOKEN unless --token is given."""
    main(["acquire", str(fixture_path("batches/valid_batch.json"))])
    main(["acquire", "--token", "explicit", str(fixture_path("batches/valid_batch.json"))])
    _ = capsys.readouterr()

    assert _FakeClient.tokens == ["env-token", "explicit"]


def test_acquire_prints_progress_to_stderr(capsys) -> None:
    """Per-item progress should go to stderr, not the JSON output."""
    main(["acquire", str(fixture_path("batches/valid_batch.json"))])

    assert "[0] done storage_url=https://media-bucket/x.mp4" in capsys.readouterr().err
