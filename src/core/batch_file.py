"""Batch file parsing for CLI acquisition runs.

This module loads JSON or YAML batch files with the same shape as the
HTTP batch request body and validates them into acquisition requests.
"""

from __future__ import annotations

import json
from pathlib import Path
from typing import Mapping, Sequence, cast

import yaml

from core.constants import DEFAULT_CATEGORY
from core.errors import FerryBatchFileError
from core.types import AcquisitionRequest

_REQUIRED_VIDEO_FIELDS = ("url", "title", "group")
_OPTIONAL_TEXT_FIELDS = ("section", "channelTitle", "uploadDate", "videoId")
_SUPPORTED_VIDEO_FIELDS = _REQUIRED_VIDEO_FIELDS + _OPTIONAL_TEXT_FIELDS + ("viewCount",)
_YAML_SUFFIXES = (".yaml", ".yml")


def load_batch_file(batch_path: str) -> list[AcquisitionRequest]:
    """Load and validate a batch file from disk.

    Args:
        batch_path: Path to a ``.json``, ``.yaml``, or ``.yml`` file.

    Returns:
        Ordered acquisition requests.

    Raises:
        FerryBatchFileError: If the file is unreadable or invalid.
    """
    batch_file = Path(batch_path).expanduser().resolve()
    payload = _load_payload(batch_file)
    root_mapping = _expect_mapping(payload, "batch file root")
    videos = _expect_sequence(root_mapping.get("videos"), "batch field 'videos'")
    return [
        _parse_video(index, _expect_mapping(entry, f"videos[{index}]"))
        for index, entry in enumerate(videos)
    ]


def _load_payload(batch_file: Path) -> object:
    if not batch_file.exists():
        raise FerryBatchFileError(
            f"Batch file does not exist at {batch_file}. Provide a valid JSON or YAML file path."
        )
    try:
        raw_text = batch_file.read_text(encoding="utf-8")
    except OSError as error:
        raise FerryBatchFileError(
            f"Failed to read batch file at {batch_file}: {error}. Check file permissions and retry."
        ) from error
    try:
        if batch_file.suffix.lower() in _YAML_SUFFIXES:
            payload = cast(object, yaml.safe_load(raw_text))
        else:
            payload = cast(object, json.loads(raw_text))
    except (yaml.YAMLError, json.JSONDecodeError) as error:
        raise FerryBatchFileError(
            f"Failed to parse batch file at {batch_file}: {error}. Fix the syntax and retry."
        ) from error
    if payload is None:
        raise FerryBatchFileError(f"Batch file at {batch_file} is empty. Define a 'videos' list.")
    return payload


def _expect_mapping(value: object, context: str) -> Mapping[str, object]:
    if isinstance(value, Mapping):
        normalized_mapping = {}
        for key, payload in value.items():
            if not isinstance(key, str):
                raise FerryBatchFileError(
                    f"Invalid {context}: expected string keys, got {type(key).__name__}."
                )
            normalized_mapping[key] = payload
        return normalized_mapping
    raise FerryBatchFileError(
        f"Invalid {context}: expected object mapping, got {type(value).__name__}."
    )


def _expect_sequence(value: object, context: str) -> Sequence[object]:
    if isinstance(value, Sequence) and not isinstance(value, (str, bytes, bytearray)):
        return value
    raise FerryBatchFileError(f"Invalid {context}: expected list, got {type(value).__name__}.")


def _parse_video(index: int, entry: Mapping[str, object]) -> AcquisitionRequest:
    unknown_keys = sorted(set(entry) - set(_SUPPORTED_VIDEO_FIELDS))
    if unknown_keys:
        raise FerryBatchFileError(
            f"Unsupported keys in videos[{index}]: {unknown_keys}. "
            f"Supported keys: {list(_SUPPORTED_VIDEO_FIELDS)}."
        )
    required = {name: _required_text(entry, name, index) for name in _REQUIRED_VIDEO_FIELDS}
    return AcquisitionRequest(
        request_index=index,
        source_url=required["url"],
        display_title=required["title"],
        target_group=required["group"],
        target_category=_optional_text(entry, "section", index) or DEFAULT_CATEGORY,
        attributed_person=_optional_text(entry, "channelTitle", index),
        external_upload_date=_optional_text(entry, "uploadDate", index),
        view_count_hint=_optional_count(entry, index),
        external_id=_optional_text(entry, "videoId", index),
    )


def _required_text(entry: Mapping[str, object], name: str, index: int) -> str:
    value = _optional_text(entry, name, index)
    if value is None:
        raise FerryBatchFileError(
            f"videos[{index}] is missing required field '{name}'. Add a non-empty string value."
        )
    return value


def _optional_text(entry: Mapping[str, object], name: str, index: int) -> str | None:
    value = entry.get(name)
    if value is None:
        return None
    if not isinstance(value, str):
        raise FerryBatchFileError(
            f"videos[{index}].{name} must be a string, got {type(value).__name__}."
        )
    return value.strip() or None


def _optional_count(entry: Mapping[str, object], index: int) -> int | None:
    value = entry.get("viewCount")
    if value is None:
        return None
    if isinstance(value, bool) or not isinstance(value, int) or value < 0:
        raise FerryBatchFileError(
            f"videos[{index}].viewCount must be a non-negative integer, got {value!r}."
        )
    return value
