"""Media metadata records and their document store writes.

This module normalizes caller-supplied metadata into a canonical
record and writes it to DynamoDB with put (overwrite) semantics.
"""

from __future__ import annotations

from datetime import date, datetime, timezone
from typing import Any, Callable, Mapping
import uuid

from boto3.dynamodb.types import TypeSerializer
from botocore.exceptions import BotoCoreError, ClientError
from dateutil import parser as date_parser

from core.constants import DATE_FORMAT, MEDIA_KEY_PREFIX, MEDIA_KEY_RANDOM_CHARS
from core.errors import PersistenceError
from core.logging_config import get_logger
from core.types import MediaRecord, MediaRecordDraft

_LOGGER = get_logger(__name__)
_SERIALIZER = TypeSerializer()

Clock = Callable[[], datetime]


class MediaRecordPersister:
    """Write one media record per successful acquisition."""

    def __init__(
        self,
        dynamodb_client: Any,
        table_name: str,
        clock: Clock | None = None,
        key_factory: Callable[[datetime], str] | None = None,
    ) -> None:
        """Initialize the persister.

        Args:
            dynamodb_client: Boto3 DynamoDB client, shared across threads.
            table_name: Destination table for media records.
            clock: Source of the current UTC time.
            key_factory: Primary key generator, given the current time.
        """
        self._dynamodb_client = dynamodb_client
        self._table_name = table_name
        self._clock = clock or _utc_now
        self._key_factory = key_factory or generate_primary_key

    def persist(self, draft: MediaRecordDraft) -> MediaRecord:
        """Normalize and write one record.

        Args:
            draft: Unnormalized record fields.

        Returns:
            The record as written.

        Raises:
            PersistenceError: If the document store write fails.
        """
        now = self._clock()
        record = build_media_record(draft, now, self._key_factory(now))
        try:
            self._dynamodb_client.put_item(
                TableName=self._table_name,
                Item=serialize_item(record_to_item(record)),
            )
        except (ClientError, BotoCoreError) as error:
            raise PersistenceError(
                f"Failed to save media record {record.primary_key}: {error}. "
                "Check the DynamoDB table name and write permissions."
            ) from error
        _LOGGER.info(
            "record_saved",
            primary_key=record.primary_key,
            group=record.group,
            normalized_date=record.normalized_date,
        )
        return record


def build_media_record(draft: MediaRecordDraft, now: datetime, primary_key: str) -> MediaRecord:
    """Build a canonical record from draft fields and the current time."""
    timestamp = format_timestamp(now)
    return MediaRecord(
        primary_key=primary_key,
        storage_url=draft.storage_url,
        category=draft.category,
        group=draft.group,
        title=draft.title,
        attributed_person=draft.attributed_person,
        normalized_date=normalize_upload_date(draft.external_upload_date, now.date()),
        description=build_description(draft.external_upload_date, draft.view_count_hint),
        created_at=timestamp,
        updated_at=timestamp,
        active=True,
    )


def record_to_item(record: MediaRecord) -> dict[str, object]:
    """Map a record onto the stored DynamoDB attribute layout."""
    item: dict[str, object] = {
        "PK": record.primary_key,
        "url": record.storage_url,
        "section": record.category,
        "group": record.group,
        "title": record.title,
        "date": record.normalized_date,
        "description": record.description,
        "createdAt": record.created_at,
        "updatedAt": record.updated_at,
        "active": record.active,
    }
    if record.attributed_person:
        item["person"] = record.attributed_person
    return item


def serialize_item(item: Mapping[str, object]) -> dict[str, object]:
    """Encode a plain item into DynamoDB attribute values."""
    return {name: _SERIALIZER.serialize(value) for name, value in item.items()}


def normalize_upload_date(raw_value: str | None, today: date) -> str:
    """Parse a free-form date into ``YYYY-MM-DD``, falling back to today.

    Accepts ISO dates and timestamps, compact ``YYYYMMDD`` dates, and
    any format python-dateutil understands, such as ``January 5, 2025``.
    """
    text = (raw_value or "").strip()
    if not text:
        return today.strftime(DATE_FORMAT)
    if len(text) == 8 and text.isdigit():
        text = f"{text[:4]}-{text[4:6]}-{text[6:]}"
    default = datetime(today.year, today.month, today.day)
    try:
        parsed = date_parser.parse(text, default=default)
    except (ValueError, OverflowError):
        _LOGGER.info("upload_date_unparsable", raw_value=raw_value)
        return today.strftime(DATE_FORMAT)
    return parsed.date().strftime(DATE_FORMAT)


def build_description(raw_upload_date: str | None, view_count: int | None) -> str:
    """Render the human-readable upload and view summary."""
    uploaded = (raw_upload_date or "").strip() or "N/A"
    views = f"{view_count:,}" if view_count is not None else "N/A"
    return f"Uploaded: {uploaded} | Views: {views}"


def generate_primary_key(now: datetime) -> str:
    """Return a fresh ``MEDIA#<millis>#<random>`` key."""
    millis = int(now.timestamp() * 1000)
    suffix = uuid.uuid4().hex[:MEDIA_KEY_RANDOM_CHARS]
    return f"{MEDIA_KEY_PREFIX}#{millis}#{suffix}"


def format_timestamp(moment: datetime) -> str:
    """Render a UTC ISO-8601 timestamp with millisecond precision."""
    utc_moment = moment.astimezone(timezone.utc)
    return utc_moment.isoformat(timespec="milliseconds").replace("+00:00", "Z")


def _utc_now() -> datetime:
    return datetime.now(timezone.utc)
