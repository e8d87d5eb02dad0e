"""Object storage uploads for downloaded media.

This module streams one local file into S3 with boto3's managed
transfer and reports the public URL, measured size, and duration.
"""

from __future__ import annotations

from pathlib import Path
import time
from typing import Any

from boto3.exceptions import S3UploadFailedError
from botocore.exceptions import BotoCoreError, ClientError

from core.constants import CONTENT_TYPES_BY_EXTENSION, DEFAULT_CONTENT_TYPE
from core.errors import UploadError
from core.logging_config import get_logger
from core.types import UploadReceipt

_LOGGER = get_logger(__name__)


class S3MediaUploader:
    """Upload media files into one bucket and build their public URLs."""

    def __init__(self, s3_client: Any, bucket: str, region: str) -> None:
        self._s3_client = s3_client
        self._bucket = bucket
        self._region = region

    def upload(self, local_path: Path, destination_key: str) -> UploadReceipt:
        """Stream a local file to object storage.

        Args:
            local_path: File produced by the downloader.
            destination_key: Object key inside the bucket.

        Returns:
            Public URL, size in bytes, and elapsed milliseconds.

        Raises:
            UploadError: If the file is unreadable or storage rejects it.
        """
        started_at = time.monotonic()
        try:
            size_bytes = local_path.stat().st_size
        except OSError as error:
            raise UploadError(f"Cannot read {local_path} for upload: {error}.") from error
        content_type = guess_content_type(local_path)
        try:
            self._s3_client.upload_file(
                str(local_path),
                self._bucket,
                destination_key,
                ExtraArgs={"ContentType": content_type},
            )
        except ClientError as error:
            status_code = _client_error_status(error)
            raise UploadError(
                f"S3 rejected upload to s3://{self._bucket}/{destination_key} "
                f"(status {status_code}): {error}. Check bucket permissions and credentials.",
                status_code=status_code,
            ) from error
        except (S3UploadFailedError, BotoCoreError) as error:
            raise UploadError(
                f"Failed to upload {local_path} to s3://{self._bucket}/{destination_key}: {error}. "
                "Check network access and AWS credentials.",
                status_code=_wrapped_status(error),
            ) from error
        elapsed_ms = int((time.monotonic() - started_at) * 1000)
        public_url = self.public_url(destination_key)
        _LOGGER.info(
            "upload_completed",
            bucket=self._bucket,
            key=destination_key,
            size_bytes=size_bytes,
            elapsed_ms=elapsed_ms,
            content_type=content_type,
        )
        return UploadReceipt(public_url=public_url, size_bytes=size_bytes, elapsed_ms=elapsed_ms)

    def public_url(self, destination_key: str) -> str:
        """Return the durable public HTTPS address of an object key."""
        return f"https://{self._bucket}.s3.{self._region}.amazonaws.com/{destination_key}"


def guess_content_type(local_path: Path) -> str:
    """Map a file extension onto a media content type."""
    return CONTENT_TYPES_BY_EXTENSION.get(local_path.suffix.lower(), DEFAULT_CONTENT_TYPE)


def format_size(size_bytes: int) -> str:
    """Render a byte count as megabytes with two decimals."""
    return f"{size_bytes / (1024 * 1024):.2f} MB"


def _client_error_status(error: ClientError) -> int | None:
    metadata = error.response.get("ResponseMetadata", {})
    status_code = metadata.get("HTTPStatusCode")
    return status_code if isinstance(status_code, int) else None


def _wrapped_status(error: Exception) -> int | None:
    cause = error.__cause__ or error.__context__
    if isinstance(cause, ClientError):
        return _client_error_status(cause)
    return None
