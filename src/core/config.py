"""Runtime configuration model for Ferry.

This module owns all environment variable parsing and validation.
Other modules consume a typed config object instead of raw env reads.
"""

from __future__ import annotations

from dataclasses import dataclass
import os
from pathlib import Path
import tempfile

from core.constants import (
    DEFAULT_AWS_REGION,
    DEFAULT_KEY_PREFIX,
    DEFAULT_PROGRESS_QUEUE_SIZE,
    DEFAULT_TOOL_CACHE_DIR_NAME,
)
from core.errors import FerryConfigError


@dataclass(frozen=True)
class FerryConfig:
    """Validated runtime configuration.

    Attributes:
        admin_token: Shared secret expected in the admin header.
        aws_region: AWS region for S3, DynamoDB, and public URLs.
        aws_access_key_id: Explicit AWS access key id.
        aws_secret_access_key: Explicit AWS secret access key.
        video_bucket: Destination S3 bucket for downloaded media.
        table_name: Destination DynamoDB table for media records.
        ytdlp_path: Optional explicit retrieval tool path.
        tool_cache_dir: Scratch directory for a provisioned tool binary.
        tool_auto_provision: Whether a missing tool may be downloaded.
        temp_dir: Scratch directory for per-item downloads.
        key_prefix: S3 key prefix for uploaded media.
        progress_queue_size: Bound for queue-backed progress reporters.
        log_level: Minimum structured log level.
    """

    admin_token: str | None
    aws_region: str
    aws_access_key_id: str | None
    aws_secret_access_key: str | None
    video_bucket: str | None
    table_name: str | None
    ytdlp_path: str | None
    tool_cache_dir: Path
    tool_auto_provision: bool
    temp_dir: Path
    key_prefix: str
    progress_queue_size: int
    log_level: str = "INFO"

    @classmethod
    def from_env(cls) -> "FerryConfig":
        """Build config from process environment variables.

        Returns:
            A validated config object.

        Raises:
            FerryConfigError: If environment values are invalid.
        """
        system_temp = Path(tempfile.gettempdir())
        tool_cache_value = os.getenv(
            "FERRY_TOOL_CACHE_DIR", str(system_temp / DEFAULT_TOOL_CACHE_DIR_NAME)
        )
        temp_dir_value = os.getenv("FERRY_TEMP_DIR", str(system_temp))
        return cls(
            admin_token=_read_optional("ADMIN_TOKEN"),
            aws_region=_read_optional("AWS_REGION") or DEFAULT_AWS_REGION,
            aws_access_key_id=_read_optional("AWS_ACCESS_KEY_ID"),
            aws_secret_access_key=_read_optional("AWS_SECRET_ACCESS_KEY"),
            video_bucket=_read_optional("S3_VIDEO_BUCKET"),
            table_name=_read_optional("DDB_TABLE_NAME"),
            ytdlp_path=_read_optional("YTDLP_PATH"),
            tool_cache_dir=Path(tool_cache_value).expanduser().resolve(),
            tool_auto_provision=_parse_flag(
                "FERRY_TOOL_AUTO_PROVISION", os.getenv("FERRY_TOOL_AUTO_PROVISION", "1")
            ),
            temp_dir=Path(temp_dir_value).expanduser().resolve(),
            key_prefix=(os.getenv("FERRY_KEY_PREFIX") or DEFAULT_KEY_PREFIX).strip("/"),
            progress_queue_size=_parse_positive_int(
                "FERRY_PROGRESS_QUEUE_SIZE",
                os.getenv("FERRY_PROGRESS_QUEUE_SIZE", str(DEFAULT_PROGRESS_QUEUE_SIZE)),
            ),
            log_level=os.getenv("FERRY_LOG_LEVEL", "INFO"),
        )

    def missing_required_settings(self) -> list[str]:
        """Return environment names of required settings that are unset."""
        required = {
            "ADMIN_TOKEN": self.admin_token,
            "AWS_ACCESS_KEY_ID": self.aws_access_key_id,
            "AWS_SECRET_ACCESS_KEY": self.aws_secret_access_key,
            "S3_VIDEO_BUCKET": self.video_bucket,
            "DDB_TABLE_NAME": self.table_name,
        }
        return [name for name, value in required.items() if not value]


def _read_optional(name: str) -> str | None:
    """Read an environment value, treating blank strings as unset."""
    value = os.getenv(name)
    if value is None:
        return None
    stripped = value.strip()
    return stripped or None


def _parse_flag(name: str, raw_value: str) -> bool:
    """Parse a boolean environment flag.

    Args:
        name: Environment variable name for error context.
        raw_value: Raw string from environment.

    Returns:
        Parsed flag value.

    Raises:
        FerryConfigError: If value is not a recognized flag.
    """
    normalized = raw_value.strip().lower()
    if normalized in {"1", "true", "yes", "on"}:
        return True
    if normalized in {"0", "false", "no", "off"}:
        return False
    raise FerryConfigError(
        f"Invalid {name} value: expected 1 or 0, got '{raw_value}'. "
        f"Set {name} to 1 to enable or 0 to disable."
    )


def _parse_positive_int(name: str, raw_value: str) -> int:
    """Parse a positive integer environment value.

    Args:
        name: Environment variable name for error context.
        raw_value: Raw string from environment.

    Returns:
        Parsed integer.

    Raises:
        FerryConfigError: If value is not a positive integer.
    """
    try:
        parsed = int(raw_value)
    except ValueError as error:
        raise FerryConfigError(
            f"Invalid {name} value: expected integer, got '{raw_value}'. "
            f"Set {name} to a positive number."
        ) from error
    if parsed <= 0:
        raise FerryConfigError(
            f"Invalid {name} value: expected a positive integer, got {parsed}. "
            f"Set {name} to a positive number."
        )
    return parsed
