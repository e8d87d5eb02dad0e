"""AWS service handle construction.

This module encapsulates boto3 session creation. Handles are built once
at startup and injected into the uploader and the record persister.
"""

from __future__ import annotations

from typing import Any

import boto3

from core.config import FerryConfig


def create_session(config: FerryConfig) -> Any:
    """Create a boto3 session from explicit configuration.

    Args:
        config: Runtime config with region and optional credentials.

    Returns:
        Boto3 session.
    """
    session_kwargs: dict[str, str] = {"region_name": config.aws_region}
    if config.aws_access_key_id and config.aws_secret_access_key:
        session_kwargs["aws_access_key_id"] = config.aws_access_key_id
        session_kwargs["aws_secret_access_key"] = config.aws_secret_access_key
    return boto3.session.Session(**session_kwargs)


def create_s3_client(session: Any) -> Any:
    """Create a boto3 S3 client from a session."""
    return session.client("s3")


def create_dynamodb_client(session: Any) -> Any:
    """Create a boto3 DynamoDB client from a session.

    Clients are safe to share across worker threads; resources are not.
    """
    return session.client("dynamodb")
