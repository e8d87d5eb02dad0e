"""Public SDK surface for Ferry.

This module provides a stable import path for library users.
It re-exports the primary client, the app factory, and typed models.
"""

from __future__ import annotations

from acquire.client import FerryClient, build_coordinator
from acquire.coordinator import AcquisitionCoordinator
from acquire.progress import (
    ListenerProgressReporter,
    LoggingProgressReporter,
    NullProgressReporter,
    QueueProgressReporter,
)
from acquire.tool_resolver import RetrievalToolResolver
from api.app import create_app
from core.batch_file import load_batch_file
from core.config import FerryConfig
from core.types import (
    AcquisitionRequest,
    AcquisitionResult,
    BatchSummary,
    MediaRecord,
    ProgressEvent,
)
from feeds.channel_feed import ChannelRequest, ChannelVideo

__all__ = [
    "AcquisitionCoordinator",
    "AcquisitionRequest",
    "AcquisitionResult",
    "BatchSummary",
    "ChannelRequest",
    "ChannelVideo",
    "FerryClient",
    "FerryConfig",
    "ListenerProgressReporter",
    "LoggingProgressReporter",
    "MediaRecord",
    "NullProgressReporter",
    "ProgressEvent",
    "QueueProgressReporter",
    "RetrievalToolResolver",
    "build_coordinator",
    "create_app",
    "load_batch_file",
]
