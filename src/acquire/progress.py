"""Progress reporting sinks for batch runs.

Reporters are pure notification sinks. ``emit`` never waits on the
consumer: listener failures are logged and dropped, and queue-backed
reporters discard events once their bound is reached.
"""

from __future__ import annotations

import asyncio
from typing import Callable, Mapping, Protocol

from core.logging_config import get_logger
from core.types import PipelineItemState, ProgressEvent

_LOGGER = get_logger(__name__)

ProgressListener = Callable[[ProgressEvent], None]


class ProgressReporter(Protocol):
    """Typed event sink consumed by the batch caller."""

    def emit(
        self,
        request_index: int,
        stage: PipelineItemState,
        details: Mapping[str, object] | None = None,
    ) -> None:
        """Publish one progress event without blocking."""
        ...


class NullProgressReporter:
    """Reporter that discards every event."""

    def emit(
        self,
        request_index: int,
        stage: PipelineItemState,
        details: Mapping[str, object] | None = None,
    ) -> None:
        return None


class LoggingProgressReporter:
    """Reporter that writes each event as a structured log line."""

    def emit(
        self,
        request_index: int,
        stage: PipelineItemState,
        details: Mapping[str, object] | None = None,
    ) -> None:
        _LOGGER.info("item_progress", request_index=request_index, stage=stage, **dict(details or {}))


class ListenerProgressReporter:
    """Reporter that fans events out to registered listener callbacks."""

    def __init__(self, listeners: list[ProgressListener] | None = None) -> None:
        self._listeners: list[ProgressListener] = list(listeners or [])

    def add_listener(self, listener: ProgressListener) -> None:
        """Register a listener for subsequent events."""
        self._listeners.append(listener)

    def emit(
        self,
        request_index: int,
        stage: PipelineItemState,
        details: Mapping[str, object] | None = None,
    ) -> None:
        event = ProgressEvent(request_index=request_index, stage=stage, details=dict(details or {}))
        for listener in self._listeners:
            try:
                listener(event)
            except Exception as error:
                _LOGGER.warning(
                    "progress_listener_failed",
                    request_index=request_index,
                    stage=stage,
                    error=str(error),
                )


class QueueProgressReporter:
    """Reporter that writes into a bounded queue the caller drains.

    Events that do not fit are dropped and counted in ``dropped_count``.
    """

    def __init__(self, maxsize: int) -> None:
        self.queue: asyncio.Queue[ProgressEvent] = asyncio.Queue(maxsize=maxsize)
        self.dropped_count = 0

    def emit(
        self,
        request_index: int,
        stage: PipelineItemState,
        details: Mapping[str, object] | None = None,
    ) -> None:
        event = ProgressEvent(request_index=request_index, stage=stage, details=dict(details or {}))
        try:
            self.queue.put_nowait(event)
        except asyncio.QueueFull:
            self.dropped_count += 1
