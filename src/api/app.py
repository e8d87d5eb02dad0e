"""FastAPI application definition.

This module creates the admin API: batch acquisition (plain and
streamed), admin token validation, channel listing, and a health check.
Domain errors raised by the client map onto HTTP status codes here.
"""

from __future__ import annotations

import asyncio
import json
from typing import AsyncIterator, Sequence

from fastapi import Depends, FastAPI, Header, Request
from fastapi.encoders import jsonable_encoder
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse, StreamingResponse

from acquire.client import FerryClient
from acquire.progress import QueueProgressReporter
from api.schemas import (
    BatchRequest,
    BatchResponse,
    FetchVideosRequest,
    FetchVideosResponse,
    ValidateResponse,
    build_batch_response,
    build_fetch_videos_response,
    progress_event_payload,
)
from core.constants import ADMIN_TOKEN_HEADER
from core.errors import AuthorizationError, BatchValidationError, FeedError, FerryError, SetupError
from core.logging_config import get_logger
from core.types import AcquisitionRequest

_LOGGER = get_logger(__name__)
_ERROR_STATUS_CODES: dict[type[FerryError], int] = {
    BatchValidationError: 400,
    FeedError: 400,
    AuthorizationError: 401,
    SetupError: 500,
}
NDJSON_MEDIA_TYPE = "application/x-ndjson"


def create_app(client: FerryClient | None = None) -> FastAPI:
    """Build the API application.

    Args:
        client: Optional prebuilt client. Built from the environment when omitted.

    Returns:
        Configured FastAPI application.
    """
    app = FastAPI(
        title="Ferry Admin API",
        description="Batch video acquisition into object storage with metadata records",
        version="0.1.0",
    )
    app.state.client = client or FerryClient()
    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_credentials=False,
        allow_methods=["*"],
        allow_headers=["*"],
    )
    _register_error_handlers(app)
    _register_routes(app)
    return app


def _get_client(request: Request) -> FerryClient:
    return request.app.state.client


def _register_error_handlers(app: FastAPI) -> None:
    async def _invalid_body(request: Request, error: RequestValidationError) -> JSONResponse:
        return JSONResponse(
            status_code=400,
            content={"error": "Invalid request body.", "details": jsonable_encoder(error.errors())},
        )

    async def _domain_error(request: Request, error: Exception) -> JSONResponse:
        status_code = _ERROR_STATUS_CODES.get(type(error), 500)
        _LOGGER.warning(
            "request_rejected",
            path=request.url.path,
            status_code=status_code,
            error_type=type(error).__name__,
            error=str(error),
        )
        return JSONResponse(status_code=status_code, content={"error": str(error)})

    app.add_exception_handler(RequestValidationError, _invalid_body)
    for error_type in _ERROR_STATUS_CODES:
        app.add_exception_handler(error_type, _domain_error)


def _register_routes(app: FastAPI) -> None:
    @app.get("/ping")
    async def ping() -> dict[str, str]:
        """Health check endpoint."""
        return {"message": "pong"}

    @app.post("/api/admin/validate", response_model=ValidateResponse)
    async def validate_token(
        x_admin_token: str | None = Header(default=None, alias=ADMIN_TOKEN_HEADER),
        client: FerryClient = Depends(_get_client),
    ) -> JSONResponse:
        """Report whether the admin token is valid."""
        ok = client.is_authorized(x_admin_token)
        return JSONResponse(status_code=200 if ok else 401, content={"ok": ok})

    @app.post(
        "/api/admin/youtube/download-upload",
        response_model=BatchResponse,
        response_model_exclude_none=True,
    )
    async def download_upload(
        body: BatchRequest,
        x_admin_token: str | None = Header(default=None, alias=ADMIN_TOKEN_HEADER),
        client: FerryClient = Depends(_get_client),
    ) -> BatchResponse:
        """Acquire every submitted video and report per-item outcomes."""
        requests = body.to_requests()
        summary = await client.run_batch(requests, x_admin_token)
        return build_batch_response(requests, summary)

    @app.post("/api/admin/youtube/download-upload/stream")
    async def download_upload_stream(
        body: BatchRequest,
        x_admin_token: str | None = Header(default=None, alias=ADMIN_TOKEN_HEADER),
        client: FerryClient = Depends(_get_client),
    ) -> StreamingResponse:
        """Acquire every submitted video, streaming progress as NDJSON lines."""
        requests = body.to_requests()
        client.check_batch(requests, x_admin_token)
        reporter = QueueProgressReporter(client.config.progress_queue_size)
        return StreamingResponse(
            stream_batch(client, requests, x_admin_token, reporter),
            media_type=NDJSON_MEDIA_TYPE,
        )

    @app.post(
        "/api/admin/youtube/fetch-videos",
        response_model=FetchVideosResponse,
    )
    async def fetch_videos(
        body: FetchVideosRequest,
        x_admin_token: str | None = Header(default=None, alias=ADMIN_TOKEN_HEADER),
        client: FerryClient = Depends(_get_client),
    ) -> FetchVideosResponse:
        """List recent uploads for the submitted channels."""
        if not client.is_authorized(x_admin_token):
            raise AuthorizationError("Unauthorized: missing or invalid admin token.")
        videos = await client.list_channel_videos(body.to_channel_requests())
        if not videos:
            raise FeedError(
                "No videos found. Make sure each channel URL is an @handle URL "
                "and the channel has public videos."
            )
        return build_fetch_videos_response(videos)


async def stream_batch(
    client: FerryClient,
    requests: Sequence[AcquisitionRequest],
    provided_token: str | None,
    reporter: QueueProgressReporter,
) -> AsyncIterator[str]:
    """Run one batch and yield its progress events, then one summary line.

    Args:
        client: Client that runs the batch.
        requests: Ordered acquisition requests.
        provided_token: Shared secret presented by the caller.
        reporter: Bounded queue reporter the batch writes into.

    Yields:
        Newline-terminated JSON lines.
    """
    batch_task = asyncio.ensure_future(client.run_batch(requests, provided_token, reporter))
    try:
        while True:
            next_event = asyncio.ensure_future(reporter.queue.get())
            done, _ = await asyncio.wait(
                {batch_task, next_event},
                return_when=asyncio.FIRST_COMPLETED,
            )
            if next_event in done:
                yield _ndjson_line(progress_event_payload(next_event.result()))
                continue
            next_event.cancel()
            break
        while not reporter.queue.empty():
            yield _ndjson_line(progress_event_payload(reporter.queue.get_nowait()))
        response = build_batch_response(requests, batch_task.result())
        yield _ndjson_line(
            {
                "type": "summary",
                **response.model_dump(by_alias=True, exclude_none=True),
                "droppedEvents": reporter.dropped_count,
            }
        )
    finally:
        if not batch_task.done():
            batch_task.cancel()


def _ndjson_line(payload: dict[str, object]) -> str:
    return json.dumps(payload, separators=(",", ":")) + "\n"
