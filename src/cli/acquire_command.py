"""Acquire CLI command wiring.

This module registers the acquire subcommand, which runs one batch file
locally through the same client the HTTP API uses.
"""

from __future__ import annotations

import argparse
import asyncio
import json
import sys
from typing import Any

from acquire.client import FerryClient
from acquire.progress import ListenerProgressReporter
from api.schemas import build_batch_response
from core.batch_file import load_batch_file
from core.types import ProgressEvent


def add_acquire_command(subparsers: Any) -> None:
    """Register acquire subcommand."""
    parser = subparsers.add_parser(
        "acquire",
        help="Download, upload, and record every video in a batch file",
    )
    parser.add_argument("batch_file", help="Path to a JSON or YAML batch file")
    parser.add_argument(
        "--token",
        help="Admin token to present; defaults to ADMIN_TOKEN for local runs",
    )
    parser.add_argument(
        "--quiet",
        action="store_true",
        help="Do not print per-item progress to stderr",
    )


def run_acquire_command(client: FerryClient, args: argparse.Namespace) -> int:
    """Handle acquire command invocation.

    Returns:
        ``0`` when every item succeeded, ``1`` otherwise.
    """
    requests = load_batch_file(args.batch_file)
    token = args.token if args.token is not None else client.config.admin_token
    reporter = ListenerProgressReporter([] if args.quiet else [_print_progress])
    summary = asyncio.run(client.run_batch(requests, token, reporter))
    response = build_batch_response(requests, summary)
    print(json.dumps(response.model_dump(by_alias=True, exclude_none=True), indent=2))
    return 0 if summary.fail_count == 0 else 1


def _print_progress(event: ProgressEvent) -> None:
    details = " ".join(f"{key}={value}" for key, value in event.details.items())
    print(f"[{event.request_index}] {event.stage} {details}".rstrip(), file=sys.stderr)
