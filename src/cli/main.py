"""Ferry CLI entry points.
This module exposes the admin API server and local batch commands.
It maps argparse commands onto client calls.
"""

from __future__ import annotations

import argparse
import asyncio
from dataclasses import asdict, replace
import json
from typing import Any, Sequence

import uvicorn

from acquire.client import FerryClient
from api.app import create_app
from cli.acquire_command import add_acquire_command, run_acquire_command
from core.config import FerryConfig
from core.logging_config import configure_logging
from feeds.channel_feed import ChannelRequest

DEFAULT_SERVE_HOST = "127.0.0.1"
DEFAULT_SERVE_PORT = 8000


def build_parser() -> argparse.ArgumentParser:
    """Build the top-level CLI parser.

    Returns:
        Configured argument parser.
    """
    parser = argparse.ArgumentParser(prog="ferry", description="Ferry video acquisition CLI")
    parser.add_argument("--log-level", help="Override FERRY_LOG_LEVEL for this command")
    subparsers = parser.add_subparsers(dest="command", required=True)
    _add_serve_command(subparsers)
    add_acquire_command(subparsers)
    _add_resolve_tool_command(subparsers)
    _add_channels_command(subparsers)
    return parser


def main(argv: Sequence[str] | None = None) -> int:
    """Run the Ferry CLI.

    Args:
        argv: Optional argument vector.

    Returns:
        Process exit code.
    """
    parser = build_parser()
    args = parser.parse_args(argv)
    config = _build_config(args.log_level)
    configure_logging(config.log_level)
    client = FerryClient(config)
    if args.command == "serve":
        return _run_serve_command(client, args)
    if args.command == "acquire":
        return run_acquire_command(client, args)
    if args.command == "resolve-tool":
        return _run_resolve_tool_command(client)
    if args.command == "channels":
        return _run_channels_command(client, args)
    parser.error(f"Unsupported command: {args.command}")
    return 2


def _build_config(log_level: str | None) -> FerryConfig:
    """Build config with optional log-level override."""
    config = FerryConfig.from_env()
    if log_level:
        config = replace(config, log_level=log_level.upper())
    return config


def _run_serve_command(client: FerryClient, args: argparse.Namespace) -> int:
    """Handle serve command.

    Args:
        client: Service client shared by every request.
        args: Parsed CLI args.

    Returns:
        Exit code.
    """
    uvicorn.run(create_app(client), host=args.host, port=args.port)
    return 0


def _run_resolve_tool_command(client: FerryClient) -> int:
    """Handle resolve-tool command."""
    tool_path = asyncio.run(client.resolve_tool())
    print(tool_path)
    return 0


def _run_channels_command(client: FerryClient, args: argparse.Namespace) -> int:
    """Handle channels command.

    Returns:
        ``0`` when any video was listed, ``1`` otherwise.
    """
    channels = [ChannelRequest(url=url, group=args.group) for url in args.channel_urls]
    videos = asyncio.run(client.list_channel_videos(channels))
    print(json.dumps([asdict(video) for video in videos], indent=2))
    return 0 if videos else 1


def _add_serve_command(subparsers: Any) -> None:
    """Register serve subcommand."""
    parser = subparsers.add_parser("serve", help="Run the admin HTTP API")
    parser.add_argument("--host", default=DEFAULT_SERVE_HOST, help="Bind address")
    parser.add_argument("--port", type=int, default=DEFAULT_SERVE_PORT, help="Bind port")


def _add_resolve_tool_command(subparsers: Any) -> None:
    """Register resolve-tool subcommand."""
    subparsers.add_parser(
        "resolve-tool",
        help="Print the retrieval tool path, provisioning it when allowed",
    )


def _add_channels_command(subparsers: Any) -> None:
    """Register channels subcommand."""
    parser = subparsers.add_parser("channels", help="List recent uploads for channels")
    parser.add_argument("channel_urls", nargs="+", help="Channel URLs such as https://www.youtube.com/@handle")
    parser.add_argument("--group", required=True, help="Group the listed videos belong to")
