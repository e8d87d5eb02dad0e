"""Single-item media download through the retrieval tool.

This module builds the tool command line, streams its output into
throttled progress callbacks, and resolves the file the tool actually
wrote, which may use a different container extension than requested.
"""

from __future__ import annotations

from collections import deque
from pathlib import Path
import re
from typing import Callable

from acquire.process_runner import AsyncioProcessRunner, ProcessRunner
from acquire.tool_resolver import REMEDIATION_HINT, RetrievalToolResolver
from core.constants import (
    DIAGNOSTIC_EXCERPT_CHARS,
    DIAGNOSTIC_TAIL_LINES,
    OUTPUT_CANDIDATE_EXTENSIONS,
    TOOL_EXECUTABLE_NAME,
    TOOL_FORMAT_SELECTOR,
)
from core.errors import DownloadFailedError, ProcessSpawnError
from core.logging_config import get_logger

_LOGGER = get_logger(__name__)
_PERCENT_PATTERN = re.compile(r"(\d{1,3}(?:\.\d+)?)%")

ProgressCallback = Callable[[int], None]


class MediaDownloader:
    """Download one source URL to a local path with the retrieval tool."""

    def __init__(
        self,
        resolver: RetrievalToolResolver,
        runner: ProcessRunner | None = None,
    ) -> None:
        self._resolver = resolver
        self._runner = runner or AsyncioProcessRunner()

    async def download(
        self,
        source_url: str,
        output_template: Path,
        on_progress: ProgressCallback,
    ) -> Path:
        """Run the retrieval tool and return the downloaded file path.

        Args:
            source_url: Remote URL to fetch.
            output_template: Requested output path.
            on_progress: Called with integer percentages when they change.

        Returns:
            Path of the file the tool produced.

        Raises:
            ToolNotFoundError: If no tool can be resolved.
            ProcessSpawnError: If the tool cannot be started.
            DownloadFailedError: If the tool fails or leaves no output file.
        """
        tool_path = await self._resolver.resolve()
        argv = build_download_command(tool_path, source_url, output_template)
        monitor = _OutputMonitor(on_progress)
        _LOGGER.info("download_started", tool_path=str(tool_path), source_url=source_url)
        try:
            exit_code = await self._runner.run(argv, monitor.handle_line)
        except ProcessSpawnError as error:
            raise ProcessSpawnError(f"{error} {REMEDIATION_HINT}") from error
        if exit_code != 0:
            raise DownloadFailedError(
                f"{TOOL_EXECUTABLE_NAME} failed (code {exit_code}): {monitor.diagnostic_excerpt()}",
                exit_code=exit_code,
            )
        resolved_path = find_downloaded_file(output_template)
        if resolved_path is None:
            raise DownloadFailedError(
                f"output not found: {TOOL_EXECUTABLE_NAME} exited cleanly but no file matched "
                f"{output_template.with_suffix('')}[{'/'.join(OUTPUT_CANDIDATE_EXTENSIONS)}]",
                exit_code=exit_code,
            )
        _LOGGER.info("download_completed", source_url=source_url, output_path=str(resolved_path))
        return resolved_path


def build_download_command(tool_path: Path, source_url: str, output_template: Path) -> list[str]:
    """Build the non-interactive retrieval tool argument vector."""
    return [
        str(tool_path),
        "-f",
        TOOL_FORMAT_SELECTOR,
        "-o",
        str(output_template),
        "--no-playlist",
        "--no-check-certificates",
        "--newline",
        source_url,
    ]


def candidate_output_paths(output_template: Path) -> list[Path]:
    """Return output paths to check, in priority order."""
    candidates = [output_template]
    base_path = output_template.with_suffix("")
    for extension in OUTPUT_CANDIDATE_EXTENSIONS:
        candidate = base_path.with_name(base_path.name + extension)
        if candidate not in candidates:
            candidates.append(candidate)
    return candidates


def find_downloaded_file(output_template: Path) -> Path | None:
    """Return the first candidate output path that exists on disk."""
    for candidate in candidate_output_paths(output_template):
        if candidate.is_file():
            return candidate
    return None


def parse_progress_percent(line: str) -> int | None:
    """Extract an integer download percentage from one tool output line."""
    if "[download]" not in line:
        return None
    match = _PERCENT_PATTERN.search(line)
    if match is None:
        return None
    return min(100, max(0, int(float(match.group(1)))))


class _OutputMonitor:
    """Collect diagnostic tails and forward changed progress percentages."""

    def __init__(self, on_progress: ProgressCallback) -> None:
        self._on_progress = on_progress
        self._last_percent: int | None = None
        self._tails: dict[str, deque[str]] = {
            "stdout": deque(maxlen=DIAGNOSTIC_TAIL_LINES),
            "stderr": deque(maxlen=DIAGNOSTIC_TAIL_LINES),
        }

    def handle_line(self, stream_name: str, line: str) -> None:
        self._tails.setdefault(stream_name, deque(maxlen=DIAGNOSTIC_TAIL_LINES)).append(line)
        _LOGGER.debug("tool_output", stream=stream_name, line=line)
        percent = parse_progress_percent(line)
        if percent is None or percent == self._last_percent:
            return
        self._last_percent = percent
        self._on_progress(percent)

    def diagnostic_excerpt(self) -> str:
        lines = self._tails["stderr"] or self._tails["stdout"]
        excerpt = "\n".join(lines).strip()
        if not excerpt:
            return "Unknown error"
        return excerpt[-DIAGNOSTIC_EXCERPT_CHARS:]
