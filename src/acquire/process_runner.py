"""Child process execution for the retrieval tool.

This module isolates OS process APIs behind a small runner interface.
Production code spawns through asyncio; tests substitute fakes.
"""

from __future__ import annotations

import asyncio
from typing import Callable, Protocol, Sequence, cast

from core.errors import ProcessSpawnError

LineHandler = Callable[[str, str], None]
_STREAM_LIMIT_BYTES = 1024 * 1024


class ProcessRunner(Protocol):
    """Run one command to completion while streaming its output lines."""

    async def run(self, argv: Sequence[str], on_line: LineHandler) -> int:
        """Run ``argv`` and return its exit code.

        ``on_line`` receives ``(stream_name, line)`` for every stdout and
        stderr line as soon as it is read.
        """
        ...


class AsyncioProcessRunner:
    """Non-interactive subprocess runner built on asyncio streams."""

    async def run(self, argv: Sequence[str], on_line: LineHandler) -> int:
        """Spawn ``argv`` without a shell and pump both output streams.

        The child is killed and reaped if streaming fails or the
        awaiting task is cancelled, so no output is written afterwards.

        Args:
            argv: Executable followed by its arguments.
            on_line: Callback for each decoded output line.

        Returns:
            Process exit code.

        Raises:
            ProcessSpawnError: If the executable cannot be started.
        """
        try:
            process = await asyncio.create_subprocess_exec(
                *argv,
                stdin=asyncio.subprocess.DEVNULL,
                stdout=asyncio.subprocess.PIPE,
                stderr=asyncio.subprocess.PIPE,
                limit=_STREAM_LIMIT_BYTES,
            )
        except OSError as error:
            raise ProcessSpawnError(f"Failed to start {argv[0]}: {error}.") from error
        stdout = cast(asyncio.StreamReader, process.stdout)
        stderr = cast(asyncio.StreamReader, process.stderr)
        try:
            await asyncio.gather(
                _pump_lines(stdout, "stdout", on_line),
                _pump_lines(stderr, "stderr", on_line),
            )
            return await process.wait()
        except BaseException:
            await _kill_and_reap(process)
            raise


async def _pump_lines(stream: asyncio.StreamReader, stream_name: str, on_line: LineHandler) -> None:
    """Forward decoded lines from one stream until EOF."""
    while True:
        raw_line = await stream.readline()
        if not raw_line:
            return
        line = raw_line.decode("utf-8", errors="replace").rstrip("\r\n")
        if line:
            on_line(stream_name, line)


async def _kill_and_reap(process: asyncio.subprocess.Process) -> None:
    """Kill a still-running child and wait for it to exit."""
    if process.returncode is None:
        try:
            process.kill()
        except ProcessLookupError:
            pass
    await process.wait()
