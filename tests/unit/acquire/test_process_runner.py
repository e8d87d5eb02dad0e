"""Unit tests for the asyncio process runner."""

from __future__ import annotations

import asyncio
import sys
import time

import pytest

from acquire.process_runner import AsyncioProcessRunner
from core.errors import ProcessSpawnError


def test_run_streams_both_outputs_and_returns_exit_code() -> None:
    """The runner should deliver stdout and stderr lines and the exit code."""
    lines: list[tuple[str, str]] = []
    script = "import sys; print('out-line'); print('err-line', file=sys.stderr); sys.exit(3)"

    exit_code = asyncio.run(
        AsyncioProcessRunner().run([sys.executable, "-c", script], lambda *line: lines.append(line))
    )

    assert exit_code == 3 and sorted(lines) == [("stderr", "err-line"), ("stdout", "out-line")]


def test_run_raises_spawn_error_for_missing_executable(tmp_path) -> None:
    """A missing executable should raise ProcessSpawnError."""
    with pytest.raises(ProcessSpawnError):
        asyncio.run(AsyncioProcessRunner().run([str(tmp_path / "missing-tool")], lambda *_: None))


def test_cancelled_run_kills_child_before_it_writes(tmp_path) -> None:
    """Cancelling a run should stop the child so it never writes its output."""
    output_path = tmp_path / "clip.mp4"
    script = (
        "import sys, time; print('started', flush=True); time.sleep(1); "
        f"open({str(output_path)!r}, 'w').write('data')"
    )

    async def _cancel_mid_run() -> None:
        started = asyncio.Event()
        run_task = asyncio.ensure_future(
            AsyncioProcessRunner().run([sys.executable, "-c", script], lambda *_: started.set())
        )
        await asyncio.wait_for(started.wait(), timeout=10)
        run_task.cancel()
        with pytest.raises(asyncio.CancelledError):
            await run_task
        await asyncio.sleep(1.5)

    asyncio.run(_cancel_mid_run())

    assert not output_path.exists()


def test_oversized_line_kills_child_and_raises(tmp_path) -> None:
    """A line beyond the stream limit should fail the run and stop the child."""
    output_path = tmp_path / "clip.mp4"
    script = (
        "import sys, time; sys.stdout.write('x' * (2 * 1024 * 1024)); sys.stdout.flush(); "
        f"time.sleep(1); open({str(output_path)!r}, 'w').write('data')"
    )

    with pytest.raises(ValueError):
        asyncio.run(AsyncioProcessRunner().run([sys.executable, "-c", script], lambda *_: None))
    time.sleep(1.5)

    assert not output_path.exists()
