"""Asyncio subprocess plumbing for the native tool.

WHY: Both the warmup call and real conversions spawn dxf_outlines, and
both must leave no orphaned process behind when the awaiting task is
cancelled. Keeping the spawn/pipe/kill logic in one place keeps the
converter and the warmup coordinator about protocol, not plumbing.

HOW: run_process() spawns with all three streams piped and runs three
coroutines side by side: feed stdin then close it, read stdout to EOF,
read stderr line by line into a sink. run_to_completion() spawns with
stdio discarded and only waits. Both kill and reap the child if the
await is interrupted (cancellation, timeout, or an error in the sink).

RULES:
- stdin is closed after the full input is written (end-of-input signal)
- stdout is buffered whole in memory
- stderr lines are decoded as UTF-8 (errors replaced), without line endings,
  and cut to _MAX_LINE_BYTES
- Exit codes are reported, never interpreted here
"""

from __future__ import annotations

import asyncio
import logging
from collections import deque
from collections.abc import Callable
from dataclasses import dataclass, field
from pathlib import Path
from typing import List, Optional, Sequence, Union

logger = logging.getLogger(__name__)

_READ_CHUNK_SIZE = 64 * 1024
_MAX_LINE_BYTES = 64 * 1024  # longer stderr lines are truncated


@dataclass
class InvocationResult:
    """Exit status and captured output of one subprocess run."""

    exit_code: int
    stdout: bytes
    stderr: List[str] = field(default_factory=list)

    @property
    def stderr_text(self) -> str:
        return "\n".join(self.stderr)


async def run_process(
    executable: Union[str, Path],
    args: Sequence[str],
    input_bytes: bytes,
    on_stderr_line: Optional[Callable[[str], None]] = None,
    max_stderr_lines: Optional[int] = None,
) -> InvocationResult:
    """Run the executable with piped stdio and wait for it to exit.

    RULES:
    - Raises OSError if the executable cannot be launched
    - on_stderr_line is called once per complete stderr line, in order
    - max_stderr_lines keeps only the most recent N lines in the result
      (None or <= 0 keeps everything); the sink still sees every line
    - On cancellation the child is killed and reaped, then the
      CancelledError propagates

    Args:
        executable: Path to the program.
        args: Arguments after the program name.
        input_bytes: Written to the child's stdin in full.
        on_stderr_line: Optional per-line sink for diagnostics.
        max_stderr_lines: Cap on buffered stderr lines.

    Returns:
        InvocationResult with exit code, stdout bytes, and stderr lines.
    """
    proc = await asyncio.create_subprocess_exec(
        str(executable),
        *args,
        stdin=asyncio.subprocess.PIPE,
        stdout=asyncio.subprocess.PIPE,
        stderr=asyncio.subprocess.PIPE,
    )
    logger.debug("Spawned %s (pid %s)", executable, proc.pid)

    stderr_lines: deque = deque(
        maxlen=max_stderr_lines if max_stderr_lines and max_stderr_lines > 0 else None
    )

    def _collect(line: str) -> None:
        stderr_lines.append(line)
        if on_stderr_line is not None:
            on_stderr_line(line)

    tasks = [
        asyncio.ensure_future(proc.stdout.read()),
        asyncio.ensure_future(_read_lines(proc.stderr, _collect)),
        asyncio.ensure_future(_feed_stdin(proc.stdin, input_bytes)),
    ]
    try:
        stdout, _, _ = await asyncio.gather(*tasks)
        exit_code = await proc.wait()
    finally:
        for task in tasks:
            task.cancel()
        await _kill(proc)
        # Collect the outcome of every pipe task so none is left pending
        await asyncio.gather(*tasks, return_exceptions=True)

    return InvocationResult(exit_code=exit_code, stdout=stdout, stderr=list(stderr_lines))


async def run_to_completion(executable: Union[str, Path], args: Sequence[str]) -> int:
    """Run the executable with stdio discarded and return its exit code.

    RULES:
    - Raises OSError if the executable cannot be launched
    - On cancellation the child is killed and reaped before re-raising
    """
    proc = await asyncio.create_subprocess_exec(
        str(executable),
        *args,
        stdin=asyncio.subprocess.DEVNULL,
        stdout=asyncio.subprocess.DEVNULL,
        stderr=asyncio.subprocess.DEVNULL,
    )
    try:
        return await proc.wait()
    finally:
        await _kill(proc)


async def _feed_stdin(stdin: asyncio.StreamWriter, data: bytes) -> None:
    try:
        if data:
            stdin.write(data)
            await stdin.drain()
    except (BrokenPipeError, ConnectionResetError):
        # The tool exited before reading everything; its exit code says why.
        logger.debug("Child closed stdin before all input was written")
    finally:
        stdin.close()


async def _read_lines(stream: asyncio.StreamReader, sink: Callable[[str], None]) -> None:
    """Split stderr into lines without a per-line length limit.

    RULES:
    - Lines longer than _MAX_LINE_BYTES are truncated, never fatal
    - A final line without a trailing newline is still delivered
    """
    line = bytearray()
    while True:
        chunk = await stream.read(_READ_CHUNK_SIZE)
        if not chunk:
            break
        start = 0
        while True:
            end = chunk.find(b"\n", start)
            if end < 0:
                _append_capped(line, chunk[start:])
                break
            _append_capped(line, chunk[start:end])
            sink(_decode_line(line))
            line.clear()
            start = end + 1
    if line:
        sink(_decode_line(line))


def _append_capped(line: bytearray, data: bytes) -> None:
    room = _MAX_LINE_BYTES - len(line)
    if room > 0:
        line.extend(data[:room])


def _decode_line(line: bytearray) -> str:
    return line.decode("utf-8", errors="replace").rstrip("\r")


async def _kill(proc: asyncio.subprocess.Process) -> None:
    """Kill and reap the child if it is still running."""
    if proc.returncode is not None:
        return
    try:
        proc.kill()
    except ProcessLookupError:
        pass
    else:
        logger.debug("Killed pid %s", proc.pid)
    await proc.wait()
