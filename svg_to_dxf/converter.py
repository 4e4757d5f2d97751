"""Async SVG → DXF conversion through the native dxf_outlines executable.

WHY: Callers (CLI, HTTP API, host applications) want "give SVG bytes,
get DXF bytes" without knowing about runtime identifiers, onefile
extraction, argument grammar, or pipe handling. This module is that
single entry point.

HOW: SvgToDxfConverter resolves its executable once at construction.
convert() validates input, awaits the warmup coordinator, encodes the
options, and runs the binary through process.run_process() with the
SVG on stdin. A zero exit returns stdout; anything else raises
ConversionError with the exit code and captured stderr.

RULES:
- Input is validated before any subprocess is spawned
- Warmup is awaited before the first conversion
- Cancellation kills the child and propagates asyncio.CancelledError;
  no partial output is ever returned
- Each stderr line is logged at WARNING and passed to on_stderr
- Non-zero exit → ConversionError(exit_code, stderr joined with "\\n")
- Stream and file inputs are buffered fully, then converted as bytes
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Callable
from pathlib import Path
from typing import BinaryIO, Optional, Union

from svg_to_dxf import config
from svg_to_dxf.errors import (
    ConversionError,
    ConversionTimeoutError,
    ExecutableNotFoundError,
    InvalidArgumentError,
)
from svg_to_dxf.options import ConversionOptions, encode_options
from svg_to_dxf.process import InvocationResult, run_process
from svg_to_dxf.runtime import default_executable_path
from svg_to_dxf.warmup import WarmupCoordinator, default_coordinator

logger = logging.getLogger(__name__)


class SvgToDxfConverter:
    """Converts SVG data to DXF using the native dxf_outlines executable.

    WHY: One object per executable keeps the resolved path, the stderr
    sink, and the limits together, and lets many conversions run
    concurrently on one event loop.

    HOW: The constructor resolves and checks the executable. Every
    convert* coroutine funnels into convert(), which does the warmup,
    the spawn, and the exit-code translation.

    RULES:
    - executable_path defaults to SVG_TO_DXF_EXECUTABLE or the platform binary
    - An explicit executable_path that does not exist raises
      ExecutableNotFoundError for that exact path
    - warmup defaults to the process-wide coordinator
    - max_stderr_lines defaults to SVG_TO_DXF_MAX_STDERR_LINES (0 or negative = unlimited)
    - timeout_s defaults to SVG_TO_DXF_TIMEOUT (None or 0 = no limit)
    """

    def __init__(
        self,
        executable_path: Optional[Union[str, Path]] = None,
        warmup: Optional[WarmupCoordinator] = None,
        on_stderr: Optional[Callable[[str], None]] = None,
        max_stderr_lines: Optional[int] = None,
        timeout_s: Optional[float] = None,
    ) -> None:
        if executable_path is None:
            path = default_executable_path()
        else:
            path = Path(executable_path)
            if not path.is_file():
                raise ExecutableNotFoundError(path)

        self._executable_path = path
        self._warmup = warmup if warmup is not None else default_coordinator()
        self._on_stderr = on_stderr
        self._max_stderr_lines = (
            config.max_stderr_lines() if max_stderr_lines is None else max(int(max_stderr_lines), 0)
        )
        self._timeout_s = config.conversion_timeout() if timeout_s is None else timeout_s

    @property
    def executable_path(self) -> Path:
        return self._executable_path

    @property
    def warmup(self) -> WarmupCoordinator:
        return self._warmup

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------

    async def convert(
        self,
        svg_bytes: bytes,
        options: Optional[ConversionOptions] = None,
    ) -> bytes:
        """Convert SVG bytes to DXF bytes.

        RULES:
        - svg_bytes must be bytes, bytearray, or memoryview (None is rejected)
        - options=None means ConversionOptions.default()
        - Raises InvalidArgumentError, ConversionError,
          ConversionTimeoutError, OSError (launch failure), or
          asyncio.CancelledError

        Args:
            svg_bytes: The complete SVG document.
            options: Conversion settings.

        Returns:
            The DXF document produced by the tool.
        """
        if svg_bytes is None:
            raise InvalidArgumentError("svg_bytes must not be None")
        if not isinstance(svg_bytes, (bytes, bytearray, memoryview)):
            raise InvalidArgumentError(
                "svg_bytes must be bytes, got {}".format(type(svg_bytes).__name__)
            )
        if options is None:
            options = ConversionOptions.default()
        elif not isinstance(options, ConversionOptions):
            raise InvalidArgumentError(
                "options must be ConversionOptions, got {}".format(type(options).__name__)
            )

        # Onefile extraction must be finished before the first real run
        await self._warmup.ensure_warmed_up(self._executable_path)

        args = encode_options(options)
        logger.debug("Starting DXF conversion with executable: %s", self._executable_path)
        logger.debug("Conversion arguments: %s", " ".join(args))

        result = await self._invoke(args, bytes(svg_bytes))

        logger.debug("DXF conversion completed with exit code: %s", result.exit_code)

        if result.exit_code != 0:
            error_text = result.stderr_text
            logger.error(
                "DXF conversion failed with exit code %s: %s", result.exit_code, error_text
            )
            raise ConversionError(result.exit_code, error_text)

        return result.stdout

    async def convert_stream(
        self,
        svg_stream: BinaryIO,
        options: Optional[ConversionOptions] = None,
    ) -> bytes:
        """Read a binary stream to the end and convert its contents.

        RULES:
        - The stream is read fully into memory first; there is no
          incremental pass-through to the subprocess
        - None or a text stream raises InvalidArgumentError
        """
        if svg_stream is None:
            raise InvalidArgumentError("svg_stream must not be None")
        data = svg_stream.read()
        if isinstance(data, str):
            raise InvalidArgumentError("svg_stream must be opened in binary mode")
        return await self.convert(data, options)

    async def convert_file(
        self,
        svg_path: Union[str, Path],
        options: Optional[ConversionOptions] = None,
    ) -> bytes:
        """Convert an SVG file on disk.

        RULES:
        - Raises FileNotFoundError if svg_path does not exist
        """
        if svg_path is None:
            raise InvalidArgumentError("svg_path must not be None")
        data = await asyncio.to_thread(Path(svg_path).read_bytes)
        return await self.convert(data, options)

    # ------------------------------------------------------------------
    # Internals
    # ------------------------------------------------------------------

    def _handle_stderr_line(self, line: str) -> None:
        logger.warning("[%s] %s", config.EXECUTABLE_BASE_NAME, line)
        if self._on_stderr is not None:
            self._on_stderr(line)

    async def _invoke(self, args: list, svg_bytes: bytes) -> InvocationResult:
        run = run_process(
            self._executable_path,
            args,
            svg_bytes,
            on_stderr_line=self._handle_stderr_line,
            max_stderr_lines=self._max_stderr_lines,
        )
        if not self._timeout_s or self._timeout_s <= 0:
            return await run

        try:
            return await asyncio.wait_for(run, timeout=self._timeout_s)
        except asyncio.TimeoutError:
            raise ConversionTimeoutError(self._timeout_s) from None
