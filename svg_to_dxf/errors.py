"""Typed exceptions for platform resolution and conversion failures.

WHY: Callers need to tell "the tool is missing or this machine is not
supported" apart from "the tool ran and rejected the input". A single
message string cannot be branched on, so every failure carries a kind
tag and the structured payload needed for diagnosis.

HOW: SvgToDxfError is the common base and exposes `kind` (an ErrorKind
value). Subclasses also inherit from the closest builtin exception
(FileNotFoundError, ValueError, TimeoutError) so generic handlers keep
working.

RULES:
- Cancellation is asyncio.CancelledError and is never wrapped here
- ConversionError carries the exit code and the raw stderr text
- ExecutableNotFoundError carries the exact path that was tried
"""

from __future__ import annotations

import enum
import errno
from pathlib import Path
from typing import Any, Optional


class ErrorKind(str, enum.Enum):
    """Failure categories a caller can branch on."""

    UNSUPPORTED_PLATFORM = "unsupported_platform"
    EXECUTABLE_NOT_FOUND = "executable_not_found"
    INVALID_ARGUMENT = "invalid_argument"
    CONVERSION_FAILED = "conversion_failed"
    TIMEOUT = "timeout"


class SvgToDxfError(Exception):
    """Base class for all svg_to_dxf failures."""

    kind: ErrorKind


class UnsupportedPlatformError(SvgToDxfError):
    """The OS or CPU architecture has no native binary.

    RULES:
    - Raised before any filesystem check
    - system/machine hold the raw values that were rejected
    """

    kind = ErrorKind.UNSUPPORTED_PLATFORM

    def __init__(self, message: str, system: str = "", machine: str = "") -> None:
        self.system = system
        self.machine = machine
        super().__init__(message)


class ExecutableNotFoundError(SvgToDxfError, FileNotFoundError):
    """The resolved native binary does not exist.

    RULES:
    - path is the exact location that was checked
    - platform_id is the runtime identifier the name was built from,
      or None when the path was given explicitly
    """

    kind = ErrorKind.EXECUTABLE_NOT_FOUND

    def __init__(self, path: Path, platform_id: Optional[Any] = None) -> None:
        self.path = Path(path)
        self.platform_id = platform_id
        if platform_id is not None:
            message = (
                "Native executable '{}' not found at '{}'. Ensure the package "
                "includes the native binary for runtime '{}'.".format(
                    self.path.name, self.path, platform_id
                )
            )
        else:
            message = "Executable not found at '{}'.".format(self.path)
        self.message = message
        super().__init__(errno.ENOENT, message, str(self.path))

    def __str__(self) -> str:
        return self.message


class InvalidArgumentError(SvgToDxfError, ValueError):
    """A required input to a public operation is missing or malformed."""

    kind = ErrorKind.INVALID_ARGUMENT


class ConversionError(SvgToDxfError):
    """The native tool exited with a non-zero status.

    RULES:
    - exit_code is the process return code (negative for signals)
    - stderr is the captured diagnostic lines joined with "\\n", verbatim
    - Never retried automatically
    """

    kind = ErrorKind.CONVERSION_FAILED

    def __init__(self, exit_code: int, stderr: str) -> None:
        self.exit_code = exit_code
        self.stderr = stderr
        super().__init__("DXF conversion failed with exit code {}.".format(exit_code))


class ConversionTimeoutError(SvgToDxfError, TimeoutError):
    """A conversion ran longer than the configured timeout."""

    kind = ErrorKind.TIMEOUT

    def __init__(self, timeout_s: float) -> None:
        self.timeout_s = timeout_s
        super().__init__(
            "DXF conversion did not finish within {:g}s and was killed.".format(timeout_s)
        )
