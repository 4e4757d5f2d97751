"""SVG → DXF conversion via the bundled dxf_outlines native executable.

WHY: The geometry work (SVG parsing, curve flattening, DXF emission) is
done by a prebuilt, self-extracting dxf_outlines binary per platform.
Python callers need a safe, async way to drive it: pick the right
binary, warm it up once, pipe SVG in and DXF out, and get typed errors.

HOW: Four layers: runtime (platform → binary path), options (settings
→ argument list), warmup (one-time extraction behind a file lock), and
converter (subprocess invocation). The CLI and the FastAPI server are
thin shells over SvgToDxfConverter.

RULES:
- Supported platforms: linux-x64, linux-arm64, linux-musl-x64,
  linux-musl-arm64, osx-x64, osx-arm64
- All conversions are async; cancellation is asyncio task cancellation
- Failures are SvgToDxfError subclasses tagged with an ErrorKind
"""

from svg_to_dxf.converter import SvgToDxfConverter
from svg_to_dxf.errors import (
    ConversionError,
    ConversionTimeoutError,
    ErrorKind,
    ExecutableNotFoundError,
    InvalidArgumentError,
    SvgToDxfError,
    UnsupportedPlatformError,
)
from svg_to_dxf.options import ConversionOptions, Unit, encode_options
from svg_to_dxf.runtime import PlatformIdentifier, current_platform, resolve_executable_path

__version__ = "0.1.0"

__all__ = [
    "ConversionError",
    "ConversionOptions",
    "ConversionTimeoutError",
    "ErrorKind",
    "ExecutableNotFoundError",
    "InvalidArgumentError",
    "PlatformIdentifier",
    "SvgToDxfConverter",
    "SvgToDxfError",
    "Unit",
    "UnsupportedPlatformError",
    "current_platform",
    "encode_options",
    "resolve_executable_path",
]
