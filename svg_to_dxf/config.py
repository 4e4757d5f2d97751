"""Configuration constants, environment overrides, and .env loading.

WHY: The executable name, lock file location, retry delay, and buffer
limits are all values somebody eventually needs to change (a different
install layout, a container with a read-only /tmp, a noisy binary).
Keeping them here as plain module-level constants makes them easy to
find and override without touching the orchestration code.

HOW: python-dotenv loads the .env file on import. Each setting reads its
environment variable with a default. Accessor functions
(executable_override, bin_dir, lock_path, ...) read the environment at
call time so tests can monkeypatch os.environ.

RULES:
- EXECUTABLE_BASE_NAME is the stem of every platform binary (dxf_outlines-<rid>)
- The bin directory defaults to svg_to_dxf/bin inside the installed package
- The lock file lives in the platform temp directory unless overridden
- All defaults can be overridden via environment variables
"""

from __future__ import annotations

import logging
import os
import tempfile
from pathlib import Path
from typing import Optional

from dotenv import load_dotenv

# Load .env from the working directory (where the app is run from)
load_dotenv()

# ---------------------------------------------------------------------------
# External tool contract
# ---------------------------------------------------------------------------

EXECUTABLE_BASE_NAME = "dxf_outlines"
"""Stem of the native binaries: dxf_outlines-linux-x64, dxf_outlines-osx-arm64, ..."""

WARMUP_ARGUMENT = "--help"
"""No-op argument that makes the onefile binary extract itself and exit."""

WARMUP_RETRY_DELAY_S = 0.1

SUPPORTED_UNITS: tuple = ("px", "in", "ft", "mm", "cm", "m")

DEFAULT_ENCODING = "latin_1"

DEFAULT_MAX_STDERR_LINES = 1000

PACKAGE_DIR = Path(__file__).resolve().parent

# ---------------------------------------------------------------------------
# Environment overrides
# ---------------------------------------------------------------------------


def executable_override() -> Optional[Path]:
    """Return the explicit executable path from SVG_TO_DXF_EXECUTABLE, if set."""
    value = os.getenv("SVG_TO_DXF_EXECUTABLE", "").strip()
    return Path(value).expanduser() if value else None


def bin_dir() -> Path:
    """Directory that holds the per-platform binaries."""
    value = os.getenv("SVG_TO_DXF_BIN_DIR", "").strip()
    if value:
        return Path(value).expanduser()
    return PACKAGE_DIR / "bin"


def lock_path() -> Path:
    """Location of the cross-process warmup lock file."""
    value = os.getenv("SVG_TO_DXF_LOCK_PATH", "").strip()
    if value:
        return Path(value).expanduser()
    return Path(tempfile.gettempdir()) / "{}.lock".format(EXECUTABLE_BASE_NAME)


def conversion_timeout() -> Optional[float]:
    """Per-conversion timeout in seconds, or None for no limit.

    RULES:
    - Unset, empty, or non-positive values mean "no limit"
    - Raises ValueError for values that are not numbers
    """
    value = os.getenv("SVG_TO_DXF_TIMEOUT", "").strip()
    if not value:
        return None
    try:
        seconds = float(value)
    except ValueError:
        raise ValueError(
            "SVG_TO_DXF_TIMEOUT must be a number of seconds, got {!r}".format(value)
        ) from None
    return seconds if seconds > 0 else None


def max_stderr_lines() -> int:
    """How many stderr lines a conversion keeps in memory (0 = unlimited)."""
    value = os.getenv("SVG_TO_DXF_MAX_STDERR_LINES", "").strip()
    if not value:
        return DEFAULT_MAX_STDERR_LINES
    try:
        return max(int(value), 0)
    except ValueError:
        raise ValueError(
            "SVG_TO_DXF_MAX_STDERR_LINES must be an integer, got {!r}".format(value)
        ) from None


def log_level() -> str:
    return os.getenv("SVG_TO_DXF_LOG_LEVEL", "WARNING").strip().upper() or "WARNING"


def configure_logging(level: Optional[str] = None) -> None:
    """Configure root logging for the CLI and the HTTP server.

    WHY: The library only creates module loggers; entry points decide
    where records go. Tool diagnostics (stderr lines) are logged at
    WARNING, so the default level surfaces them.

    HOW: logging.basicConfig on stderr with a compact format.

    RULES:
    - level defaults to SVG_TO_DXF_LOG_LEVEL (WARNING)
    - Unknown level names fall back to WARNING
    """
    name = (level or log_level()).upper()
    numeric = getattr(logging, name, None)
    if not isinstance(numeric, int):
        numeric = logging.WARNING
    logging.basicConfig(
        level=numeric,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
