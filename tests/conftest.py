"""Shared test fixtures for the svg_to_dxf test suite.

WHY: The real dxf_outlines binary is a large per-platform build that is
not available in most test environments. The orchestration layer only
cares about the process contract (argv, stdin, stdout, stderr, exit
code), so a small shell script that honours that contract exercises
every code path deterministically.

HOW: make_fake_tool writes an executable POSIX shell script into
tmp_path. The script logs each warmup (--help) and each conversion to
files so tests can count launches, echoes its arguments, and switches
behaviour on marker words in the SVG (FAIL, SLEEP, NOISY).

RULES:
- Every test gets its own WarmupCoordinator and lock file (no shared flag)
- The fake tool emits a minimal DXF with SECTION/ENTITIES on success
- FAIL → two stderr lines, exit 3; NOISY → 50 stderr lines, exit 4;
  SLEEP → runs for 30 s (for cancellation and timeout tests);
  LONGLINE → one 2 MB stderr line, then a normal successful conversion
"""

from __future__ import annotations

import stat
from dataclasses import dataclass
from pathlib import Path
from typing import List

import pytest

from svg_to_dxf.warmup import WarmupCoordinator


RECT_SVG = b"""<?xml version="1.0" encoding="UTF-8"?>
<svg xmlns="http://www.w3.org/2000/svg" width="100" height="100">
    <rect x="10" y="10" width="80" height="80" fill="none" stroke="black"/>
</svg>
"""

CIRCLE_SVG = b"""<?xml version="1.0" encoding="UTF-8"?>
<svg xmlns="http://www.w3.org/2000/svg" width="100" height="100">
    <circle cx="50" cy="50" r="40" fill="none" stroke="black"/>
</svg>
"""

LINE_SVG = b"""<?xml version="1.0" encoding="UTF-8"?>
<svg xmlns="http://www.w3.org/2000/svg" width="100" height="100">
    <line x1="0" y1="0" x2="100" y2="100" stroke="black"/>
</svg>
"""

FAILING_SVG = b"<svg><!-- FAIL --></svg>"
SLOW_SVG = b"<svg><!-- SLEEP --></svg>"
NOISY_SVG = b"<svg><!-- NOISY --></svg>"
LONG_LINE_SVG = b"<svg><!-- LONGLINE --></svg>"

_FAKE_TOOL_TEMPLATE = """#!/bin/sh
LOG_DIR="{log_dir}"
if [ "$1" = "--help" ]; then
    echo warmup >> "$LOG_DIR/warmup.log"
    echo "usage: dxf_outlines [options]"
    if [ "{warmup_sleep}" != "0" ]; then
        exec sleep {warmup_sleep}
    fi
    exit {help_exit}
fi
echo "$*" > "$LOG_DIR/args.txt"
echo convert >> "$LOG_DIR/convert.log"
input=$(cat)
case "$input" in
    *FAIL*)
        echo "Traceback (most recent call last):" >&2
        echo "ValueError: bad svg" >&2
        exit 3
        ;;
    *SLEEP*)
        exec sleep 30
        ;;
    *NOISY*)
        i=0
        while [ $i -lt 50 ]; do
            echo "warning $i" >&2
            i=$((i+1))
        done
        exit 4
        ;;
    *LONGLINE*)
        head -c 2000000 /dev/zero | tr '\\000' x >&2
        echo >&2
        ;;
esac
echo "progress: parsed input" >&2
printf '  0\\nSECTION\\n  2\\nHEADER\\n  0\\nENDSEC\\n  0\\nSECTION\\n  2\\nENTITIES\\n  0\\nENDSEC\\n  0\\nEOF\\n'
"""


@dataclass
class FakeTool:
    """Handle on a generated fake dxf_outlines script and its logs."""

    path: Path
    log_dir: Path

    def _lines(self, name: str) -> List[str]:
        log = self.log_dir / name
        if not log.is_file():
            return []
        return log.read_text().splitlines()

    @property
    def warmup_count(self) -> int:
        return len(self._lines("warmup.log"))

    @property
    def convert_count(self) -> int:
        return len(self._lines("convert.log"))

    @property
    def last_args(self) -> List[str]:
        lines = self._lines("args.txt")
        return lines[0].split() if lines else []


@pytest.fixture
def make_fake_tool(tmp_path):
    """Factory for fake tools: make_fake_tool(help_exit=0, warmup_sleep=0, name=...)."""
    counter = {"n": 0}

    def _make(
        help_exit: int = 0,
        warmup_sleep: float = 0,
        name: str = "dxf_outlines-linux-x64",
        executable: bool = True,
    ) -> FakeTool:
        counter["n"] += 1
        root = tmp_path / "tool{}".format(counter["n"])
        log_dir = root / "logs"
        log_dir.mkdir(parents=True)
        path = root / name
        path.write_text(
            _FAKE_TOOL_TEMPLATE.format(
                log_dir=log_dir,
                help_exit=help_exit,
                warmup_sleep=warmup_sleep,
            )
        )
        if executable:
            path.chmod(path.stat().st_mode | stat.S_IXUSR | stat.S_IXGRP | stat.S_IXOTH)
        return FakeTool(path=path, log_dir=log_dir)

    return _make


@pytest.fixture
def fake_tool(make_fake_tool):
    """A well-behaved fake dxf_outlines executable."""
    return make_fake_tool()


@pytest.fixture
def coordinator(tmp_path):
    """An isolated warmup coordinator with its own lock file and a short retry delay."""
    return WarmupCoordinator(lock_path=tmp_path / "dxf_outlines.lock", retry_delay_s=0.02)
