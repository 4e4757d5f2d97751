"""Runtime identifier detection and native executable resolution.

WHY: The converter ships one self-contained dxf_outlines binary per
platform (dxf_outlines-linux-x64, dxf_outlines-linux-musl-arm64,
dxf_outlines-osx-arm64, ...). Before anything can be spawned we must
know which of those matches the running machine and where it lives.

HOW: detect_platform() maps platform.system()/platform.machine() onto a
small PlatformIdentifier (os, arch, libc). On Linux the libc flavour is
found by looking for the musl dynamic linker in /lib and /lib64.
resolve_executable_path() turns the identifier into a file name and
checks that it exists in the bin directory.

RULES:
- Only Linux and macOS, x64 and arm64, are supported
- Unsupported OS/arch raise UnsupportedPlatformError before any file check
- musl detection never fails: inspection errors mean glibc
- The identifier is computed once per process (current_platform is cached)
"""

from __future__ import annotations

import enum
import functools
import logging
import platform
from dataclasses import dataclass
from pathlib import Path
from typing import Iterable, Optional

from svg_to_dxf import config
from svg_to_dxf.errors import ExecutableNotFoundError, UnsupportedPlatformError

logger = logging.getLogger(__name__)

MUSL_LIB_DIRS = ("/lib", "/lib64")
MUSL_LINKER_PATTERN = "ld-musl-*.so*"


class OperatingSystem(str, enum.Enum):
    LINUX = "linux"
    OSX = "osx"


class Architecture(str, enum.Enum):
    X64 = "x64"
    ARM64 = "arm64"


class Libc(str, enum.Enum):
    GLIBC = "glibc"
    MUSL = "musl"
    NONE = "none"


_SYSTEMS = {
    "linux": OperatingSystem.LINUX,
    "darwin": OperatingSystem.OSX,
}

_MACHINES = {
    "x86_64": Architecture.X64,
    "amd64": Architecture.X64,
    "x64": Architecture.X64,
    "aarch64": Architecture.ARM64,
    "arm64": Architecture.ARM64,
}


@dataclass(frozen=True)
class PlatformIdentifier:
    """OS, CPU architecture, and libc flavour of the running machine.

    RULES:
    - libc is GLIBC or MUSL on Linux, NONE on macOS
    - suffix renders the runtime identifier used in binary names:
      linux-x64, linux-musl-arm64, osx-x64, ...
    """

    os: OperatingSystem
    arch: Architecture
    libc: Libc = Libc.NONE

    @property
    def suffix(self) -> str:
        if self.libc is Libc.MUSL:
            return "{}-musl-{}".format(self.os.value, self.arch.value)
        return "{}-{}".format(self.os.value, self.arch.value)

    def __str__(self) -> str:
        return self.suffix


def is_musl(lib_dirs: Iterable[str] = MUSL_LIB_DIRS) -> bool:
    """Return True if a musl dynamic linker (ld-musl-*.so*) is present.

    WHY: Alpine and other musl distributions cannot run glibc binaries,
    so they need the linux-musl-* build.

    RULES:
    - Checks each directory in order, first hit wins
    - Missing directories are skipped
    - Any OSError during inspection means "not musl" (glibc)
    """
    try:
        for lib_dir in lib_dirs:
            path = Path(lib_dir)
            if path.is_dir() and any(path.glob(MUSL_LINKER_PATTERN)):
                return True
    except OSError:
        logger.debug("Could not inspect %s for musl, assuming glibc", lib_dirs, exc_info=True)
    return False


def detect_platform(
    system: Optional[str] = None,
    machine: Optional[str] = None,
    lib_dirs: Iterable[str] = MUSL_LIB_DIRS,
) -> PlatformIdentifier:
    """Build the PlatformIdentifier for a system/machine pair.

    WHY: Separating detection from the platform module calls lets tests
    cover every supported and unsupported combination on one machine.

    HOW: system and machine default to platform.system() and
    platform.machine(). Both are matched case-insensitively. libc is
    only probed on Linux.

    RULES:
    - OS other than Linux/Darwin raises UnsupportedPlatformError
    - Architecture other than x64/arm64 raises UnsupportedPlatformError
    - The OS check happens before the architecture check

    Args:
        system: OS name as reported by platform.system().
        machine: CPU name as reported by platform.machine().
        lib_dirs: Directories searched for the musl linker.

    Returns:
        The identifier for the given machine.
    """
    system = platform.system() if system is None else system
    machine = platform.machine() if machine is None else machine

    os_ = _SYSTEMS.get(system.lower())
    if os_ is None:
        raise UnsupportedPlatformError(
            "svg_to_dxf is only supported on Linux and macOS. Current OS: {}".format(
                system or "unknown"
            ),
            system=system,
            machine=machine,
        )

    arch = _MACHINES.get(machine.lower())
    if arch is None:
        raise UnsupportedPlatformError(
            "Unsupported architecture: {}. svg_to_dxf supports x64 and arm64 "
            "architectures only.".format(machine or "unknown"),
            system=system,
            machine=machine,
        )

    if os_ is OperatingSystem.LINUX:
        libc = Libc.MUSL if is_musl(lib_dirs) else Libc.GLIBC
    else:
        libc = Libc.NONE

    return PlatformIdentifier(os=os_, arch=arch, libc=libc)


@functools.lru_cache(maxsize=None)
def current_platform() -> PlatformIdentifier:
    """The identifier of this process's machine, computed once."""
    platform_id = detect_platform()
    logger.debug("Detected runtime identifier %s", platform_id)
    return platform_id


def executable_name(
    platform_id: Optional[PlatformIdentifier] = None,
    base_name: str = config.EXECUTABLE_BASE_NAME,
) -> str:
    """Return the binary file name for a platform, e.g. dxf_outlines-osx-arm64."""
    if platform_id is None:
        platform_id = current_platform()
    return "{}-{}".format(base_name, platform_id.suffix)


def resolve_executable_path(
    base_dir: Optional[Path] = None,
    platform_id: Optional[PlatformIdentifier] = None,
    base_name: str = config.EXECUTABLE_BASE_NAME,
) -> Path:
    """Locate the platform binary inside base_dir.

    RULES:
    - base_dir defaults to the configured bin directory (svg_to_dxf/bin)
    - The platform is resolved first; unsupported platforms never reach
      the existence check
    - Raises ExecutableNotFoundError with the attempted path if missing

    Args:
        base_dir: Directory containing dxf_outlines-<rid> binaries.
        platform_id: Target platform; defaults to the current machine.
        base_name: Binary stem.

    Returns:
        Absolute path to an existing executable file.
    """
    if platform_id is None:
        platform_id = current_platform()
    name = executable_name(platform_id, base_name)
    directory = Path(base_dir) if base_dir is not None else config.bin_dir()
    path = (directory / name).absolute()

    if not path.is_file():
        raise ExecutableNotFoundError(path, platform_id)

    return path


def default_executable_path() -> Path:
    """Executable used when a converter is created without a path.

    HOW: SVG_TO_DXF_EXECUTABLE wins when set; otherwise the platform
    binary is resolved from the bin directory.
    """
    override = config.executable_override()
    if override is not None:
        if not override.is_file():
            raise ExecutableNotFoundError(override)
        return override
    return resolve_executable_path()
