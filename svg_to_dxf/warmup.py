"""One-time warmup of the self-extracting native binary.

WHY: dxf_outlines is a onefile build. Its first launch unpacks the
bundled runtime to disk, which is slow, and two launches racing on a
half-extracted directory can corrupt it. Every later launch is fast.
So before the first real conversion the binary is started once with
--help, and all other callers (tasks in this process, or other
processes on the machine) wait for that to finish.

HOW: WarmupCoordinator keeps an in-memory "warmed up" flag for the fast
path and takes an exclusive fcntl.flock on a well-known lock file for
the slow path. Lock attempts are non-blocking; on contention the task
sleeps 100 ms and retries, so the event loop stays free. Once the lock
is held the flag is checked again, since another task may have
finished the warmup in the meantime.

RULES:
- The flag only ever goes from False to True and is never reset
- The lock is released on every exit path, including cancellation
- The warmup exit code is logged, not validated
- Failure to launch the binary propagates and leaves the flag False
- One process-wide coordinator backs ensure_warmed_up()/is_warmed_up()
"""

from __future__ import annotations

import asyncio
import logging
import os
import platform
from pathlib import Path
from typing import Optional, Union

from svg_to_dxf import config
from svg_to_dxf.errors import UnsupportedPlatformError
from svg_to_dxf.process import run_to_completion

logger = logging.getLogger(__name__)


def _flock_module():
    """Return fcntl, which only exists on POSIX systems."""
    try:
        import fcntl
    except ImportError:
        raise UnsupportedPlatformError(
            "Warmup lock needs fcntl, which is not available on {}.".format(platform.system()),
            system=platform.system(),
            machine=platform.machine(),
        ) from None
    return fcntl


class WarmupCoordinator:
    """Runs the warmup invocation at most once per machine state.

    WHY: Coordinators are objects rather than bare module globals so
    tests (and embedders with unusual layouts) can use their own flag
    and lock file. Production code shares the module-level default.

    RULES:
    - lock_path defaults to <tempdir>/dxf_outlines.lock
    - retry_delay_s is the sleep between lock attempts (default 0.1)
    - warmed_up is safe to read without synchronization
    """

    def __init__(
        self,
        lock_path: Optional[Union[str, Path]] = None,
        retry_delay_s: float = config.WARMUP_RETRY_DELAY_S,
    ) -> None:
        self.lock_path = Path(lock_path) if lock_path is not None else config.lock_path()
        self.retry_delay_s = retry_delay_s
        self._warmed_up = False

    @property
    def warmed_up(self) -> bool:
        return self._warmed_up

    async def ensure_warmed_up(self, executable_path: Union[str, Path]) -> None:
        """Return once the binary has been warmed up.

        HOW: Fast path on the flag. Otherwise acquire the file lock,
        re-check the flag, run `<executable> --help`, set the flag, and
        release the lock in a finally block.

        RULES:
        - Raises asyncio.CancelledError if cancelled while waiting
        - Raises OSError if the warmup process cannot be started
        - Raises UnsupportedPlatformError where fcntl is unavailable (Windows)
        """
        if self._warmed_up:
            return

        logger.debug("Warming up native executable (first run extraction)...")
        fd = await self._acquire_lock()
        try:
            if self._warmed_up:
                return

            exit_code = await run_to_completion(executable_path, [config.WARMUP_ARGUMENT])
            logger.debug("Warmup completed with exit code: %s", exit_code)

            self._warmed_up = True
        finally:
            self._release_lock(fd)

    async def _acquire_lock(self) -> int:
        fcntl = _flock_module()
        self.lock_path.parent.mkdir(parents=True, exist_ok=True)
        while True:
            fd = os.open(str(self.lock_path), os.O_RDWR | os.O_CREAT, 0o666)
            try:
                fcntl.flock(fd, fcntl.LOCK_EX | fcntl.LOCK_NB)
            except BlockingIOError:
                os.close(fd)
            except OSError:
                os.close(fd)
                raise
            else:
                return fd

            # Held by another process or task; wait and retry
            await asyncio.sleep(self.retry_delay_s)

    def _release_lock(self, fd: int) -> None:
        fcntl = _flock_module()
        try:
            fcntl.flock(fd, fcntl.LOCK_UN)
        finally:
            os.close(fd)


_default_coordinator = WarmupCoordinator()


def default_coordinator() -> WarmupCoordinator:
    return _default_coordinator


async def ensure_warmed_up(executable_path: Union[str, Path]) -> None:
    """Warm up using the process-wide coordinator."""
    await _default_coordinator.ensure_warmed_up(executable_path)


def is_warmed_up() -> bool:
    return _default_coordinator.warmed_up
