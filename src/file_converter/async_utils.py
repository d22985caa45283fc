"""Async helpers shared by the converters: admission control and external tool runs."""

import asyncio
import os
import signal
import weakref
from typing import Optional

from .config import config
from .logging_config import get_logger

logger = get_logger("async_utils")

# Children get their own session so a timeout can kill helpers they fork
# (LibreOffice re-execs itself as soffice.bin).
_NEW_SESSION = os.name == "posix"


class ConcurrencyLimiter:
    """Bound the number of conversions running at the same time.

    An asyncio semaphore belongs to the loop it is first awaited on, so one
    semaphore is kept per running event loop.
    """

    def __init__(self, max_concurrent: int = 4):
        if max_concurrent < 1:
            raise ValueError(f"max_concurrent must be at least 1, got {max_concurrent}")
        self.max_concurrent = max_concurrent
        self._semaphores: weakref.WeakKeyDictionary = weakref.WeakKeyDictionary()

    def _semaphore(self) -> asyncio.Semaphore:
        loop = asyncio.get_running_loop()
        sem = self._semaphores.get(loop)
        if sem is None:
            sem = self._semaphores[loop] = asyncio.Semaphore(self.max_concurrent)
        return sem

    async def acquire(self) -> "ConcurrencyLimiter":
        sem = self._semaphore()
        if sem.locked():
            logger.debug(f"All {self.max_concurrent} conversion slots busy, waiting")
        await sem.acquire()
        return self

    def release(self) -> None:
        self._semaphore().release()

    async def __aenter__(self) -> "ConcurrencyLimiter":
        return await self.acquire()

    async def __aexit__(self, exc_type, exc_val, exc_tb) -> None:
        self.release()


class SubprocessTimeoutError(RuntimeError):
    """Raised when a subprocess times out."""

    def __init__(self, cmd: list[str], timeout: int):
        self.cmd = cmd
        self.timeout = timeout
        super().__init__(f"{cmd[0]} timed out after {timeout}s: {' '.join(cmd)}")


class SubprocessError(RuntimeError):
    """Raised when a subprocess exits with non-zero status."""

    def __init__(self, cmd: list[str], returncode: int, stderr: str = ""):
        self.cmd = cmd
        self.returncode = returncode
        self.stderr = stderr
        message = f"{cmd[0]} exited with code {returncode}"
        if stderr:
            message += f": {stderr.strip()}"
        super().__init__(message)


def _decode(data: Optional[bytes]) -> str:
    return data.decode(errors="replace") if data else ""


def _kill(proc: asyncio.subprocess.Process) -> None:
    """Kill ``proc`` together with anything it spawned in its session."""
    try:
        if _NEW_SESSION:
            os.killpg(proc.pid, signal.SIGKILL)
        else:
            proc.kill()
    except ProcessLookupError:
        pass


async def safe_subprocess(
    cmd: list[str],
    timeout: int = 1800,
    check_returncode: bool = True,
    capture_output: bool = True,
) -> tuple[int, str, str]:
    """Run an external tool, killing it if it outlives ``timeout``.

    The process is also killed when the awaiting task is cancelled, so an
    aborted request never leaves a converter running.

    Returns:
        Tuple of (returncode, stdout, stderr); undecodable bytes are replaced.

    Raises:
        FileNotFoundError: If the executable does not exist.
        SubprocessTimeoutError: If the process exceeds the timeout.
        SubprocessError: If check_returncode is True and process fails.
    """
    pipe = asyncio.subprocess.PIPE if capture_output else None
    proc = await asyncio.create_subprocess_exec(
        *cmd, stdout=pipe, stderr=pipe, start_new_session=_NEW_SESSION
    )

    try:
        stdout, stderr = await asyncio.wait_for(proc.communicate(), timeout=timeout)
    except asyncio.TimeoutError:
        logger.warning(f"{cmd[0]} exceeded {timeout}s, killing PID {proc.pid}")
        raise SubprocessTimeoutError(cmd, timeout) from None
    finally:
        if proc.returncode is None:
            _kill(proc)
            await proc.wait()

    if check_returncode and proc.returncode != 0:
        raise SubprocessError(cmd, proc.returncode, _decode(stderr))

    return proc.returncode, _decode(stdout), _decode(stderr)


concurrency_limiter = ConcurrencyLimiter(config.max_concurrent)
