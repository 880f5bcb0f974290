"""Advisory directory locks and detection of processes using a directory.

Before a package directory is modified the executor takes an advisory
lock on it, so that two pkgctl processes never work on the same
installation at once. Before an uninstall it also closes processes that
run from the directory and refuses to continue while any process still
holds files there.
"""

import hashlib
import logging
import os
from pathlib import Path

import psutil
from filelock import FileLock, Timeout

from pkgctl.core.errors import LockError
from pkgctl.core.paths import get_lock_dir
from pkgctl.utils.fs import is_under_or_equals, normalize_path

logger = logging.getLogger(__name__)


class DirectoryLock:
    """Advisory inter-process lock for an installation directory.

    The lock file lives outside the directory itself (which may be deleted
    by an uninstall) and is named after a hash of the normalized path.

    Example:
        >>> with DirectoryLock("/opt/editor"):
        ...     uninstall()
    """

    def __init__(self, directory: str | Path, lock_dir: Path | None = None, timeout: float = 0) -> None:
        self.directory = normalize_path(directory)
        base = lock_dir if lock_dir is not None else get_lock_dir()
        digest = hashlib.sha1(self.directory.encode("utf-8")).hexdigest()
        self.lock_path = base / f"{digest}.lock"
        self._timeout = timeout
        self._lock: FileLock | None = None

    def acquire(self) -> None:
        """Take the lock.

        Raises:
            LockError: If another process holds the lock.
        """
        self.lock_path.parent.mkdir(parents=True, exist_ok=True)
        lock = FileLock(str(self.lock_path), timeout=self._timeout)
        try:
            lock.acquire()
        except Timeout as e:
            raise LockError(f"Directory {self.directory} is locked by another pkgctl process") from e
        self._lock = lock
        logger.debug("Locked %s", self.directory)

    def release(self) -> None:
        """Release the lock if it is held."""
        if self._lock is not None:
            self._lock.release()
            self._lock = None
            logger.debug("Unlocked %s", self.directory)

    @property
    def is_locked(self) -> bool:
        return self._lock is not None and self._lock.is_locked

    def __enter__(self) -> "DirectoryLock":
        self.acquire()
        return self

    def __exit__(self, *exc: object) -> None:
        self.release()


def _process_uses(proc: psutil.Process, directory: str) -> bool:
    try:
        exe = proc.exe()
        if exe and is_under_or_equals(exe, directory):
            return True
        cwd = proc.cwd()
        if cwd and is_under_or_equals(cwd, directory):
            return True
        return any(is_under_or_equals(f.path, directory) for f in proc.open_files())
    except (psutil.NoSuchProcess, psutil.AccessDenied, psutil.ZombieProcess, OSError):
        return False


def find_processes_using(directory: str | Path) -> list[psutil.Process]:
    """Find processes whose executable, working directory or open files
    are inside the directory.

    Processes that cannot be inspected are skipped. The current process is
    never reported.
    """
    target = normalize_path(directory)
    own_pid = os.getpid()
    found: list[psutil.Process] = []
    for proc in psutil.process_iter():
        if proc.pid == own_pid:
            continue
        if _process_uses(proc, target):
            found.append(proc)
    return found


def find_first_locking_executable(directory: str | Path) -> str:
    """Return the executable of a process using the directory or ""."""
    for proc in find_processes_using(directory):
        try:
            return proc.exe() or proc.name()
        except (psutil.NoSuchProcess, psutil.AccessDenied):
            continue
    return ""


def is_directory_locked(directory: str | Path) -> bool:
    """Check whether any process still uses files in the directory."""
    if not os.path.isdir(directory):
        return False
    return bool(find_processes_using(directory))


def close_processes_using(directory: str | Path, timeout: float = 5.0) -> int:
    """Terminate processes rooted in the directory, killing stragglers.

    Args:
        directory: Installation directory.
        timeout: Seconds to wait for a graceful exit before killing.

    Returns:
        Number of processes that were asked to terminate.
    """
    if not os.path.isdir(directory):
        return 0
    procs = find_processes_using(directory)
    for proc in procs:
        logger.info("Terminating process %d using %s", proc.pid, directory)
        try:
            proc.terminate()
        except (psutil.NoSuchProcess, psutil.AccessDenied) as e:
            logger.warning("Cannot terminate process %d: %s", proc.pid, e)
    _, alive = psutil.wait_procs(procs, timeout=timeout)
    for proc in alive:
        try:
            proc.kill()
        except (psutil.NoSuchProcess, psutil.AccessDenied) as e:
            logger.warning("Cannot kill process %d: %s", proc.pid, e)
    return len(procs)
