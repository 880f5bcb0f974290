"""Unit tests for directory locks and process detection."""

import os
from pathlib import Path
from unittest.mock import MagicMock, patch

import psutil
import pytest

from pkgctl.core.errors import LockError
from pkgctl.core.locks import (
    DirectoryLock,
    close_processes_using,
    find_first_locking_executable,
    find_processes_using,
    is_directory_locked,
)


def _process(pid: int, exe: str, cwd: str = "/", files: list[str] | None = None) -> MagicMock:
    proc = MagicMock(spec=psutil.Process)
    proc.pid = pid
    proc.exe.return_value = exe
    proc.cwd.return_value = cwd
    proc.name.return_value = Path(exe).name
    proc.open_files.return_value = [MagicMock(path=p) for p in files or []]
    return proc


class TestDirectoryLock:
    """Tests for DirectoryLock."""

    def test_acquire_and_release(self, tmp_path: Path) -> None:
        """The lock is held inside the context manager only."""
        lock = DirectoryLock(tmp_path / "app", lock_dir=tmp_path / "locks")

        with lock:
            assert lock.is_locked
            assert lock.lock_path.parent == tmp_path / "locks"
        assert not lock.is_locked

    def test_second_lock_fails(self, tmp_path: Path) -> None:
        """A directory cannot be locked twice at once."""
        first = DirectoryLock(tmp_path / "app", lock_dir=tmp_path)
        second = DirectoryLock(str(tmp_path / "app") + os.sep, lock_dir=tmp_path)

        assert first.lock_path == second.lock_path
        with first, pytest.raises(LockError, match="locked"):
            second.acquire()

    def test_different_directories(self, tmp_path: Path) -> None:
        """Different directories use different lock files."""
        a = DirectoryLock(tmp_path / "a", lock_dir=tmp_path)
        b = DirectoryLock(tmp_path / "b", lock_dir=tmp_path)

        with a, b:
            assert a.is_locked and b.is_locked


class TestProcessDetection:
    """Tests for finding processes that use a directory."""

    def test_finds_executable_cwd_and_open_files(self, tmp_path: Path) -> None:
        """Executable, working directory and open files all count."""
        app = str(tmp_path / "app")
        procs = [
            _process(101, f"{app}/bin/editor"),
            _process(102, "/usr/bin/sh", cwd=app),
            _process(103, "/usr/bin/cat", files=[f"{app}/data.txt"]),
            _process(104, "/usr/bin/other", files=[f"{app}-2/data.txt"]),
            _process(os.getpid(), f"{app}/bin/self"),
        ]

        with patch("pkgctl.core.locks.psutil.process_iter", return_value=procs):
            found = find_processes_using(app)
            exe = find_first_locking_executable(app)

        assert [p.pid for p in found] == [101, 102, 103]
        assert exe == f"{app}/bin/editor"

    def test_inaccessible_process_skipped(self, tmp_path: Path) -> None:
        """Processes that cannot be inspected are ignored."""
        proc = _process(101, "/x")
        proc.exe.side_effect = psutil.AccessDenied(101)

        with patch("pkgctl.core.locks.psutil.process_iter", return_value=[proc]):
            assert find_processes_using(tmp_path) == []

    def test_missing_directory_is_not_locked(self, tmp_path: Path) -> None:
        """A directory that does not exist is never locked."""
        assert not is_directory_locked(tmp_path / "missing")
        assert close_processes_using(tmp_path / "missing") == 0

    def test_close_processes_kills_stragglers(self, tmp_path: Path) -> None:
        """Processes are terminated and survivors killed."""
        polite = _process(101, str(tmp_path / "a"))
        stubborn = _process(102, str(tmp_path / "b"))

        with (
            patch("pkgctl.core.locks.find_processes_using", return_value=[polite, stubborn]),
            patch("pkgctl.core.locks.psutil.wait_procs", return_value=([polite], [stubborn])) as wait,
        ):
            closed = close_processes_using(tmp_path, timeout=0.1)

        assert closed == 2
        polite.terminate.assert_called_once()
        stubborn.kill.assert_called_once()
        polite.kill.assert_not_called()
        wait.assert_called_once_with([polite, stubborn], timeout=0.1)
