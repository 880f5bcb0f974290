"""Unit tests for OperationExecutor.

Actions are replaced by a fake that only updates the registry, so the
tests cover ordering, locking, error handling and history recording.
"""

from pathlib import Path
from unittest.mock import MagicMock, patch

import pytest

from pkgctl.actions.base import PackageAction
from pkgctl.actions.download import DownloadAction
from pkgctl.core.catalog import MemoryCatalog
from pkgctl.core.downloader import Downloader
from pkgctl.core.executor import OperationExecutor
from pkgctl.core.job import Job, JobTree
from pkgctl.core.planner import Planner
from pkgctl.core.registry import InstalledRegistry
from pkgctl.core.state import StateManager
from pkgctl.core.store import MemoryStore
from pkgctl.models.history import HistoryActionType
from pkgctl.models.operation import create_install_operation, create_uninstall_operation
from pkgctl.models.package import Package, PackageVersion
from pkgctl.models.version import Version

EDITOR = "org.example.Editor"
RUNTIME = "org.example.Runtime"

V09 = Version.parse("0.9")
V1 = Version.parse("1.0")
V2 = Version.parse("2.0")


class FakeAction(PackageAction):
    """Action that records calls and updates the registry."""

    def __init__(
        self, package_version: PackageVersion, registry: InstalledRegistry, calls: list[str]
    ) -> None:
        super().__init__(package_version)
        self.registry = registry
        self.calls = calls
        self.fail = False
        self.crash = False
        self.locked = False

    def install(self, job: Job, target_directory: Path) -> None:
        self.calls.append(f"install {self.package_version}")
        if self.crash:
            msg = "disk exploded"
            raise RuntimeError(msg)
        if self.fail:
            job.set_error_message("install failed")
        else:
            pv = self.package_version
            self.registry.set_path(pv.package, pv.version, str(target_directory))
        job.complete()

    def uninstall(self, job: Job) -> None:
        self.calls.append(f"uninstall {self.package_version}")
        self.registry.set_path(self.package_version.package, self.package_version.version, "")
        job.complete()

    def is_locked(self) -> bool:
        return self.locked


class TestOperationExecutor:
    """Tests for OperationExecutor.process."""

    @pytest.fixture
    def calls(self) -> list[str]:
        """Action calls in execution order."""
        return []

    @pytest.fixture
    def failing(self) -> set[str]:
        """Package names whose install fails."""
        return set()

    @pytest.fixture
    def crashing(self) -> set[str]:
        """Package names whose install raises."""
        return set()

    @pytest.fixture
    def locked(self) -> set[str]:
        """Package names whose directory is in use."""
        return set()

    @pytest.fixture
    def state(self, tmp_path: Path) -> StateManager:
        """History store below tmp_path."""
        return StateManager(tmp_path / "state")

    @pytest.fixture
    def executor(
        self,
        catalog: MemoryCatalog,
        registry: InstalledRegistry,
        install_root: Path,
        tmp_path: Path,
        state: StateManager,
        calls: list[str],
        failing: set[str],
        crashing: set[str],
        locked: set[str],
    ) -> OperationExecutor:
        """Executor wired to FakeAction."""

        def factory(pv: PackageVersion) -> PackageAction:
            action = FakeAction(pv, registry, calls)
            action.fail = pv.package in failing
            action.crash = pv.package in crashing
            action.locked = pv.package in locked
            return action

        return OperationExecutor(
            catalog,
            registry,
            Planner(catalog, registry),
            factory,
            install_dir=install_root,
            lock_dir=tmp_path / "locks",
            state=state,
            close_processes=False,
        )

    def test_installs_in_order(
        self,
        executor: OperationExecutor,
        registry: InstalledRegistry,
        state: StateManager,
        install_root: Path,
        calls: list[str],
    ) -> None:
        """Operations run in order and are recorded to history."""
        ops = [create_install_operation(RUNTIME, V1), create_install_operation(EDITOR, V2)]
        job = JobTree().create_job("Installing")

        applied = executor.process(job, ops)

        assert applied == ops
        assert calls == [f"install {RUNTIME} 1.0", f"install {EDITOR} 2.0"]
        assert registry.get_path(EDITOR, V2) == str(install_root / "Editor")
        assert job.is_completed()
        assert job.error_message == ""
        assert job.progress == 1

        history = state.get_history()
        assert len(history) == 1
        assert history[0].action_type == HistoryActionType.INSTALL
        assert [item.name for item in history[0].items] == [RUNTIME, EDITOR]
        assert history[0].metadata == {"job": "Installing"}

    def test_first_error_stops_execution(
        self,
        executor: OperationExecutor,
        state: StateManager,
        calls: list[str],
        failing: set[str],
    ) -> None:
        """Operations after a failure do not run; earlier ones are kept."""
        failing.add(EDITOR)
        ops = [
            create_install_operation(RUNTIME, V1),
            create_install_operation(EDITOR, V2),
            create_install_operation(RUNTIME, V09),
        ]
        job = JobTree().create_job()

        applied = executor.process(job, ops)

        assert applied == ops[:1]
        assert len(calls) == 2
        assert job.error_message == "install failed"
        assert job.is_completed()
        assert len(state.get_history()) == 1

    def test_unknown_version(self, executor: OperationExecutor, calls: list[str]) -> None:
        """A version missing from the catalog fails before anything runs."""
        job = JobTree().create_job()

        applied = executor.process(job, [create_install_operation(RUNTIME, V2)])

        assert applied == []
        assert calls == []
        assert "Cannot find" in job.error_message

    def test_uninstall_not_installed(self, executor: OperationExecutor, calls: list[str]) -> None:
        """Uninstalling a version without a directory is an error."""
        job = JobTree().create_job()

        applied = executor.process(job, [create_uninstall_operation(RUNTIME, V1)])

        assert applied == []
        assert calls == []
        assert "not installed" in job.error_message

    def test_update_runs_uninstall_first(
        self,
        executor: OperationExecutor,
        registry: InstalledRegistry,
        state: StateManager,
        install_root: Path,
        calls: list[str],
    ) -> None:
        """An install/uninstall pair of one package removes the old version first."""
        registry.set_path(RUNTIME, V09, str(install_root / "Runtime"))
        ops = [create_install_operation(RUNTIME, V1), create_uninstall_operation(RUNTIME, V09)]

        applied = executor.process(JobTree().create_job(), ops)

        assert calls == [f"uninstall {RUNTIME} 0.9", f"install {RUNTIME} 1.0"]
        assert len(applied) == 2
        assert not registry.is_installed(RUNTIME, V09)
        assert {e.action_type for e in state.get_history()} == {
            HistoryActionType.INSTALL,
            HistoryActionType.UNINSTALL,
        }

    def test_locked_directory(
        self,
        executor: OperationExecutor,
        registry: InstalledRegistry,
        install_root: Path,
        calls: list[str],
        locked: set[str],
    ) -> None:
        """A directory still in use aborts the uninstall."""
        locked.add(RUNTIME)
        registry.set_path(RUNTIME, V1, str(install_root / "Runtime"))
        job = JobTree().create_job()

        with patch("pkgctl.core.executor.find_first_locking_executable", return_value="/usr/bin/runtime"):
            applied = executor.process(job, [create_uninstall_operation(RUNTIME, V1)])

        assert applied == []
        assert calls == []
        assert "/usr/bin/runtime" in job.error_message
        assert registry.is_installed(RUNTIME, V1)

    def test_closes_processes_before_uninstall(
        self,
        executor: OperationExecutor,
        registry: InstalledRegistry,
        install_root: Path,
    ) -> None:
        """Processes using the directory are closed when enabled."""
        executor.close_processes = True
        registry.set_path(RUNTIME, V1, str(install_root / "Runtime"))

        with patch("pkgctl.core.executor.close_processes_using", return_value=1) as close:
            executor.process(JobTree().create_job(), [create_uninstall_operation(RUNTIME, V1)])

        close.assert_called_once_with(install_root / "Runtime")

    def test_cancelled_job(self, executor: OperationExecutor, calls: list[str]) -> None:
        """A cancelled job runs nothing and is completed."""
        job = JobTree().create_job()
        job.cancel()

        applied = executor.process(job, [create_install_operation(RUNTIME, V1)])

        assert applied == []
        assert calls == []
        assert job.is_completed()

    def test_history_failure_is_not_fatal(self, executor: OperationExecutor) -> None:
        """History write errors are logged only."""
        executor.state = MagicMock()
        executor.state.record_action.side_effect = OSError("read-only")
        job = JobTree().create_job()

        applied = executor.process(job, [create_install_operation(RUNTIME, V1)])

        assert len(applied) == 1
        assert job.error_message == ""

    def test_start_runs_in_background(self, executor: OperationExecutor, registry: InstalledRegistry) -> None:
        """start() returns the root job of a worker thread."""
        job = executor.start([create_install_operation(RUNTIME, V1)], "Installing")

        assert job.wait(timeout=5)
        assert job.title == "Installing"
        assert registry.is_installed(RUNTIME, V1)
        assert executor.is_applied(create_install_operation(RUNTIME, V1))

    def test_raising_action_is_reported_on_the_job(
        self,
        executor: OperationExecutor,
        registry: InstalledRegistry,
        calls: list[str],
        crashing: set[str],
    ) -> None:
        """An exception from an action becomes the job error and stops the run."""
        crashing.add(RUNTIME)
        ops = [create_install_operation(RUNTIME, V1), create_install_operation(EDITOR, V2)]
        job = JobTree().create_job()

        applied = executor.process(job, ops)

        assert applied == []
        assert calls == [f"install {RUNTIME} 1.0"]
        assert "disk exploded" in job.error_message
        assert job.is_completed()
        assert not registry.is_installed(RUNTIME, V1)
        assert job.children() == []

    def test_raising_action_in_background(self, executor: OperationExecutor, crashing: set[str]) -> None:
        """A worker thread reports action exceptions instead of dying silently."""
        crashing.add(RUNTIME)

        job = executor.start([create_install_operation(RUNTIME, V1)], "Installing")

        assert job.wait(timeout=5)
        assert "disk exploded" in job.error_message


class TestExecutorWithDownloadAction:
    """OperationExecutor driving the real DownloadAction."""

    def test_unsupported_hash_algorithm(self, install_root: Path, tmp_path: Path) -> None:
        """An unknown digest algorithm fails the install with a job error."""
        pv = PackageVersion(package="org.x", version=V1, download="data:,hello", hash_algorithm="nosuchalg")
        catalog = MemoryCatalog(packages=[Package(name="org.x")], versions=[pv])
        registry = InstalledRegistry(MemoryStore(), catalog)
        downloader = Downloader()
        executor = OperationExecutor(
            catalog,
            registry,
            Planner(catalog, registry),
            lambda p: DownloadAction(p, registry, downloader),
            install_dir=install_root,
            lock_dir=tmp_path / "locks",
            close_processes=False,
        )

        job = executor.start([create_install_operation("org.x", V1)], "Installing")

        assert job.wait(timeout=5)
        assert "nosuchalg" in job.error_message
        assert not registry.is_installed("org.x", V1)
        assert list(install_root.iterdir()) == []
