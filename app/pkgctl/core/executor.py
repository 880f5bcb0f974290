"""Execution of planned operations and history recording.

The executor walks an ordered operation list inside one root job. Every
operation runs serially in its own sub-job while its installation
directory is locked. The first error stops the remaining operations;
operations applied before it are kept and recorded to history.
"""

from __future__ import annotations

import logging
import threading
from collections.abc import Callable
from pathlib import Path
from typing import TYPE_CHECKING

from pkgctl.actions.base import PackageAction
from pkgctl.actions.download import preferred_installation_directory
from pkgctl.core.errors import LockError
from pkgctl.core.job import Job, JobTree
from pkgctl.core.locks import DirectoryLock, close_processes_using, find_first_locking_executable
from pkgctl.core.state import StateManager
from pkgctl.models.history import HistoryActionType, HistoryItem, create_history_entry
from pkgctl.models.operation import InstallOperation, OperationType
from pkgctl.models.package import Package, PackageVersion

if TYPE_CHECKING:
    from pkgctl.core.catalog import Catalog
    from pkgctl.core.planner import Planner
    from pkgctl.core.registry import InstalledRegistry

logger = logging.getLogger(__name__)

ActionFactory = Callable[[PackageVersion], PackageAction]

# Mapping from operation types to history model types.
OPERATION_TO_HISTORY: dict[OperationType, HistoryActionType] = {
    OperationType.INSTALL: HistoryActionType.INSTALL,
    OperationType.UNINSTALL: HistoryActionType.UNINSTALL,
}


class OperationExecutor:
    """Runs planned operations one after another.

    Args:
        catalog: Catalog resolving operations to package versions.
        registry: Registry of installed versions.
        planner: Planner used to order the operations.
        action_factory: Creates the action for a package version.
        install_dir: Root directory for new installations.
        lock_dir: Directory for advisory lock files (default cache dir).
        state: History store or None to skip recording.
        close_processes: Whether to terminate processes running from a
            directory before it is uninstalled.
        tree: Job tree for jobs created by :meth:`start`.
    """

    def __init__(
        self,
        catalog: Catalog,
        registry: InstalledRegistry,
        planner: Planner,
        action_factory: ActionFactory,
        install_dir: Path,
        lock_dir: Path | None = None,
        state: StateManager | None = None,
        close_processes: bool = True,
        tree: JobTree | None = None,
    ) -> None:
        self.catalog = catalog
        self.registry = registry
        self.planner = planner
        self.action_factory = action_factory
        self.install_dir = install_dir
        self.lock_dir = lock_dir
        self.state = state
        self.close_processes = close_processes
        self.tree = tree or JobTree()

    def start(self, ops: list[InstallOperation], title: str = "Processing") -> Job:
        """Run :meth:`process` on a worker thread.

        Returns:
            The root job; wait for it or subscribe to its tree.
        """
        job = self.tree.create_job(title)
        worker = threading.Thread(
            target=self.process,
            args=(job, ops),
            name="pkgctl-executor",
            daemon=True,
        )
        worker.start()
        return job

    def process(self, job: Job, ops: list[InstallOperation]) -> list[InstallOperation]:
        """Execute operations in order.

        Errors are reported on the job, which is always completed.

        Args:
            job: Root job of the request.
            ops: Planned operations.

        Returns:
            Operations that were applied.
        """
        applied: list[InstallOperation] = []
        try:
            ordered = self.planner.order_for_execution(ops)
            n = len(ordered)

            pvs: list[PackageVersion] = []
            if job.should_proceed("Preparing"):
                for op in ordered:
                    pv = self.catalog.find_package_version(op.package, op.version)
                    if pv is None:
                        job.set_error_message(f"Cannot find the package version {op.package} {op.version}")
                        break
                    pvs.append(pv)

            for op, pv in zip(ordered, pvs):
                verb = "Installing" if op.is_install else "Uninstalling"
                if not job.should_proceed(f"{verb} {pv}"):
                    break
                ran = self._run(job, op, pv, 1 / n)
                if ran and self.is_applied(op):
                    applied.append(op)
                if job.error_message:
                    break

            if job.should_proceed():
                job.set_progress(1)
        finally:
            if applied:
                self._record_history(applied, job.title)
            job.complete()
        logger.debug("Applied %d of %d operation(s)", len(applied), len(ops))
        return applied

    def is_applied(self, op: InstallOperation) -> bool:
        """Check whether the registry reflects the operation."""
        return self.registry.is_installed(op.package, op.version) == op.is_install

    def _run(self, job: Job, op: InstallOperation, pv: PackageVersion, fraction: float) -> bool:
        action = self.action_factory(pv)
        if op.is_install:
            package = self.catalog.find_package(pv.package) or Package(name=pv.package)
            directory = preferred_installation_directory(self.install_dir, package, pv.version)
        else:
            path = self.registry.get_path(pv.package, pv.version)
            if not path:
                job.set_error_message(f"{pv} is not installed")
                return False
            directory = Path(path)

        try:
            with DirectoryLock(directory, self.lock_dir):
                if op.is_uninstall:
                    self._free_directory(action, directory)
                sub = job.new_sub_job(fraction, str(pv))
                try:
                    if op.is_install:
                        action.install(sub, directory)
                    else:
                        action.uninstall(sub)
                    if sub.error_message:
                        job.set_error_message(sub.error_message)
                finally:
                    sub.complete()
                    sub.dispose()
        except LockError as e:
            job.set_error_message(str(e))
            return False
        except Exception as e:
            logger.exception("Action for %s failed", pv)
            job.set_error_message(f"{pv}: {e}")
            return False
        return True

    def _free_directory(self, action: PackageAction, directory: Path) -> None:
        if self.close_processes:
            closed = close_processes_using(directory)
            if closed:
                logger.info("Closed %d process(es) using %s", closed, directory)
        if action.is_locked():
            exe = find_first_locking_executable(directory)
            if exe:
                msg = f"Directory {directory} is locked by {exe}"
            else:
                msg = f"Directory {directory} is locked"
            raise LockError(msg)

    def _record_history(self, applied: list[InstallOperation], title: str) -> None:
        """Record applied operations, one entry per operation type.

        Errors during history recording are logged but do not interrupt
        the execution.
        """
        if self.state is None:
            return
        try:
            for operation_type, history_type in OPERATION_TO_HISTORY.items():
                items = [
                    HistoryItem(
                        name=op.package,
                        version=str(op.version),
                        directory=self.registry.get_path(op.package, op.version) or None,
                    )
                    for op in applied
                    if op.operation_type == operation_type
                ]
                if items:
                    entry = create_history_entry(
                        action_type=history_type,
                        items=items,
                        metadata={"job": title},
                    )
                    self.state.record_action(entry)
                    logger.debug("Recorded %d %s operation(s) to history", len(items), operation_type.value)
        except (OSError, RuntimeError) as e:
            logger.warning("Failed to record operations to history: %s", str(e))
