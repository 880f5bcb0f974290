"""Installed package registry.

The registry is the single source of truth for which package versions are
installed and where. Records are persisted in a :class:`KeyValueStore`
under ``packages/<package>-<version>`` with the values ``path`` and
``detection_info``.

Every public method is individually atomic. Multi-step workflows such as
"check installed, then set path" are not; callers serialize them through
the executor's single worker thread.
"""

from __future__ import annotations

import logging
import os
import queue
import threading
from collections.abc import Sequence
from dataclasses import dataclass
from typing import TYPE_CHECKING

from pkgctl.core.catalog import Catalog, MemoryCatalog
from pkgctl.core.errors import PkgctlError, RegistryError
from pkgctl.core.store import KeyValueStore
from pkgctl.detectors.base import DetectionResult, Detector
from pkgctl.models.package import InstalledPackageVersion, Package
from pkgctl.models.version import Version
from pkgctl.utils.fs import is_under_or_equals, path_depth

if TYPE_CHECKING:
    from pkgctl.core.job import Job

logger = logging.getLogger(__name__)

PACKAGES_KEY = "packages"


@dataclass(frozen=True, slots=True)
class StatusChange:
    """Notification that the record of one package version changed."""

    package: str
    version: Version


def _record_key(package: str, version: Version) -> str:
    return f"{PACKAGES_KEY}/{package}-{version}"


class InstalledRegistry:
    """Thread-safe registry of installed package versions.

    Args:
        store: Backend keeping the persisted records.
        catalog: Catalog that receives detected packages and versions.
        detectors: Detectors run by :meth:`refresh`, most authoritative first.
    """

    def __init__(
        self,
        store: KeyValueStore,
        catalog: Catalog | None = None,
        detectors: Sequence[Detector] = (),
    ) -> None:
        self.store = store
        self.catalog = catalog
        self.detectors = list(detectors)
        self._lock = threading.RLock()
        self._data: dict[tuple[str, Version], InstalledPackageVersion] = {}
        self._subscribers: list[queue.Queue[StatusChange]] = []

    # =========================================================================
    # Notifications
    # =========================================================================

    def subscribe(self) -> queue.Queue[StatusChange]:
        """Return a queue receiving a :class:`StatusChange` for every mutation."""
        events: queue.Queue[StatusChange] = queue.Queue()
        with self._lock:
            self._subscribers.append(events)
        return events

    def unsubscribe(self, events: queue.Queue[StatusChange]) -> None:
        """Stop delivering notifications to the queue."""
        with self._lock:
            if events in self._subscribers:
                self._subscribers.remove(events)

    def _notify(self, package: str, version: Version) -> None:
        change = StatusChange(package, version)
        with self._lock:
            subscribers = list(self._subscribers)
        for events in subscribers:
            events.put(change)

    # =========================================================================
    # Queries
    # =========================================================================

    def find(self, package: str, version: Version) -> InstalledPackageVersion | None:
        """Return a copy of the record or None if the version is unknown."""
        with self._lock:
            ipv = self._data.get((package, version))
            return ipv.clone() if ipv is not None else None

    def get_path(self, package: str, version: Version) -> str:
        """Return the installation directory or "" if not installed."""
        with self._lock:
            ipv = self._data.get((package, version))
            return ipv.directory if ipv is not None else ""

    def is_installed(self, package: str, version: Version) -> bool:
        """Check whether the version is installed."""
        return self.get_path(package, version) != ""

    def get_all_installed(self) -> list[InstalledPackageVersion]:
        """Return copies of all installed records, sorted by package and version."""
        with self._lock:
            records = [ipv.clone() for ipv in self._data.values() if ipv.installed]
        return sorted(records, key=lambda r: (r.package, r.version))

    def get_all_installed_paths(self) -> list[str]:
        """Return the installation directories of all installed versions."""
        return [ipv.directory for ipv in self.get_all_installed()]

    # =========================================================================
    # Mutations
    # =========================================================================

    def find_or_create(self, package: str, version: Version) -> InstalledPackageVersion:
        """Return a copy of the record, creating a transient placeholder if needed.

        A placeholder is not persisted until it receives a directory.
        """
        with self._lock:
            ipv = self._data.get((package, version))
            if ipv is None:
                ipv = InstalledPackageVersion(package=package, version=version, transient=True)
                self._data[(package, version)] = ipv
                created = True
            else:
                created = False
            result = ipv.clone()
        if created:
            self._notify(package, version)
        return result

    def set_path(
        self,
        package: str,
        version: Version,
        directory: str,
        detection_info: str | None = None,
    ) -> None:
        """Change the installation directory of a package version.

        An empty directory marks the version as not installed. The record
        stays in the store to keep its detection info, unless it never
        had a directory.

        Args:
            package: Package name.
            version: Package version.
            directory: New installation directory or "".
            detection_info: New provenance or None to keep the current one.

        Raises:
            RegistryError: If the record cannot be persisted. The in-memory
                state is left unchanged in that case.
        """
        with self._lock:
            current = self._data.get((package, version))
            if current is None:
                updated = InstalledPackageVersion(package=package, version=version, transient=True)
            else:
                updated = current.clone()
            updated.directory = directory
            if detection_info is not None:
                updated.detection_info = detection_info
            if directory:
                updated.transient = False
            self._save(updated)
            self._data[(package, version)] = updated
        logger.debug("Path of %s %s set to %r", package, version, directory)
        self._notify(package, version)

    def set_path_if_not_installed(
        self,
        package: str,
        version: Version,
        directory: str,
        detection_info: str | None = None,
    ) -> bool:
        """Set the directory only if the version is not installed yet.

        Returns:
            True if the directory was set.

        Raises:
            RegistryError: If the record cannot be persisted.
        """
        with self._lock:
            if self.is_installed(package, version):
                return False
            self.set_path(package, version, directory, detection_info)
            return True

    def _save(self, ipv: InstalledPackageVersion) -> None:
        key = _record_key(ipv.package, ipv.version)
        try:
            if not ipv.directory and ipv.transient:
                self.store.remove(key)
            else:
                self.store.write(key, {"path": ipv.directory, "detection_info": ipv.detection_info})
        except PkgctlError as e:
            raise RegistryError(f"Cannot save {ipv.package} {ipv.version}: {e}") from e

    # =========================================================================
    # Loading and refreshing
    # =========================================================================

    def load(self) -> None:
        """Replace the in-memory records with the persisted ones.

        Entries with an invalid name or version are skipped. Directories
        that no longer exist are treated as not installed.

        Raises:
            RegistryError: If the store cannot be read.
        """
        records: dict[tuple[str, Version], InstalledPackageVersion] = {}
        try:
            names = self.store.children(PACKAGES_KEY)
            for name in names:
                package, sep, version_text = name.rpartition("-")
                if not sep or not Package.is_valid_name(package) or not Version.is_valid(version_text):
                    logger.debug("Skipping invalid registry entry %r", name)
                    continue
                values = self.store.read(f"{PACKAGES_KEY}/{name}") or {}
                version = Version.parse(version_text)
                directory = values.get("path", "").strip()
                if directory and not os.path.isdir(directory):
                    logger.info("Directory %s of %s %s no longer exists", directory, package, version)
                    directory = ""
                records[(package, version)] = InstalledPackageVersion(
                    package=package,
                    version=version,
                    directory=directory,
                    detection_info=values.get("detection_info", ""),
                )
        except PkgctlError as e:
            raise RegistryError(f"Cannot read the package registry: {e}") from e

        if isinstance(self.catalog, MemoryCatalog):
            for package, version in records:
                self.catalog.add_package_version(package, version)

        with self._lock:
            changed = set(records) | set(self._data)
            self._data = records
        logger.debug("Loaded %d registry record(s)", len(records))
        for package, version in sorted(changed):
            self._notify(package, version)

    def refresh(self, job: Job) -> None:
        """Bring the registry in sync with the disk.

        Steps: clear directories deleted externally, reload the persisted
        records, merge the results of all detectors, clear directories
        nested inside other installations. Store failures are reported on
        the job; a failing detector does not stop the others.

        The job is always completed.
        """
        try:
            if job.should_proceed("Detecting directories deleted externally"):
                self._clear_deleted_directories()
                job.set_progress(0.1)

            if job.should_proceed("Reading the package database"):
                try:
                    self.load()
                except RegistryError as e:
                    job.set_error_message(str(e))
                job.set_progress(0.2)

            if job.should_proceed("Detecting software"):
                self._detect(job.new_sub_job(0.7, "Detecting software"))
                job.set_progress(0.9)

            if job.should_proceed("Clearing nested installation directories"):
                self._clear_nested_directories()
                job.set_progress(1)
        finally:
            job.complete()

    def _clear_path_best_effort(self, ipv: InstalledPackageVersion) -> None:
        try:
            self.set_path(ipv.package, ipv.version, "")
        except RegistryError as e:
            logger.warning("%s", e)

    def _clear_deleted_directories(self) -> None:
        for ipv in self.get_all_installed():
            if not os.path.isdir(ipv.directory):
                logger.info("Directory %s of %s %s was deleted", ipv.directory, ipv.package, ipv.version)
                self._clear_path_best_effort(ipv)

    def _detect(self, job: Job) -> None:
        try:
            for i, detector in enumerate(self.detectors):
                if not job.should_proceed(f"Running {detector.name}"):
                    break
                if detector.is_available():
                    try:
                        result = detector.scan()
                    except Exception:
                        logger.exception("Detector %s failed", detector.name)
                    else:
                        n = self._merge(detector, result)
                        logger.debug("Detector %s adopted %d installation(s)", detector.name, n)
                job.set_progress((i + 1) / len(self.detectors))
        finally:
            job.complete()

    def _merge(self, detector: Detector, result: DetectionResult) -> int:
        if isinstance(self.catalog, MemoryCatalog):
            for package in result.packages:
                if self.catalog.find_package(package.name) is None:
                    self.catalog.save_package(package)
            for pv in result.versions:
                if self.catalog.find_package_version(pv.package, pv.version) is None:
                    self.catalog.add_package_version(pv.package, pv.version)
                    self.catalog.save_package_version(pv)

        adopted = 0
        for ipv in result.installed:
            if not ipv.directory or not os.path.isdir(ipv.directory):
                continue
            existing = self.get_path(ipv.package, ipv.version)
            if existing and os.path.isdir(existing):
                continue
            if isinstance(self.catalog, MemoryCatalog):
                self.catalog.add_package_version(ipv.package, ipv.version)
            info = ipv.detection_info or f"{detector.name}:{ipv.directory}"
            try:
                self.set_path(ipv.package, ipv.version, ipv.directory, info)
            except RegistryError as e:
                logger.warning("%s", e)
                continue
            adopted += 1
        return adopted

    def _clear_nested_directories(self) -> None:
        installed = sorted(
            self.get_all_installed(),
            key=lambda r: (path_depth(r.directory), r.directory),
        )
        cleared: set[tuple[str, Version]] = set()
        for i, outer in enumerate(installed):
            if (outer.package, outer.version) in cleared:
                continue
            for inner in installed[i + 1 :]:
                if (inner.package, inner.version) in cleared:
                    continue
                if is_under_or_equals(inner.directory, outer.directory):
                    logger.info(
                        "%s %s is installed inside %s; no longer tracking it",
                        inner.package,
                        inner.version,
                        outer.directory,
                    )
                    self._clear_path_best_effort(inner)
                    cleared.add((inner.package, inner.version))
