"""Installation planner.

Turns "install this", "remove that" and "update these" requests into an
ordered list of :class:`InstallOperation` values. Planning only reads the
catalog and a snapshot of the installed versions; nothing is changed on
disk and a failed plan leaves no partial state behind.

The planner uses a newest-version heuristic, not a general solver: an
unmet dependency is satisfied by the newest installable version in range.
"""

import logging
from collections.abc import Callable, Iterable

from pkgctl.core.catalog import Catalog
from pkgctl.core.errors import (
    AlreadyCurrentError,
    DependencyError,
    NoInstallableVersionError,
    NoInstalledVersionError,
    PackageNotFoundError,
)
from pkgctl.core.registry import InstalledRegistry
from pkgctl.models.operation import (
    InstallOperation,
    create_install_operation,
    create_uninstall_operation,
)
from pkgctl.models.package import PackageVersion
from pkgctl.models.version import Dependency, Version

logger = logging.getLogger(__name__)

# Decides whether two versions of one package cannot be installed side by side
ConflictHook = Callable[[PackageVersion, PackageVersion], bool]


def _always_conflicts(old: PackageVersion, new: PackageVersion) -> bool:
    return True


class Planner:
    """Plans install, uninstall and update operations.

    Args:
        catalog: Source of package versions and dependencies.
        registry: Installed registry used for the default snapshot.
        self_package: Package name of the running application.
        self_version: Version of the running application.
        conflicts: Hook deciding whether an old and a new version must not
            coexist. Updates of such packages are planned as a fused
            uninstall-then-install pair when possible.
    """

    def __init__(
        self,
        catalog: Catalog,
        registry: InstalledRegistry,
        self_package: str | None = None,
        self_version: Version | None = None,
        conflicts: ConflictHook | None = None,
    ) -> None:
        self.catalog = catalog
        self.registry = registry
        self.self_package = self_package
        self.self_version = self_version
        self.conflicts = conflicts or _always_conflicts

    def installed_snapshot(self) -> list[PackageVersion]:
        """Return the catalog versions of everything currently installed.

        Installed records unknown to the catalog are represented by bare
        versions without dependencies.
        """
        snapshot = []
        for ipv in self.registry.get_all_installed():
            pv = self.catalog.find_package_version(ipv.package, ipv.version)
            snapshot.append(pv or PackageVersion(package=ipv.package, version=ipv.version))
        return snapshot

    def resolve(self, name: str, version: Version | None = None) -> PackageVersion:
        """Find a catalog version; the newest installable one without a version.

        Raises:
            PackageNotFoundError: If the package or version is unknown.
            NoInstallableVersionError: If no version can be installed.
        """
        if self.catalog.find_package(name) is None:
            msg = f"Unknown package {name}"
            raise PackageNotFoundError(msg)
        if version is not None:
            pv = self.catalog.find_package_version(name, version)
            if pv is None:
                msg = f"Unknown package version {name} {version}"
                raise PackageNotFoundError(msg)
            return pv
        pv = self.catalog.find_newest_installable(name)
        if pv is None:
            title = self.catalog.get_package_title_and_name(name)
            msg = f"No installable version found for the package {title}"
            raise NoInstallableVersionError(msg)
        return pv

    # =========================================================================
    # Installation
    # =========================================================================

    def plan_installation(
        self,
        target: PackageVersion,
        installed: list[PackageVersion] | None = None,
        avoid: list[PackageVersion] | None = None,
    ) -> list[InstallOperation]:
        """Plan the installation of a version and its missing dependencies.

        Dependencies are installed before the packages that need them.

        Args:
            target: Version to install.
            installed: Installed versions. The list is updated with the
                planned installs; a copy of the registry state is used if
                omitted.
            avoid: Versions that must not be planned again (cycle guard).

        Returns:
            Planned operations, empty if the target is already installed.

        Raises:
            DependencyError: If a dependency cannot be satisfied.
            NoInstallableVersionError: If the target cannot be downloaded.
        """
        if installed is None:
            installed = self.installed_snapshot()
        working = list(installed)
        ops: list[InstallOperation] = []
        self._plan_installation(target, working, ops, list(avoid or []))
        installed[:] = working
        logger.debug("Planned %d operation(s) to install %s", len(ops), target)
        return ops

    def _plan_installation(
        self,
        target: PackageVersion,
        installed: list[PackageVersion],
        ops: list[InstallOperation],
        avoid: list[PackageVersion],
    ) -> None:
        if target in installed:
            return
        avoid.append(target)

        for dependency in target.dependencies:
            if any(dependency.is_satisfied_by(pv) for pv in installed):
                continue
            candidate = self._find_best_match(dependency, avoid)
            if candidate is None:
                msg = (
                    f"Unsatisfied dependency {dependency} of {target}: "
                    "no installable version in range"
                )
                raise DependencyError(msg)
            self._plan_installation(candidate, installed, ops, avoid)

        if not target.can_be_installed:
            msg = f"{target} has no valid download location"
            raise NoInstallableVersionError(msg)
        ops.append(create_install_operation(target.package, target.version))
        installed.append(target)

    def _find_best_match(
        self, dependency: Dependency, avoid: Iterable[PackageVersion]
    ) -> PackageVersion | None:
        excluded = set(avoid)
        candidates = [
            pv
            for pv in self.catalog.get_package_versions(dependency.package)
            if pv.can_be_installed and dependency.test(pv.version) and pv not in excluded
        ]
        return max(candidates, key=lambda pv: pv.version, default=None)

    # =========================================================================
    # Uninstallation
    # =========================================================================

    def plan_uninstallation(
        self,
        target: PackageVersion,
        installed: list[PackageVersion] | None = None,
    ) -> list[InstallOperation]:
        """Plan the removal of an installed version.

        Args:
            target: Version to remove.
            installed: Installed versions, updated with the planned removal.

        Returns:
            Planned operations, empty if the target is not installed.

        Raises:
            DependencyError: If another installed package needs the target
                and no other installed version satisfies it.
        """
        if installed is None:
            installed = self.installed_snapshot()
        if target not in installed:
            return []

        others = [pv for pv in installed if pv != target]
        for pv in others:
            for dependency in pv.dependencies:
                if not dependency.is_satisfied_by(target):
                    continue
                if any(dependency.is_satisfied_by(o) for o in others):
                    continue
                msg = f"Cannot uninstall {target} because {pv} depends on it"
                raise DependencyError(msg)

        installed.remove(target)
        return [create_uninstall_operation(target.package, target.version)]

    # =========================================================================
    # Updates
    # =========================================================================

    def plan_updates(
        self,
        packages: Iterable[str],
        installed: list[PackageVersion] | None = None,
    ) -> list[InstallOperation]:
        """Plan updates of packages to their newest installable versions.

        Packages that are already current are skipped. Versions that must
        not coexist are replaced by a fused uninstall-then-install pair when
        that touches nothing else. All other updates install every new
        version first and then remove the old ones.

        Raises:
            NoInstallableVersionError: If a package has no installable version.
            NoInstalledVersionError: If a package is not installed at all.
            DependencyError: If an update cannot be planned.
        """
        if installed is None:
            installed = self.installed_snapshot()
        registry_view = _SnapshotLookup(installed)

        pairs: list[tuple[PackageVersion, PackageVersion]] = []
        for name in packages:
            title = self.catalog.get_package_title_and_name(name)
            newest = self.catalog.find_newest_installable(name)
            if newest is None:
                msg = f"No installable version found for the package {title}"
                raise NoInstallableVersionError(msg)
            current = self.catalog.find_newest_installed(name, registry_view)
            if current is None:
                msg = f"No installed version found for the package {title}"
                raise NoInstalledVersionError(msg)
            if newest.version > current.version:
                pairs.append((current, newest))
            else:
                logger.debug("%s is up to date", title)

        ops: list[InstallOperation] = []
        remaining: list[tuple[PackageVersion, PackageVersion]] = []
        for current, newest in pairs:
            if self.conflicts(current, newest):
                fused = self._try_fused_update(current, newest, installed)
                if fused is not None:
                    ops.extend(fused)
                    continue
            remaining.append((current, newest))

        for _, newest in remaining:
            ops.extend(self.plan_installation(newest, installed))
        for current, _ in remaining:
            ops.extend(self.plan_uninstallation(current, installed))

        return self.simplify(ops)

    def _try_fused_update(
        self,
        current: PackageVersion,
        newest: PackageVersion,
        installed: list[PackageVersion],
    ) -> list[InstallOperation] | None:
        trial = list(installed)
        try:
            ops = self.plan_uninstallation(current, trial)
            ops += self.plan_installation(newest, trial)
        except (DependencyError, NoInstallableVersionError) as e:
            logger.debug("Cannot fuse the update of %s: %s", current.package, e)
            return None
        if len(ops) != 2:
            return None
        installed[:] = trial
        return ops

    def plan_update(self, name: str) -> list[InstallOperation]:
        """Plan the update of one package.

        Raises:
            AlreadyCurrentError: If the newest installable version is installed.
            PlanningError: For every other planning failure.
        """
        ops = self.plan_updates([name])
        if not ops:
            msg = f"{self.catalog.get_package_title_and_name(name)} is already up to date"
            raise AlreadyCurrentError(msg)
        return ops

    # =========================================================================
    # Post-processing
    # =========================================================================

    @staticmethod
    def simplify(ops: list[InstallOperation]) -> list[InstallOperation]:
        """Remove pairs of opposite operations on the same package version."""
        result = list(ops)
        i = 0
        while i < len(result):
            for j in range(i + 1, len(result)):
                if result[i].is_opposite(result[j]):
                    del result[j]
                    del result[i]
                    break
            else:
                i += 1
        return result

    def order_for_execution(self, ops: list[InstallOperation]) -> list[InstallOperation]:
        """Reorder a plan for the executor.

        An update made of exactly one install and one uninstall of the same
        package runs the uninstall first. Removing the running application
        is always the last step.
        """
        result = list(ops)
        if len(result) == 2:
            first, second = result
            if first.package == second.package and first.is_install and second.is_uninstall:
                result = [second, first]

        if self.self_package is not None:
            own = [
                op
                for op in result
                if op.is_uninstall
                and op.package == self.self_package
                and (self.self_version is None or op.version == self.self_version)
            ]
            result = [op for op in result if op not in own] + own
        return result


class _SnapshotLookup:
    """Answers is_installed queries from a list of installed versions."""

    def __init__(self, installed: list[PackageVersion]) -> None:
        self._installed = {(pv.package, pv.version) for pv in installed}

    def is_installed(self, package: str, version: Version) -> bool:
        return (package, version) in self._installed
