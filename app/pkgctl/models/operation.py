"""Operation models for planned package changes.

This module defines data structures for representing the install and
uninstall steps produced by the planner and consumed by the executor.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum

from pkgctl.models.version import Version


class OperationType(Enum):
    """Direction of a planned operation.

    Attributes:
        INSTALL: Install a package version that is not installed.
        UNINSTALL: Remove an installed package version.
    """

    INSTALL = "install"
    UNINSTALL = "uninstall"


@dataclass(frozen=True, slots=True)
class InstallOperation:
    """A single planned install or uninstall of one package version.

    Attributes:
        package: Name of the package to operate on.
        version: Version of the package.
        operation_type: Install or uninstall.
    """

    package: str
    version: Version
    operation_type: OperationType

    def __post_init__(self) -> None:
        """Validate operation data after initialization."""
        if not self.package:
            msg = "Package name cannot be empty"
            raise ValueError(msg)

    @property
    def is_install(self) -> bool:
        """Check if this is an install operation."""
        return self.operation_type == OperationType.INSTALL

    @property
    def is_uninstall(self) -> bool:
        """Check if this is an uninstall operation."""
        return self.operation_type == OperationType.UNINSTALL

    def is_opposite(self, other: InstallOperation) -> bool:
        """Check if the other operation undoes this one.

        Two operations are opposite when they target the same package
        version in opposite directions.
        """
        return (
            self.package == other.package
            and self.version == other.version
            and self.operation_type != other.operation_type
        )

    def __str__(self) -> str:
        return f"{self.operation_type.value} {self.package} {self.version}"


def create_install_operation(package: str, version: Version) -> InstallOperation:
    """Create an install operation for a package version."""
    return InstallOperation(package=package, version=version, operation_type=OperationType.INSTALL)


def create_uninstall_operation(package: str, version: Version) -> InstallOperation:
    """Create an uninstall operation for a package version."""
    return InstallOperation(
        package=package,
        version=version,
        operation_type=OperationType.UNINSTALL,
    )
