"""Data models for pkgctl.

This module exports the core data structures used throughout the application.
"""

from pkgctl.models.history import (
    HistoryActionType,
    HistoryEntry,
    HistoryItem,
    create_history_entry,
)
from pkgctl.models.operation import (
    InstallOperation,
    OperationType,
    create_install_operation,
    create_uninstall_operation,
)
from pkgctl.models.package import InstalledPackageVersion, Package, PackageVersion
from pkgctl.models.version import Dependency, Version

__all__ = [
    "Dependency",
    "HistoryActionType",
    "HistoryEntry",
    "HistoryItem",
    "InstallOperation",
    "InstalledPackageVersion",
    "OperationType",
    "Package",
    "PackageVersion",
    "Version",
    "create_history_entry",
    "create_install_operation",
    "create_uninstall_operation",
]
