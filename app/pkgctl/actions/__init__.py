"""Per-package install and uninstall actions."""

from pkgctl.actions.base import PackageAction
from pkgctl.actions.download import DownloadAction, preferred_installation_directory

__all__ = ["DownloadAction", "PackageAction", "preferred_installation_directory"]
