"""Abstract base class for per-package install and uninstall actions.

The executor does not know how a package is installed. It hands every
operation to a :class:`PackageAction` and only inspects the job it ran in.
"""

from abc import ABC, abstractmethod
from pathlib import Path

from pkgctl.core.job import Job
from pkgctl.models.package import PackageVersion


class PackageAction(ABC):
    """Installs and removes one package version.

    Implementations report failures through ``job.set_error_message`` and
    always complete the job they were given.

    Attributes:
        package_version: The version this action operates on.

    Example:
        >>> action = DownloadAction(pv, registry, downloader)
        >>> action.install(job, Path("/opt/pkgctl/Editor"))
        >>> job.wait()
        >>> print(job.error_message or "installed")
    """

    def __init__(self, package_version: PackageVersion) -> None:
        self.package_version = package_version

    @abstractmethod
    def install(self, job: Job, target_directory: Path) -> None:
        """Install the package version into the directory.

        Args:
            job: Job for progress and errors; completed on return.
            target_directory: Directory that will hold the installation.
        """

    @abstractmethod
    def uninstall(self, job: Job) -> None:
        """Remove the installed package version.

        Args:
            job: Job for progress and errors; completed on return.
        """

    @abstractmethod
    def is_locked(self) -> bool:
        """Check whether files of the installation are in use."""
