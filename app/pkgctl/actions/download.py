"""Default action: download a package version into its directory.

The downloaded file is stored under its URL file name and a marker file
``.pkgctl/package.toml`` is written next to it so that the installation
can be adopted again after the registry was lost.
"""

import logging
import shutil
from pathlib import Path
from urllib.parse import unquote, urlparse

import tomli_w

from pkgctl.actions.base import PackageAction
from pkgctl.core.downloader import Downloader, verify_digest
from pkgctl.core.errors import PkgctlError, RegistryError
from pkgctl.core.job import Job
from pkgctl.core.locks import is_directory_locked
from pkgctl.core.registry import InstalledRegistry
from pkgctl.detectors.marker import marker_path
from pkgctl.models.package import Package, PackageVersion
from pkgctl.models.version import Version
from pkgctl.utils.fs import find_non_existing_path, make_valid_filename

logger = logging.getLogger(__name__)


def preferred_installation_directory(install_dir: Path, package: Package, version: Version) -> Path:
    """Choose a directory for a new installation.

    Uses ``install_dir/<title>`` and falls back to ``<title>-<version>``
    (with a numeric suffix if needed) when that directory already exists.
    """
    title = make_valid_filename(package.title)
    plain = install_dir / title
    if not plain.exists():
        return plain
    return find_non_existing_path(install_dir / f"{title}-{version}")


def _download_file_name(package_version: PackageVersion) -> str:
    parsed = urlparse(package_version.download or "")
    name = Path(unquote(parsed.path)).name if parsed.scheme in ("http", "https") else ""
    if not name:
        name = f"{package_version.package.rsplit('.', 1)[-1]}-{package_version.version}"
    return make_valid_filename(name)


class DownloadAction(PackageAction):
    """Installs a package version by downloading its file.

    Args:
        package_version: Version to install or remove.
        registry: Registry updated after a successful step.
        downloader: Downloader for the package file.
        use_cache: If False, ask HTTP caches to revalidate.
    """

    def __init__(
        self,
        package_version: PackageVersion,
        registry: InstalledRegistry,
        downloader: Downloader,
        use_cache: bool = True,
    ) -> None:
        super().__init__(package_version)
        self.registry = registry
        self.downloader = downloader
        self.use_cache = use_cache

    def install(self, job: Job, target_directory: Path) -> None:
        pv = self.package_version
        created = False
        try:
            if not pv.can_be_installed:
                job.set_error_message(f"{pv} has no valid download location")
                return

            if job.should_proceed(f"Creating {target_directory}"):
                created = not target_directory.exists()
                target_directory.mkdir(parents=True, exist_ok=True)
                job.set_progress(0.05)

            if job.should_proceed("Downloading"):
                sub = job.new_sub_job(0.85, "Downloading")
                destination = target_directory / _download_file_name(pv)
                try:
                    result = self.downloader.fetch(
                        pv.download,
                        destination,
                        hash_algorithm=pv.hash_algorithm,
                        use_cache=self.use_cache,
                        job=sub,
                    )
                finally:
                    sub.dispose()
                if pv.content_hash and result.digest is not None:
                    verify_digest(pv.content_hash, result.digest)

            if job.should_proceed("Writing the package marker"):
                marker = marker_path(target_directory)
                marker.parent.mkdir(exist_ok=True)
                with open(marker, "wb") as f:
                    tomli_w.dump(
                        {
                            "package": pv.package,
                            "version": str(pv.version),
                            "download": pv.download or "",
                        },
                        f,
                    )
                job.set_progress(0.95)

            if job.should_proceed("Updating the package registry"):
                self.registry.set_path(pv.package, pv.version, str(target_directory), detection_info="")
                job.set_progress(1)
        except (PkgctlError, OSError) as e:
            job.set_error_message(str(e))
        finally:
            if created and not self.registry.is_installed(pv.package, pv.version):
                logger.info("Removing incomplete installation %s", target_directory)
                shutil.rmtree(target_directory, ignore_errors=True)
            job.complete()

    def uninstall(self, job: Job) -> None:
        pv = self.package_version
        try:
            directory = self.registry.get_path(pv.package, pv.version)
            if not directory:
                job.set_error_message(f"{pv} is not installed")
                return

            if job.should_proceed(f"Deleting {directory}"):
                shutil.rmtree(directory)
                job.set_progress(0.9)

            if job.should_proceed("Updating the package registry"):
                self.registry.set_path(pv.package, pv.version, "")
                job.set_progress(1)
        except (RegistryError, OSError) as e:
            job.set_error_message(str(e))
        finally:
            job.complete()

    def is_locked(self) -> bool:
        directory = self.registry.get_path(self.package_version.package, self.package_version.version)
        return bool(directory) and is_directory_locked(directory)
