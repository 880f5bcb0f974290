"""Detector re-adopting directories that carry a pkgctl marker file.

Every installation made by :class:`DownloadAction` contains
``.pkgctl/package.toml``. Scanning the installation root for these files
restores registry records that were lost.
"""

import logging
import tomllib
from pathlib import Path

from pkgctl.detectors.base import DetectionResult, Detector
from pkgctl.models.package import InstalledPackageVersion, Package
from pkgctl.models.version import Version

logger = logging.getLogger(__name__)

MARKER_DIR = ".pkgctl"
MARKER_FILE = "package.toml"


def marker_path(directory: str | Path) -> Path:
    """Location of the marker file inside an installation directory."""
    return Path(directory) / MARKER_DIR / MARKER_FILE


class MarkerDetector(Detector):
    """Detector for marker files directly below the installation root.

    Attributes:
        install_dir: Root directory holding one sub-directory per installation.
    """

    def __init__(self, install_dir: Path) -> None:
        self.install_dir = install_dir

    @property
    def name(self) -> str:
        return "marker"

    def is_available(self) -> bool:
        """Check if the installation root exists."""
        return self.install_dir.is_dir()

    def scan(self) -> DetectionResult:
        """Read all marker files below the installation root.

        Unreadable or invalid markers are skipped.

        Raises:
            RuntimeError: If the installation root cannot be listed.
        """
        result = DetectionResult()
        try:
            directories = sorted(p for p in self.install_dir.iterdir() if p.is_dir())
        except OSError as e:
            msg = f"Cannot list {self.install_dir}: {e}"
            raise RuntimeError(msg) from e

        for directory in directories:
            marker = marker_path(directory)
            if not marker.is_file():
                continue
            ipv = self._read_marker(marker, directory)
            if ipv is None:
                continue
            result.installed.append(ipv)
            result.packages.append(Package(name=ipv.package))
        return result

    def _read_marker(self, marker: Path, directory: Path) -> InstalledPackageVersion | None:
        try:
            with open(marker, "rb") as f:
                data = tomllib.load(f)
            package = str(data["package"])
            version = Version.parse(str(data["version"]))
        except (OSError, tomllib.TOMLDecodeError, KeyError, ValueError) as e:
            logger.warning("Ignoring invalid marker %s: %s", marker, e)
            return None
        if not Package.is_valid_name(package):
            logger.warning("Ignoring marker %s with invalid package name %r", marker, package)
            return None
        return InstalledPackageVersion(
            package=package,
            version=version,
            directory=str(directory),
            detection_info=f"marker:{directory}",
        )
