"""Detector for configured programs installed at well-known locations."""

import logging
from collections.abc import Sequence
from dataclasses import dataclass
from pathlib import Path

from pkgctl.detectors.base import DetectionResult, Detector
from pkgctl.models.package import InstalledPackageVersion, Package, PackageVersion
from pkgctl.models.version import Version

logger = logging.getLogger(__name__)


@dataclass(frozen=True, slots=True)
class WellKnownProgram:
    """A program that is recognized by its installation directory.

    Attributes:
        package: Package name to record.
        version: Version to record.
        directory: Directory that exists when the program is installed.
        title: Optional package title.
    """

    package: str
    version: Version
    directory: Path
    title: str = ""


class WellKnownDetector(Detector):
    """Reports configured programs whose directory exists."""

    def __init__(self, programs: Sequence[WellKnownProgram]) -> None:
        self.programs = list(programs)

    @property
    def name(self) -> str:
        return "well-known"

    def is_available(self) -> bool:
        return bool(self.programs)

    def scan(self) -> DetectionResult:
        result = DetectionResult()
        for program in self.programs:
            if not program.directory.is_dir():
                logger.debug("%s not found at %s", program.package, program.directory)
                continue
            result.packages.append(Package(name=program.package, title=program.title))
            result.versions.append(PackageVersion(package=program.package, version=program.version))
            result.installed.append(
                InstalledPackageVersion(
                    package=program.package,
                    version=program.version,
                    directory=str(program.directory),
                    detection_info=f"well-known:{program.directory}",
                )
            )
        return result
