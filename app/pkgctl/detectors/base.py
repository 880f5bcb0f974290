"""Abstract base class for installed-software detectors.

Detectors find software that was not installed through pkgctl, or whose
registry record was lost, and report it so the registry can adopt it.
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass, field

from pkgctl.models.package import InstalledPackageVersion, Package, PackageVersion


@dataclass(slots=True)
class DetectionResult:
    """Everything one detector found during a scan.

    Attributes:
        installed: Installation records with directory and detection info.
        packages: Catalog packages describing the detected software.
        versions: Catalog versions describing the detected software.
    """

    installed: list[InstalledPackageVersion] = field(default_factory=list)
    packages: list[Package] = field(default_factory=list)
    versions: list[PackageVersion] = field(default_factory=list)


class Detector(ABC):
    """Abstract base class for all detectors.

    Example:
        >>> detector = MarkerDetector(Path("/opt/pkgctl"))
        >>> if detector.is_available():
        ...     for ipv in detector.scan().installed:
        ...         print(f"{ipv.package}: {ipv.directory}")
    """

    @property
    @abstractmethod
    def name(self) -> str:
        """Short identifier used in logs and detection info."""

    @abstractmethod
    def scan(self) -> DetectionResult:
        """Scan the system.

        Returns:
            DetectionResult with the detected software.

        Raises:
            RuntimeError: If the scan cannot be performed.
        """

    def is_available(self) -> bool:
        """Check if this detector can run on the current system."""
        return True
