"""Detectors for software installed outside of pkgctl.

Detectors run in priority order during a registry refresh; earlier
detectors win for the same package version.
"""

from pkgctl.detectors.base import DetectionResult, Detector
from pkgctl.detectors.marker import MarkerDetector
from pkgctl.detectors.well_known import WellKnownDetector, WellKnownProgram

__all__ = ["DetectionResult", "Detector", "MarkerDetector", "WellKnownDetector", "WellKnownProgram"]
