"""Version and dependency models.

Versions are dotted sequences of non-negative integers. Trailing zero
components are not significant: ``1.2``, ``1.2.0`` and ``1.2.0.0`` are the
same version and share one canonical representation.
"""

from __future__ import annotations

import re
from dataclasses import dataclass
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from pkgctl.models.package import PackageVersion

_VERSION_PATTERN = re.compile(r"^\d+(\.\d+)*$")

# Comparison operators accepted in ">=1.0, <2" style constraints
_COMPARISON_PATTERN = re.compile(r"^(>=|<=|==|>|<|=)\s*(\S+)$")


@dataclass(frozen=True, slots=True, order=True)
class Version:
    """Totally ordered package version.

    The ``parts`` tuple is stored without trailing zeros, so the generated
    ordering and equality operate on the canonical form directly.

    Attributes:
        parts: Version components with trailing zeros removed.
    """

    parts: tuple[int, ...] = ()

    def __post_init__(self) -> None:
        """Normalize the parts tuple to its canonical form."""
        parts = tuple(self.parts)
        if any(p < 0 for p in parts):
            msg = f"Version components must be non-negative: {parts}"
            raise ValueError(msg)
        while parts and parts[-1] == 0:
            parts = parts[:-1]
        object.__setattr__(self, "parts", parts)

    @classmethod
    def parse(cls, text: str) -> Version:
        """Parse a dotted version string.

        Args:
            text: Version text such as "1.2.3".

        Returns:
            Parsed Version.

        Raises:
            ValueError: If the text is not a dotted numeric version.
        """
        value = text.strip()
        if not _VERSION_PATTERN.match(value):
            msg = f"Invalid version: {text!r}"
            raise ValueError(msg)
        return cls(tuple(int(p) for p in value.split(".")))

    @classmethod
    def is_valid(cls, text: str) -> bool:
        """Check whether text can be parsed as a version."""
        return bool(_VERSION_PATTERN.match(text.strip()))

    def __str__(self) -> str:
        parts = list(self.parts)
        while len(parts) < 2:
            parts.append(0)
        return ".".join(str(p) for p in parts)

    def __repr__(self) -> str:
        return f"Version('{self}')"


@dataclass(frozen=True, slots=True)
class Dependency:
    """Constraint on the versions of another package.

    A missing bound means the range is open on that side.

    Attributes:
        package: Name of the required package.
        min: Lower bound or None.
        max: Upper bound or None.
        min_included: Whether the lower bound itself satisfies the range.
        max_included: Whether the upper bound itself satisfies the range.
    """

    package: str
    min: Version | None = None
    max: Version | None = None
    min_included: bool = True
    max_included: bool = False

    def __post_init__(self) -> None:
        """Validate dependency data after initialization."""
        if not self.package:
            msg = "Dependency package name cannot be empty"
            raise ValueError(msg)

    @classmethod
    def parse(cls, package: str, text: str) -> Dependency:
        """Parse a version range for a package.

        Supported notations:
            - interval: "[1.0, 2.0)", "(1.0,)", "[1.5]"
            - comparisons: ">=1.0", "<2", "==1.3", ">=1, <2"
            - any version: "" or "*"

        Args:
            package: Name of the required package.
            text: Version range text.

        Returns:
            Parsed Dependency.

        Raises:
            ValueError: If the range cannot be parsed.
        """
        value = text.strip()
        if value in ("", "*"):
            return cls(package=package)
        if value[0] in "[(":
            return cls._parse_interval(package, value)
        return cls._parse_comparisons(package, value)

    @classmethod
    def _parse_interval(cls, package: str, value: str) -> Dependency:
        if value[-1] not in ")]":
            msg = f"Invalid version range: {value!r}"
            raise ValueError(msg)
        body = value[1:-1]
        if "," not in body:
            # "[1.5]" pins exactly one version
            exact = Version.parse(body)
            return cls(package=package, min=exact, max=exact, max_included=True)
        low, high = (s.strip() for s in body.split(",", 1))
        return cls(
            package=package,
            min=Version.parse(low) if low else None,
            max=Version.parse(high) if high else None,
            min_included=value[0] == "[",
            max_included=value[-1] == "]",
        )

    @classmethod
    def _parse_comparisons(cls, package: str, value: str) -> Dependency:
        low: Version | None = None
        high: Version | None = None
        low_included = True
        high_included = False
        for clause in value.split(","):
            match = _COMPARISON_PATTERN.match(clause.strip())
            if match is None:
                msg = f"Invalid version constraint: {clause.strip()!r}"
                raise ValueError(msg)
            op, version = match.group(1), Version.parse(match.group(2))
            if op in ("==", "="):
                low, high, low_included, high_included = version, version, True, True
            elif op in (">=", ">"):
                low, low_included = version, op == ">="
            else:
                high, high_included = version, op == "<="
        return cls(
            package=package,
            min=low,
            max=high,
            min_included=low_included,
            max_included=high_included,
        )

    def test(self, version: Version) -> bool:
        """Check whether a version lies inside this range."""
        if self.min is not None:
            if version < self.min or (version == self.min and not self.min_included):
                return False
        if self.max is not None:
            if version > self.max or (version == self.max and not self.max_included):
                return False
        return True

    def is_satisfied_by(self, package_version: PackageVersion) -> bool:
        """Check whether a package version fulfils this dependency."""
        return package_version.package == self.package and self.test(package_version.version)

    @property
    def range_text(self) -> str:
        """Interval notation of the version range ("*" for any)."""
        if self.min is None and self.max is None:
            return "*"
        if self.min is not None and self.min == self.max:
            return f"[{self.min}]"
        left = "[" if self.min_included and self.min is not None else "("
        right = "]" if self.max_included and self.max is not None else ")"
        low = str(self.min) if self.min is not None else ""
        high = str(self.max) if self.max is not None else ""
        return f"{left}{low}, {high}{right}"

    def __str__(self) -> str:
        return f"{self.package} {self.range_text}"
