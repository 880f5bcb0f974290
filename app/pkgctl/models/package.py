"""Package models for the catalog and the installed registry.

This module defines the core data structures for representing packages,
their versions and the installation records kept by the registry.
"""

from __future__ import annotations

import re
from dataclasses import dataclass, field, replace
from typing import Protocol

from pkgctl.models.version import Dependency, Version

# Reverse-DNS style identifier like "org.example.Editor"
_NAME_PATTERN = re.compile(r"^[A-Za-z0-9_\-]+(\.[A-Za-z0-9_\-]+)*$")

# Download URL schemes that can be fetched by the downloader
INSTALLABLE_SCHEMES = ("http://", "https://", "data:")


class InstalledLookup(Protocol):
    """Anything that can answer whether a package version is installed."""

    def is_installed(self, package: str, version: Version) -> bool: ...


@dataclass(frozen=True, slots=True)
class Package:
    """Versionless catalog entry for a piece of software.

    Attributes:
        name: Globally unique package name (e.g., 'org.gnu.Emacs').
        title: Short human-readable title (one line).
        url: Home page or empty string.
        icon: Icon URL or empty string.
        description: Multi-line description.
        license: License package name or empty string if unknown.
        categories: Categories, sub-categories separated by '/'.
    """

    name: str
    title: str = ""
    url: str = ""
    icon: str = ""
    description: str = ""
    license: str = ""
    categories: tuple[str, ...] = field(default_factory=tuple)

    def __post_init__(self) -> None:
        """Validate package data after initialization."""
        if not Package.is_valid_name(self.name):
            msg = f"Invalid package name: {self.name!r}"
            raise ValueError(msg)
        if not self.title:
            object.__setattr__(self, "title", self.name)

    @staticmethod
    def is_valid_name(name: str) -> bool:
        """Check whether the value is a valid package name."""
        return bool(name) and bool(_NAME_PATTERN.match(name))

    @property
    def short_name(self) -> str:
        """Part of the name after the last dot."""
        return self.name.rsplit(".", 1)[-1]


@dataclass(frozen=True, slots=True)
class PackageVersion:
    """One installable or detectable version of a package.

    Equality and hashing only consider ``(package, version)`` so that
    copies obtained from different sources compare equal.

    Attributes:
        package: Name of the package.
        version: Version of this entry.
        dependencies: Constraints on other packages.
        download: Download URL or None if this version is only detectable.
        content_hash: Expected hex digest of the downloaded content or None.
        hash_algorithm: Name of the hashlib algorithm for content_hash.
    """

    package: str
    version: Version
    dependencies: tuple[Dependency, ...] = field(default=(), compare=False)
    download: str | None = field(default=None, compare=False)
    content_hash: str | None = field(default=None, compare=False)
    hash_algorithm: str = field(default="sha1", compare=False)

    @property
    def string_id(self) -> str:
        """Identifier in the form 'package/version'."""
        return f"{self.package}/{self.version}"

    @property
    def can_be_installed(self) -> bool:
        """Check if this version has a usable download location."""
        return bool(self.download) and self.download.startswith(INSTALLABLE_SCHEMES)

    def is_installed(self, registry: InstalledLookup) -> bool:
        """Check whether the registry records this version as installed."""
        return registry.is_installed(self.package, self.version)

    def depends_on(self, package: str) -> bool:
        """Check whether any dependency refers to the given package."""
        return any(d.package == package for d in self.dependencies)

    def __str__(self) -> str:
        return f"{self.package} {self.version}"


@dataclass(slots=True)
class InstalledPackageVersion:
    """Registry record describing where a package version is installed.

    An empty directory means the version is not installed. Records are
    owned by the registry; everything handed out is a clone.

    Attributes:
        package: Name of the package.
        version: Installed version.
        directory: Installation directory or "" if not installed.
        detection_info: Provenance of the record (e.g. 'marker:/opt/x').
        transient: True while the record is only a placeholder that has
            never been installed; such records are not kept in the store
            once their directory is empty.
    """

    package: str
    version: Version
    directory: str = ""
    detection_info: str = ""
    transient: bool = False

    @property
    def installed(self) -> bool:
        """Check if this record points to an installation directory."""
        return self.directory != ""

    def clone(self) -> InstalledPackageVersion:
        """Return an independent copy of this record."""
        return replace(self)

    def __str__(self) -> str:
        return f"{self.package} {self.version} {self.directory}".rstrip()
