"""Package catalog interface and TOML catalog documents.

The planner and the registry only talk to :class:`Catalog`. The
:class:`MemoryCatalog` implementation is filled from TOML catalog
documents::

    [[package]]
    name = "org.example.Editor"
    title = "Editor"

    [[version]]
    package = "org.example.Editor"
    version = "2.0"
    download = "https://example.org/editor-2.0.tar.gz"
    hash = "4e1243bd22c66e76c2ba9eddc1f91394e57f9f83"
    dependencies = [{ package = "org.example.Runtime", versions = ">=1.0" }]
"""

from __future__ import annotations

import hashlib
import logging
import threading
import tomllib
from abc import ABC, abstractmethod
from pathlib import Path
from typing import TYPE_CHECKING, Annotated
from urllib.parse import unquote, urlparse

from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator

from pkgctl.core.errors import CatalogError, PkgctlError
from pkgctl.models.package import InstalledLookup, Package, PackageVersion
from pkgctl.models.version import Dependency, Version

if TYPE_CHECKING:
    from pkgctl.core.downloader import Downloader
    from pkgctl.core.job import Job

logger = logging.getLogger(__name__)


class Catalog(ABC):
    """Read access to the available packages and package versions."""

    @abstractmethod
    def get_package_versions(self, name: str) -> list[PackageVersion]:
        """Return all known versions of a package (any order).

        Raises:
            CatalogError: If the catalog cannot be queried.
        """

    @abstractmethod
    def find_package(self, name: str) -> Package | None:
        """Return the package with the given name or None."""

    @abstractmethod
    def get_packages(self) -> list[Package]:
        """Return all packages sorted by name."""

    def find_package_version(self, name: str, version: Version) -> PackageVersion | None:
        """Return one specific package version or None."""
        for pv in self.get_package_versions(name):
            if pv.version == version:
                return pv
        return None

    def find_newest_installable(self, name: str) -> PackageVersion | None:
        """Return the newest version that has a valid download."""
        candidates = [pv for pv in self.get_package_versions(name) if pv.can_be_installed]
        return max(candidates, key=lambda pv: pv.version, default=None)

    def find_newest_installed(self, name: str, registry: InstalledLookup) -> PackageVersion | None:
        """Return the newest version the registry reports as installed."""
        candidates = [pv for pv in self.get_package_versions(name) if pv.is_installed(registry)]
        return max(candidates, key=lambda pv: pv.version, default=None)

    def get_package_title_and_name(self, name: str) -> str:
        """Return "Title (name)" or just the name for unknown packages."""
        package = self.find_package(name)
        if package is None:
            return name
        return f"{package.title} ({name})"


class MemoryCatalog(Catalog):
    """Thread-safe catalog held in memory."""

    def __init__(
        self,
        packages: list[Package] | None = None,
        versions: list[PackageVersion] | None = None,
    ) -> None:
        self._lock = threading.RLock()
        self._packages: dict[str, Package] = {}
        self._versions: dict[str, dict[Version, PackageVersion]] = {}
        for package in packages or []:
            self.save_package(package)
        for pv in versions or []:
            self.save_package_version(pv)

    def get_package_versions(self, name: str) -> list[PackageVersion]:
        with self._lock:
            return list(self._versions.get(name, {}).values())

    def find_package(self, name: str) -> Package | None:
        with self._lock:
            return self._packages.get(name)

    def get_packages(self) -> list[Package]:
        with self._lock:
            return sorted(self._packages.values(), key=lambda p: p.name)

    def save_package(self, package: Package) -> None:
        """Add or replace a package."""
        with self._lock:
            self._packages[package.name] = package

    def save_package_version(self, package_version: PackageVersion) -> None:
        """Add or replace a package version."""
        with self._lock:
            versions = self._versions.setdefault(package_version.package, {})
            versions[package_version.version] = package_version

    def add_package_version(self, name: str, version: Version) -> PackageVersion:
        """Register a bare, detect-only version unless it is already known.

        A missing package entry is created with the name as title.

        Returns:
            The known or newly created package version.
        """
        with self._lock:
            if name not in self._packages:
                self._packages[name] = Package(name=name)
            existing = self._versions.get(name, {}).get(version)
            if existing is not None:
                return existing
            pv = PackageVersion(package=name, version=version)
            self.save_package_version(pv)
            return pv

    def merge(self, other: MemoryCatalog) -> None:
        """Copy entries of another catalog that are not known yet."""
        for package in other.get_packages():
            if self.find_package(package.name) is None:
                self.save_package(package)
            for pv in other.get_package_versions(package.name):
                if self.find_package_version(pv.package, pv.version) is None:
                    self.save_package_version(pv)


# =============================================================================
# TOML catalog documents
# =============================================================================


class DependencyEntry(BaseModel):
    """Dependency of a catalog version."""

    model_config = ConfigDict(extra="forbid")

    package: Annotated[str, Field(description="Required package name")]
    versions: Annotated[str, Field(description="Version range")] = "*"


class PackageEntry(BaseModel):
    """[[package]] table of a catalog document."""

    model_config = ConfigDict(extra="forbid")

    name: Annotated[str, Field(description="Package name")]
    title: Annotated[str, Field(description="Short title")] = ""
    url: Annotated[str, Field(description="Home page")] = ""
    icon: Annotated[str, Field(description="Icon URL")] = ""
    description: Annotated[str, Field(description="Description")] = ""
    license: Annotated[str, Field(description="License package name")] = ""
    categories: Annotated[list[str], Field(default_factory=list)]


class VersionEntry(BaseModel):
    """[[version]] table of a catalog document."""

    model_config = ConfigDict(extra="forbid")

    package: Annotated[str, Field(description="Package name")]
    version: Annotated[str, Field(description="Dotted version")]
    download: Annotated[str | None, Field(description="Download URL")] = None
    hash: Annotated[str | None, Field(description="Hex digest of the download")] = None
    hash_algorithm: Annotated[str, Field(description="hashlib algorithm name")] = "sha1"
    dependencies: Annotated[list[DependencyEntry], Field(default_factory=list)]

    @field_validator("hash_algorithm")
    @classmethod
    def _check_hash_algorithm(cls, value: str) -> str:
        if value.lower() not in hashlib.algorithms_available:
            msg = f"Unsupported hash algorithm: {value!r}"
            raise ValueError(msg)
        return value.lower()


class CatalogDocument(BaseModel):
    """Complete catalog document."""

    model_config = ConfigDict(extra="forbid")

    package: Annotated[list[PackageEntry], Field(default_factory=list)]
    version: Annotated[list[VersionEntry], Field(default_factory=list)]

    def to_catalog(self) -> MemoryCatalog:
        """Convert the document into a catalog.

        Raises:
            ValueError: If a name, version or range is invalid.
        """
        catalog = MemoryCatalog()
        for entry in self.package:
            catalog.save_package(
                Package(
                    name=entry.name,
                    title=entry.title,
                    url=entry.url,
                    icon=entry.icon,
                    description=entry.description,
                    license=entry.license,
                    categories=tuple(entry.categories),
                )
            )
        for entry in self.version:
            if catalog.find_package(entry.package) is None:
                catalog.save_package(Package(name=entry.package))
            catalog.save_package_version(
                PackageVersion(
                    package=entry.package,
                    version=Version.parse(entry.version),
                    dependencies=tuple(
                        Dependency.parse(d.package, d.versions) for d in entry.dependencies
                    ),
                    download=entry.download,
                    content_hash=entry.hash.lower() if entry.hash else None,
                    hash_algorithm=entry.hash_algorithm,
                )
            )
        return catalog


def parse_catalog(data: bytes, source: str = "<memory>") -> MemoryCatalog:
    """Parse a TOML catalog document.

    Raises:
        CatalogError: If the document is not valid.
    """
    try:
        raw = tomllib.loads(data.decode("utf-8"))
    except (UnicodeDecodeError, tomllib.TOMLDecodeError) as e:
        raise CatalogError(f"Invalid catalog {source}: {e}") from e

    try:
        return CatalogDocument.model_validate(raw).to_catalog()
    except (ValidationError, ValueError) as e:
        raise CatalogError(f"Invalid catalog content in {source}: {e}") from e


def load_catalog_file(path: Path) -> MemoryCatalog:
    """Load a catalog document from a local file.

    Raises:
        CatalogError: If the file cannot be read or is invalid.
    """
    try:
        data = path.read_bytes()
    except OSError as e:
        raise CatalogError(f"Failed to read catalog {path}: {e}") from e
    return parse_catalog(data, str(path))


def load_catalog(
    sources: list[str],
    downloader: Downloader | None = None,
    job: Job | None = None,
) -> MemoryCatalog:
    """Load and merge catalogs from local paths, file: URLs and HTTP(S) URLs.

    Earlier sources take priority: entries already known are not replaced
    by later sources.

    Args:
        sources: Paths or URLs in priority order.
        downloader: Downloader used for HTTP(S) sources.
        job: Optional job for progress reporting; it is always completed.

    Returns:
        Merged catalog.

    Raises:
        CatalogError: If a source cannot be loaded.
    """
    catalog = MemoryCatalog()
    try:
        for i, source in enumerate(sources):
            if job is not None and not job.should_proceed(f"Loading {source}"):
                break
            parsed = urlparse(source)
            if parsed.scheme in ("http", "https"):
                if downloader is None:
                    raise CatalogError(f"No downloader available for {source}")
                sub = job.new_sub_job(1 / len(sources)) if job is not None else None
                try:
                    data = downloader.fetch_bytes(source, job=sub)
                except PkgctlError as e:
                    raise CatalogError(f"Failed to download catalog {source}: {e}") from e
                finally:
                    if sub is not None:
                        sub.dispose()
                loaded = parse_catalog(data, source)
            elif parsed.scheme == "file":
                loaded = load_catalog_file(Path(unquote(parsed.path)))
            else:
                loaded = load_catalog_file(Path(source))
            catalog.merge(loaded)
            logger.debug("Loaded %d package(s) from %s", len(loaded.get_packages()), source)
            if job is not None:
                job.set_progress((i + 1) / len(sources))
    except CatalogError as e:
        if job is not None:
            job.set_error_message(str(e))
        raise
    finally:
        if job is not None:
            job.complete()
    return catalog
