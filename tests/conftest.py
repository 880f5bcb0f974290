"""Pytest configuration and shared fixtures.

This module contains fixtures used across all test modules.
"""

from collections.abc import Callable
from pathlib import Path

import pytest

from pkgctl.core.catalog import MemoryCatalog
from pkgctl.core.registry import InstalledRegistry
from pkgctl.core.store import MemoryStore
from pkgctl.models.package import Package, PackageVersion
from pkgctl.models.version import Dependency, Version

SAMPLE_CATALOG = """\
[[package]]
name = "org.example.Editor"
title = "Editor"

[[package]]
name = "org.example.Runtime"
title = "Runtime"

[[version]]
package = "org.example.Runtime"
version = "0.9"
download = "https://example.org/runtime-0.9.zip"

[[version]]
package = "org.example.Runtime"
version = "1.0"
download = "https://example.org/runtime-1.0.zip"

[[version]]
package = "org.example.Editor"
version = "2.0"
download = "https://example.org/editor-2.0.zip"
dependencies = [{ package = "org.example.Runtime", versions = ">=1.0" }]
"""


def make_version(
    package: str,
    version: str,
    download: bool = True,
    deps: dict[str, str] | None = None,
) -> PackageVersion:
    """Build a catalog version with an https download and parsed dependencies."""
    return PackageVersion(
        package=package,
        version=Version.parse(version),
        dependencies=tuple(Dependency.parse(name, text) for name, text in (deps or {}).items()),
        download=f"https://example.org/{package}-{version}.zip" if download else None,
    )


@pytest.fixture
def make_pv() -> Callable[..., PackageVersion]:
    """Factory for catalog versions, see make_version()."""
    return make_version


@pytest.fixture
def sample_catalog_text() -> str:
    """TOML catalog with an editor depending on a runtime."""
    return SAMPLE_CATALOG


@pytest.fixture
def catalog() -> MemoryCatalog:
    """Catalog matching SAMPLE_CATALOG."""
    return MemoryCatalog(
        packages=[
            Package(name="org.example.Editor", title="Editor"),
            Package(name="org.example.Runtime", title="Runtime"),
        ],
        versions=[
            make_version("org.example.Runtime", "0.9"),
            make_version("org.example.Runtime", "1.0"),
            make_version("org.example.Editor", "2.0", deps={"org.example.Runtime": ">=1.0"}),
        ],
    )


@pytest.fixture
def store() -> MemoryStore:
    """Empty in-memory store."""
    return MemoryStore()


@pytest.fixture
def registry(store: MemoryStore, catalog: MemoryCatalog) -> InstalledRegistry:
    """Registry without detectors backed by the in-memory store."""
    return InstalledRegistry(store, catalog)


@pytest.fixture
def install_root(tmp_path: Path) -> Path:
    """Existing installation root directory."""
    root = tmp_path / "apps"
    root.mkdir()
    return root
