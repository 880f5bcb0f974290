"""Unit tests for package models.

Tests for Package, PackageVersion and InstalledPackageVersion.
"""

from unittest.mock import MagicMock

import pytest

from pkgctl.models.package import InstalledPackageVersion, Package, PackageVersion
from pkgctl.models.version import Version


class TestPackage:
    """Tests for Package."""

    def test_title_defaults_to_name(self) -> None:
        """A package without title uses its name."""
        assert Package(name="org.gnu.Emacs").title == "org.gnu.Emacs"

    def test_short_name(self) -> None:
        """short_name is the part after the last dot."""
        assert Package(name="org.gnu.Emacs").short_name == "Emacs"

    @pytest.mark.parametrize("name", ["", "a b", "org..x", ".org", "org/x"])
    def test_invalid_name(self, name: str) -> None:
        """Invalid names are rejected."""
        assert not Package.is_valid_name(name)
        with pytest.raises(ValueError, match="Invalid package name"):
            Package(name=name)


class TestPackageVersion:
    """Tests for PackageVersion."""

    def test_equality_ignores_details(self) -> None:
        """Only package and version take part in equality."""
        a = PackageVersion("org.x", Version.parse("1.0"), download="https://a")
        b = PackageVersion("org.x", Version.parse("1"), download=None)

        assert a == b
        assert len({a, b}) == 1

    @pytest.mark.parametrize(
        ("download", "expected"),
        [
            ("https://example.org/x.zip", True),
            ("http://example.org/x.zip", True),
            ("data:,hello", True),
            ("ftp://example.org/x.zip", False),
            ("", False),
            (None, False),
        ],
    )
    def test_can_be_installed(self, download: str | None, expected: bool) -> None:
        """Only http(s) and data: downloads are installable."""
        pv = PackageVersion("org.x", Version.parse("1"), download=download)
        assert pv.can_be_installed is expected

    def test_is_installed_asks_registry(self) -> None:
        """is_installed delegates to the lookup."""
        lookup = MagicMock()
        lookup.is_installed.return_value = True
        pv = PackageVersion("org.x", Version.parse("1"))

        assert pv.is_installed(lookup)
        lookup.is_installed.assert_called_once_with("org.x", Version.parse("1"))

    def test_string_forms(self) -> None:
        """String id and display text."""
        pv = PackageVersion("org.x", Version.parse("1.2.0"))
        assert pv.string_id == "org.x/1.2"
        assert str(pv) == "org.x 1.2"


class TestInstalledPackageVersion:
    """Tests for InstalledPackageVersion."""

    def test_installed_when_directory_set(self) -> None:
        """An empty directory means not installed."""
        ipv = InstalledPackageVersion("org.x", Version.parse("1"))
        assert not ipv.installed
        ipv.directory = "/opt/x"
        assert ipv.installed

    def test_clone_is_independent(self) -> None:
        """Changing a clone leaves the original alone."""
        ipv = InstalledPackageVersion("org.x", Version.parse("1"), directory="/opt/x")
        copy = ipv.clone()
        copy.directory = ""

        assert ipv.directory == "/opt/x"
