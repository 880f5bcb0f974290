"""Unit tests for settings.

Tests for loading, validating and saving config.toml.
"""

import tomllib
from pathlib import Path

import pytest

from pkgctl.core.config import Settings, WellKnownEntry, load_settings, save_settings
from pkgctl.core.errors import SettingsError, SettingsParseError
from pkgctl.models.version import Version


class TestLoadSettings:
    """Tests for load_settings."""

    def test_missing_file_gives_defaults(self, tmp_path: Path) -> None:
        """Without a file every default applies."""
        settings = load_settings(tmp_path / "config.toml")

        assert settings == Settings()
        assert settings.hash_algorithm == "sha1"
        assert settings.timeout_seconds == 60

    def test_load_values(self, tmp_path: Path) -> None:
        """Values from the file override the defaults."""
        path = tmp_path / "config.toml"
        path.write_text(
            'install_dir = "/opt/apps"\n'
            'hash_algorithm = "sha256"\n'
            "[[well_known]]\n"
            'package = "org.mozilla.Firefox"\n'
            'version = "128.0"\n'
            'directory = "/usr/lib/firefox"\n'
        )

        settings = load_settings(path)

        assert settings.effective_install_dir == Path("/opt/apps")
        assert settings.hash_algorithm == "sha256"
        assert settings.well_known[0].package == "org.mozilla.Firefox"

    def test_invalid_toml(self, tmp_path: Path) -> None:
        """TOML syntax errors raise SettingsParseError."""
        path = tmp_path / "config.toml"
        path.write_text("install_dir = ")

        with pytest.raises(SettingsParseError):
            load_settings(path)

    @pytest.mark.parametrize(
        "content",
        [
            "timeout_seconds = 1\n",
            'hash_algorithm = "md5"\n',
            "unknown = true\n",
            '[[well_known]]\npackage = "bad name"\nversion = "1"\ndirectory = "/x"\n',
        ],
    )
    def test_invalid_values(self, tmp_path: Path, content: str) -> None:
        """Out-of-range, unknown and malformed values raise SettingsError."""
        path = tmp_path / "config.toml"
        path.write_text(content)

        with pytest.raises(SettingsError):
            load_settings(path)


class TestSaveSettings:
    """Tests for save_settings."""

    def test_only_non_defaults_written(self, tmp_path: Path) -> None:
        """Defaults are left out of the file."""
        path = tmp_path / "sub" / "config.toml"
        save_settings(Settings(timeout_seconds=120), path)

        with open(path, "rb") as f:
            assert tomllib.load(f) == {"timeout_seconds": 120}

    def test_round_trip(self, tmp_path: Path) -> None:
        """Saved settings load back equal."""
        path = tmp_path / "config.toml"
        settings = Settings(
            install_dir="/opt/apps",
            use_cache=False,
            well_known=[WellKnownEntry(package="org.x", version="1.0", directory="/opt/x")],
        )
        save_settings(settings, path)

        assert load_settings(path) == settings


class TestWellKnownEntry:
    """Tests for WellKnownEntry."""

    def test_to_program(self) -> None:
        """Entries convert into detector programs."""
        program = WellKnownEntry(package="org.x", version="1.0", directory="/opt/x", title="X").to_program()

        assert program.version == Version.parse("1")
        assert program.directory == Path("/opt/x")
        assert program.title == "X"

    def test_invalid_version(self) -> None:
        """Versions are validated."""
        with pytest.raises(ValueError):
            WellKnownEntry(package="org.x", version="one", directory="/opt/x")
