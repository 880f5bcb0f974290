"""Unit tests for XDG path management.

Tests for the paths module that provides XDG-compliant directory paths.
"""

import os
from pathlib import Path
from unittest.mock import patch

import pytest

from pkgctl.core.paths import (
    APP_NAME,
    ensure_state_dir,
    get_cache_dir,
    get_config_dir,
    get_config_path,
    get_default_install_dir,
    get_lock_dir,
    get_registry_path,
    get_state_dir,
)


class TestXdgDirs:
    """Tests for the XDG base directories."""

    def test_default_config_dir(self, monkeypatch: pytest.MonkeyPatch) -> None:
        """get_config_dir falls back to ~/.config when XDG_CONFIG_HOME is unset."""
        monkeypatch.delenv("XDG_CONFIG_HOME", raising=False)

        assert get_config_dir() == Path.home() / ".config" / APP_NAME

    def test_respects_xdg_config_home(self, tmp_path: Path) -> None:
        """get_config_dir respects XDG_CONFIG_HOME."""
        with patch.dict(os.environ, {"XDG_CONFIG_HOME": str(tmp_path)}):
            assert get_config_dir() == tmp_path / APP_NAME
            assert get_config_path() == tmp_path / APP_NAME / "config.toml"

    def test_default_state_dir(self, monkeypatch: pytest.MonkeyPatch) -> None:
        """get_state_dir falls back to ~/.local/state."""
        monkeypatch.delenv("XDG_STATE_HOME", raising=False)

        assert get_state_dir() == Path.home() / ".local" / "state" / APP_NAME

    def test_state_files(self, tmp_path: Path) -> None:
        """The registry lives in the state directory."""
        with patch.dict(os.environ, {"XDG_STATE_HOME": str(tmp_path)}):
            assert get_registry_path() == tmp_path / APP_NAME / "registry.toml"

    def test_install_and_lock_dirs(self, tmp_path: Path) -> None:
        """Installations go to the data dir, locks to the cache dir."""
        env = {"XDG_DATA_HOME": str(tmp_path / "data"), "XDG_CACHE_HOME": str(tmp_path / "cache")}
        with patch.dict(os.environ, env):
            assert get_default_install_dir() == tmp_path / "data" / APP_NAME / "packages"
            assert get_lock_dir() == get_cache_dir() / "locks"


class TestEnsureDirs:
    """Tests for the ensure_* helpers."""

    def test_creates_directories(self, tmp_path: Path) -> None:
        """ensure_state_dir creates missing directories."""
        with patch.dict(os.environ, {"XDG_STATE_HOME": str(tmp_path / "s")}):
            assert ensure_state_dir().is_dir()
            assert ensure_state_dir() == tmp_path / "s" / APP_NAME

    def test_permission_error(self, tmp_path: Path) -> None:
        """A failing mkdir raises RuntimeError."""
        with (
            patch.dict(os.environ, {"XDG_STATE_HOME": str(tmp_path)}),
            patch.object(Path, "mkdir", side_effect=PermissionError("denied")),
            pytest.raises(RuntimeError, match="Permission denied"),
        ):
            ensure_state_dir()
