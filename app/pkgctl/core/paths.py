"""XDG-compliant path management for pkgctl.

This module provides standardized paths following the XDG Base Directory
Specification for configuration, state, data, and cache storage.

XDG defaults:
- Config: ~/.config/pkgctl/
- State: ~/.local/state/pkgctl/
- Data: ~/.local/share/pkgctl/
- Cache: ~/.cache/pkgctl/
"""

import os
from pathlib import Path

# Application identifier for directory naming
APP_NAME = "pkgctl"


def _get_xdg_dir(env_var: str, default_subdir: str) -> Path:
    """Get XDG directory respecting environment variable override.

    Args:
        env_var: XDG environment variable name (e.g., "XDG_CONFIG_HOME").
        default_subdir: Default subdirectory under home (e.g., ".config").

    Returns:
        Path to the application-specific directory.
    """
    base = os.environ.get(env_var)
    if base:
        return Path(base) / APP_NAME
    return Path.home() / default_subdir / APP_NAME


def get_config_dir() -> Path:
    """Get the configuration directory path.

    Returns:
        Path to ~/.config/pkgctl/ (or XDG_CONFIG_HOME/pkgctl/).
    """
    return _get_xdg_dir("XDG_CONFIG_HOME", ".config")


def get_state_dir() -> Path:
    """Get the state directory path.

    State data includes the installed-package registry and the history
    file.

    Returns:
        Path to ~/.local/state/pkgctl/ (or XDG_STATE_HOME/pkgctl/).
    """
    return _get_xdg_dir("XDG_STATE_HOME", ".local/state")


def get_data_dir() -> Path:
    """Get the data directory path.

    Returns:
        Path to ~/.local/share/pkgctl/ (or XDG_DATA_HOME/pkgctl/).
    """
    return _get_xdg_dir("XDG_DATA_HOME", ".local/share")


def get_cache_dir() -> Path:
    """Get the cache directory path.

    Returns:
        Path to ~/.cache/pkgctl/ (or XDG_CACHE_HOME/pkgctl/).
    """
    return _get_xdg_dir("XDG_CACHE_HOME", ".cache")


def get_config_path() -> Path:
    """Get the settings file path.

    Returns:
        Path to ~/.config/pkgctl/config.toml.
    """
    return get_config_dir() / "config.toml"


def get_registry_path() -> Path:
    """Get the persisted registry file path.

    Returns:
        Path to ~/.local/state/pkgctl/registry.toml.
    """
    return get_state_dir() / "registry.toml"


def get_default_install_dir() -> Path:
    """Get the default root directory for package installations.

    Returns:
        Path to ~/.local/share/pkgctl/packages/.
    """
    return get_data_dir() / "packages"


def get_lock_dir() -> Path:
    """Get the directory holding advisory lock files.

    Returns:
        Path to ~/.cache/pkgctl/locks/.
    """
    return get_cache_dir() / "locks"


def _ensure_dir(path: Path, name: str) -> Path:
    """Create directory if it doesn't exist.

    Args:
        path: Directory path to create.
        name: Human-readable name for error messages.

    Returns:
        The created/existing directory path.

    Raises:
        RuntimeError: If directory cannot be created.
    """
    try:
        path.mkdir(parents=True, exist_ok=True)
    except PermissionError as e:
        msg = f"Cannot create {name} directory {path}: Permission denied"
        raise RuntimeError(msg) from e
    except OSError as e:
        msg = f"Cannot create {name} directory {path}: {e}"
        raise RuntimeError(msg) from e
    return path


def ensure_state_dir() -> Path:
    """Create the state directory if it doesn't exist.

    Raises:
        RuntimeError: If the directory cannot be created.
    """
    return _ensure_dir(get_state_dir(), "state")
