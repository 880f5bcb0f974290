"""Settings and their TOML persistence.

Configuration is stored in ~/.config/pkgctl/config.toml. Every field has
a default, so a missing file yields a usable configuration.

Example config.toml::

    install_dir = "/opt/pkgctl"
    hash_algorithm = "sha256"
    timeout_seconds = 120

    [[well_known]]
    package = "org.mozilla.Firefox"
    version = "128.0"
    directory = "/usr/lib/firefox"
"""

import os
import tomllib
from pathlib import Path
from tempfile import NamedTemporaryFile
from typing import Annotated, Literal

import tomli_w
from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator

from pkgctl.core.errors import SettingsError, SettingsParseError
from pkgctl.core.paths import get_config_path, get_default_install_dir
from pkgctl.detectors.well_known import WellKnownProgram
from pkgctl.models.package import Package
from pkgctl.models.version import Version

HashAlgorithm = Literal["sha1", "sha256"]

DEFAULT_SELF_PACKAGE = "io.github.pkgctl.pkgctl"


class WellKnownEntry(BaseModel):
    """A program recognized by its installation directory."""

    model_config = ConfigDict(extra="forbid")

    package: Annotated[str, Field(description="Package name to record")]
    version: Annotated[str, Field(description="Version to record")]
    directory: Annotated[str, Field(description="Directory that exists when installed")]
    title: Annotated[str, Field(description="Package title")] = ""

    @field_validator("package")
    @classmethod
    def _check_package(cls, value: str) -> str:
        if not Package.is_valid_name(value):
            msg = f"Invalid package name: {value!r}"
            raise ValueError(msg)
        return value

    @field_validator("version")
    @classmethod
    def _check_version(cls, value: str) -> str:
        Version.parse(value)
        return value

    def to_program(self) -> WellKnownProgram:
        """Convert into the detector's program description."""
        return WellKnownProgram(
            package=self.package,
            version=Version.parse(self.version),
            directory=Path(self.directory).expanduser(),
            title=self.title,
        )


class Settings(BaseModel):
    """pkgctl settings.

    Attributes:
        install_dir: Root directory for new installations (None = default).
        hash_algorithm: Default digest algorithm for ``pkgctl download``.
        use_cache: Whether HTTP caches may answer requests.
        timeout_seconds: Network timeout per request.
        close_processes: Terminate processes using a directory before
            it is uninstalled.
        user_agent: User-Agent header (None = "pkgctl/<version>").
        self_package: Package name of pkgctl itself, uninstalled last.
        well_known: Programs reported by the well-known detector.
    """

    model_config = ConfigDict(extra="forbid")

    install_dir: Annotated[
        str | None,
        Field(description="Root directory for installations (None = default)"),
    ] = None
    hash_algorithm: Annotated[
        HashAlgorithm,
        Field(description="Digest algorithm for downloads"),
    ] = "sha1"
    use_cache: Annotated[
        bool,
        Field(description="Allow cached HTTP responses"),
    ] = True
    timeout_seconds: Annotated[
        int,
        Field(ge=5, le=3600, description="Network timeout in seconds (5-3600)"),
    ] = 60
    close_processes: Annotated[
        bool,
        Field(description="Terminate processes before uninstalling"),
    ] = True
    user_agent: Annotated[
        str | None,
        Field(description="User-Agent header (None = default)"),
    ] = None
    self_package: Annotated[
        str,
        Field(description="Package name of the running application"),
    ] = DEFAULT_SELF_PACKAGE
    well_known: Annotated[
        list[WellKnownEntry],
        Field(default_factory=list, description="Programs detected by directory"),
    ]

    @property
    def effective_install_dir(self) -> Path:
        """Installation root with the default applied."""
        if self.install_dir:
            return Path(self.install_dir).expanduser()
        return get_default_install_dir()


def load_settings(path: Path | None = None) -> Settings:
    """Load settings from a TOML file.

    Args:
        path: Path to the config file. If None, uses the default path.

    Returns:
        Validated Settings; defaults if the file does not exist.

    Raises:
        SettingsParseError: If the TOML syntax is invalid.
        SettingsError: If the file cannot be read or has invalid content.
    """
    config_path = path or get_config_path()

    if not config_path.exists():
        return Settings()

    try:
        with open(config_path, "rb") as f:
            data = tomllib.load(f)
    except tomllib.TOMLDecodeError as e:
        raise SettingsParseError(f"Invalid TOML syntax in {config_path}: {e}") from e
    except OSError as e:
        raise SettingsError(f"Failed to read settings: {e}") from e

    try:
        return Settings.model_validate(data)
    except (ValueError, ValidationError) as e:
        raise SettingsError(f"Invalid settings in {config_path}: {e}") from e


def save_settings(settings: Settings, path: Path | None = None) -> Path:
    """Save settings to a TOML file atomically.

    Only values differing from the defaults are written.

    Returns:
        Path where the settings were saved.

    Raises:
        SettingsError: If the file cannot be written.
    """
    config_path = path or get_config_path()
    data = settings.model_dump(exclude_defaults=True, exclude_none=True)

    tmp_path: Path | None = None
    try:
        config_path.parent.mkdir(parents=True, exist_ok=True)
        with NamedTemporaryFile(
            mode="wb",
            dir=config_path.parent,
            delete=False,
            suffix=".tmp",
        ) as f:
            tmp_path = Path(f.name)
            tomli_w.dump(data, f)
        os.replace(str(tmp_path), str(config_path))
    except OSError as e:
        if tmp_path is not None and tmp_path.exists():
            tmp_path.unlink()
        raise SettingsError(f"Failed to write settings: {e}") from e

    return config_path
