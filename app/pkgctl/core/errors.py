"""Exception hierarchy for pkgctl.

Planning errors are raised before anything is changed on disk. Execution
errors (locks, downloads) are reported on the owning job and abort only
the operations that have not run yet.
"""


class PkgctlError(Exception):
    """Base exception for all pkgctl errors."""


class PlanningError(PkgctlError):
    """Raised when an operation list cannot be planned."""


class DependencyError(PlanningError):
    """Raised when a dependency is missing or cannot be satisfied."""


class NoInstallableVersionError(PlanningError):
    """Raised when a package has no version with a valid download."""


class NoInstalledVersionError(PlanningError):
    """Raised when a package has no installed version."""


class AlreadyCurrentError(PlanningError):
    """Raised when the newest installable version is already installed."""


class PackageNotFoundError(PlanningError):
    """Raised when a package or package version is not in the catalog."""


class LockError(PkgctlError):
    """Raised when an installation directory is in use."""


class DownloadError(PkgctlError):
    """Base exception for download failures."""


class NetworkError(DownloadError):
    """Raised on connection failures and unexpected HTTP status codes."""


class IntegrityError(DownloadError):
    """Raised when downloaded content does not match the expected digest."""


class RegistryError(PkgctlError):
    """Raised when the persisted installation state cannot be read or written."""


class StoreError(RegistryError):
    """Raised by key-value stores on I/O or format errors."""


class CatalogError(PkgctlError):
    """Raised when a catalog document cannot be loaded."""


class SettingsError(PkgctlError):
    """Base exception for configuration errors."""


class SettingsParseError(SettingsError):
    """Raised when the configuration file cannot be parsed."""
