"""Application context shared by all commands.

The context is built once by the CLI callback and handed to commands
through ``typer.Context.obj``. It owns the catalog, the registry and
everything wired to them; nothing is kept in module globals.
"""

import logging
from dataclasses import dataclass, field
from pathlib import Path

import typer

from pkgctl import __version__
from pkgctl.actions.base import PackageAction
from pkgctl.actions.download import DownloadAction
from pkgctl.core.catalog import MemoryCatalog, load_catalog
from pkgctl.core.config import Settings, load_settings
from pkgctl.core.downloader import Downloader
from pkgctl.core.executor import OperationExecutor
from pkgctl.core.job import JobTree
from pkgctl.core.paths import get_lock_dir, get_registry_path
from pkgctl.core.planner import Planner
from pkgctl.core.registry import InstalledRegistry
from pkgctl.core.repositories import get_repository_urls
from pkgctl.core.state import StateManager
from pkgctl.core.store import KeyValueStore, TomlStore
from pkgctl.detectors.base import Detector
from pkgctl.detectors.marker import MarkerDetector
from pkgctl.detectors.well_known import WellKnownDetector
from pkgctl.models.package import PackageVersion
from pkgctl.models.version import Version

logger = logging.getLogger(__name__)


class TerminalCredentialPrompt:
    """Asks for HTTP credentials on the terminal."""

    def prompt_credentials(self, realm: str, proxy: bool) -> tuple[str, str] | None:
        kind = "Proxy" if proxy else "Server"
        try:
            username = typer.prompt(f"{kind} user name for {realm}")
            password = typer.prompt("Password", hide_input=True)
        except typer.Abort:
            return None
        return username, password


@dataclass
class AppContext:
    """Everything a command needs, wired together.

    Attributes:
        settings: Loaded settings.
        store: Persisted key-value store (registry records, repositories).
        catalog: Catalog filled by :meth:`load_catalog`.
        registry: Installed registry.
        downloader: Downloader for catalogs and packages.
        planner: Operation planner.
        executor: Operation executor.
        state: History store.
        tree: Job tree for all jobs of this process.
    """

    settings: Settings
    store: KeyValueStore
    catalog: MemoryCatalog
    registry: InstalledRegistry
    downloader: Downloader
    planner: Planner
    executor: OperationExecutor
    state: StateManager
    tree: JobTree = field(default_factory=JobTree)
    verbose: bool = False
    quiet: bool = False

    def load_catalog(self) -> None:
        """Load the configured repositories into the catalog.

        Raises:
            CatalogError: If a repository cannot be loaded.
        """
        urls = get_repository_urls(self.store)
        job = self.tree.create_job("Loading repositories")
        try:
            self.catalog.merge(load_catalog(urls, self.downloader, job))
        finally:
            job.dispose()

    def refresh(self) -> str:
        """Reload the registry and run the detectors.

        Returns:
            The refresh job's error message ("" on success).
        """
        job = self.tree.create_job("Refreshing installed packages")
        try:
            self.registry.refresh(job)
            return job.error_message
        finally:
            job.dispose()

    def prepare(self) -> None:
        """Load the catalog and refresh the registry.

        Raises:
            CatalogError: If a repository cannot be loaded.
        """
        self.load_catalog()
        error = self.refresh()
        if error:
            logger.warning("Refreshing the registry failed: %s", error)


def build_detectors(settings: Settings) -> list[Detector]:
    """Detectors in priority order."""
    return [
        MarkerDetector(settings.effective_install_dir),
        WellKnownDetector([entry.to_program() for entry in settings.well_known]),
    ]


def build_context(
    settings: Settings | None = None,
    store: KeyValueStore | None = None,
    state: StateManager | None = None,
    downloader: Downloader | None = None,
    lock_dir: Path | None = None,
    verbose: bool = False,
    quiet: bool = False,
) -> AppContext:
    """Wire up the application.

    Args:
        settings: Settings or None to load them from the config file.
        store: Store or None for the registry file in the state dir.
        state: History store or None for the default location.
        downloader: Downloader or None for one built from the settings.
        lock_dir: Directory for lock files or None for the cache dir.

    Raises:
        SettingsError: If the settings cannot be loaded.
    """
    settings = settings or load_settings()
    store = store or TomlStore(get_registry_path())
    state = state or StateManager()
    downloader = downloader or Downloader(
        credentials=TerminalCredentialPrompt(),
        timeout=settings.timeout_seconds,
        user_agent=settings.user_agent,
    )
    tree = JobTree()
    catalog = MemoryCatalog()
    registry = InstalledRegistry(store, catalog, build_detectors(settings))
    planner = Planner(
        catalog,
        registry,
        self_package=settings.self_package,
        self_version=Version.parse(__version__),
    )

    def make_action(pv: PackageVersion) -> PackageAction:
        return DownloadAction(pv, registry, downloader, use_cache=settings.use_cache)

    executor = OperationExecutor(
        catalog,
        registry,
        planner,
        make_action,
        install_dir=settings.effective_install_dir,
        lock_dir=lock_dir or get_lock_dir(),
        state=state,
        close_processes=settings.close_processes,
        tree=tree,
    )
    return AppContext(
        settings=settings,
        store=store,
        catalog=catalog,
        registry=registry,
        downloader=downloader,
        planner=planner,
        executor=executor,
        state=state,
        tree=tree,
        verbose=verbose,
        quiet=quiet,
    )


def get_app_context(ctx: typer.Context) -> AppContext:
    """Return the AppContext stored by the CLI callback."""
    app_ctx = ctx.find_root().obj
    if not isinstance(app_ctx, AppContext):
        msg = "Application context is not initialized"
        raise RuntimeError(msg)
    return app_ctx
