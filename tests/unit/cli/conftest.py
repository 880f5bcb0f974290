"""Fixtures for CLI tests.

Commands run against an application context whose repository is a local
catalog file and whose downloader is mocked, so nothing touches the
network or the user's directories.
"""

from pathlib import Path
from unittest.mock import MagicMock

import pytest

from pkgctl.cli.context import AppContext, build_context
from pkgctl.core.config import Settings
from pkgctl.core.downloader import DownloadResult
from pkgctl.core.job import Job
from pkgctl.core.repositories import add_repository_url
from pkgctl.core.state import StateManager
from pkgctl.core.store import MemoryStore


def _fake_fetch(
    url: str,
    destination: Path,
    hash_algorithm: str = "sha1",
    use_cache: bool = True,
    job: Job | None = None,
) -> DownloadResult:
    destination.write_bytes(b"archive")
    if job is not None:
        job.complete()
    return DownloadResult(bytes_written=7, digest="d0c5")


@pytest.fixture
def downloader() -> MagicMock:
    """Downloader writing a small file instead of fetching it."""
    mock = MagicMock()
    mock.fetch.side_effect = _fake_fetch
    return mock


@pytest.fixture
def app_ctx(
    tmp_path: Path, install_root: Path, sample_catalog_text: str, downloader: MagicMock
) -> AppContext:
    """Quiet application context with the sample catalog configured."""
    catalog_file = tmp_path / "catalog.toml"
    catalog_file.write_text(sample_catalog_text)
    store = MemoryStore()
    add_repository_url(store, catalog_file.as_uri())
    return build_context(
        settings=Settings(install_dir=str(install_root), close_processes=False),
        store=store,
        state=StateManager(tmp_path / "state"),
        downloader=downloader,
        lock_dir=tmp_path / "locks",
        quiet=True,
    )
