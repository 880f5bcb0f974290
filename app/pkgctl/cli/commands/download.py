"""Download command implementation.

Fetches a URL into a file and prints the digest of the decoded content.
"""

import logging
import threading
from enum import Enum
from pathlib import Path
from typing import Annotated

import typer

from pkgctl.cli.context import get_app_context
from pkgctl.cli.progress import watch_job
from pkgctl.core.downloader import DownloadResult
from pkgctl.core.errors import DownloadError
from pkgctl.utils.formatting import console, format_size, print_error, print_success

logger = logging.getLogger(__name__)


class HashChoice(str, Enum):
    """Digest algorithms offered by --hash."""

    SHA1 = "sha1"
    SHA256 = "sha256"


def download(
    ctx: typer.Context,
    url: Annotated[str, typer.Argument(help="http(s) or data: URL.")],
    destination: Annotated[Path, typer.Argument(help="Target file.")],
    hash_algorithm: Annotated[
        HashChoice | None,
        typer.Option(
            "--hash",
            help="Digest algorithm (default from settings).",
        ),
    ] = None,
    no_cache: Annotated[
        bool,
        typer.Option(
            "--no-cache",
            help="Ask HTTP caches to revalidate.",
        ),
    ] = False,
) -> None:
    """Download a file and print its digest.

    Examples:
        pkgctl download https://example.org/tool.tar.gz tool.tar.gz
        pkgctl download https://example.org/tool.zip tool.zip --hash sha256
    """
    app_ctx = get_app_context(ctx)
    algorithm = hash_algorithm.value if hash_algorithm else app_ctx.settings.hash_algorithm
    use_cache = app_ctx.settings.use_cache and not no_cache
    job = app_ctx.tree.create_job(f"Downloading {url}")
    outcome: list[DownloadResult] = []

    def fetch() -> None:
        try:
            outcome.append(app_ctx.downloader.fetch(url, destination, algorithm, use_cache, job))
        except DownloadError as e:
            logger.debug("Download of %s failed: %s", url, e)

    worker = threading.Thread(target=fetch, name="pkgctl-download", daemon=True)
    worker.start()
    watch_job(job, quiet=app_ctx.quiet)
    worker.join()

    if job.error_message:
        print_error(job.error_message)
        raise typer.Exit(code=1)
    if job.is_cancelled() or not outcome:
        print_error("Download cancelled.")
        raise typer.Exit(code=1)

    result = outcome[0]
    print_success(f"Saved {destination} ({format_size(result.bytes_written)})")
    console.print(f"{algorithm}: {result.digest}")
