"""Main CLI application entry point.

Defines the Typer application, global options and logging setup.
"""

import logging
from typing import Annotated

import typer
from rich.logging import RichHandler

from pkgctl import __version__
from pkgctl.cli.commands import download, history, install, listing, refresh, repos, uninstall, update
from pkgctl.cli.context import build_context
from pkgctl.core.errors import SettingsError
from pkgctl.utils.formatting import err_console, print_error

# Create main Typer app
app = typer.Typer(
    name="pkgctl",
    help="Install, update and remove software packages from catalogs.",
    no_args_is_help=True,
    rich_markup_mode="rich",
    context_settings={"help_option_names": ["-h", "--help"]},
)


def version_callback(value: bool) -> None:
    """Print version and exit."""
    if value:
        typer.echo(f"pkgctl version {__version__}")
        raise typer.Exit()


def configure_logging(verbose: bool, quiet: bool) -> None:
    """Route log records through Rich on stderr.

    WARNING by default, INFO with --verbose, ERROR with --quiet.
    """
    if verbose:
        level = logging.INFO
    elif quiet:
        level = logging.ERROR
    else:
        level = logging.WARNING
    logging.basicConfig(
        level=level,
        format="%(message)s",
        datefmt="[%X]",
        handlers=[RichHandler(console=err_console, show_path=False)],
        force=True,
    )


@app.callback()
def main(
    ctx: typer.Context,
    version: Annotated[
        bool | None,
        typer.Option(
            "--version",
            "-V",
            callback=version_callback,
            is_eager=True,
            help="Show version and exit.",
        ),
    ] = None,
    verbose: Annotated[
        bool,
        typer.Option(
            "--verbose",
            "-v",
            help="Enable verbose output.",
        ),
    ] = False,
    quiet: Annotated[
        bool,
        typer.Option(
            "--quiet",
            "-q",
            help="Suppress non-essential output.",
        ),
    ] = False,
) -> None:
    """pkgctl - package lifecycle manager.

    Plans install, update and uninstall operations from package catalogs
    and executes them with progress reporting and cancellation.
    """
    configure_logging(verbose, quiet)
    if ctx.obj is not None:
        # Provided by the caller (tests)
        return
    try:
        ctx.obj = build_context(verbose=verbose, quiet=quiet)
    except SettingsError as e:
        print_error(str(e))
        raise typer.Exit(code=1) from e


# Register commands
app.command(name="list")(listing.list_packages)
app.command(name="install")(install.install)
app.command(name="uninstall")(uninstall.uninstall)
app.command(name="update")(update.update)
app.command(name="refresh")(refresh.refresh)
app.command(name="download")(download.download)
app.command(name="history")(history.history)
app.add_typer(repos.app, name="repos")


if __name__ == "__main__":
    app()
