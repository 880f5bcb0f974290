"""Refresh command implementation."""

import typer

from pkgctl.cli.context import get_app_context
from pkgctl.core.errors import PkgctlError
from pkgctl.utils.formatting import print_error, print_success


def refresh(ctx: typer.Context) -> None:
    """Re-detect installed packages.

    Forgets installations whose directory was deleted, adopts software
    found by the detectors and stops tracking installations nested inside
    other installations.
    """
    app_ctx = get_app_context(ctx)
    try:
        app_ctx.load_catalog()
    except PkgctlError as e:
        print_error(str(e))
        raise typer.Exit(code=1) from e

    error = app_ctx.refresh()
    if error:
        print_error(error)
        raise typer.Exit(code=1)

    count = len(app_ctx.registry.get_all_installed())
    print_success(f"{count} installed package version(s) found.")
