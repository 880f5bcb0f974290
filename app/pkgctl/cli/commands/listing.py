"""List command implementation.

Shows installed package versions, or every known version with --all.
"""

from typing import Annotated

import typer

from pkgctl.cli.context import get_app_context
from pkgctl.cli.display import create_packages_table
from pkgctl.core.errors import PkgctlError
from pkgctl.utils.formatting import console, print_error, print_info


def list_packages(
    ctx: typer.Context,
    show_all: Annotated[
        bool,
        typer.Option(
            "--all",
            "-a",
            help="Also show versions that are not installed.",
        ),
    ] = False,
) -> None:
    """List installed packages.

    Examples:
        pkgctl list           # Installed versions
        pkgctl list --all     # Every version in the repositories
    """
    app_ctx = get_app_context(ctx)
    try:
        app_ctx.prepare()
    except PkgctlError as e:
        print_error(str(e))
        raise typer.Exit(code=1) from e

    table = create_packages_table(app_ctx.catalog, app_ctx.registry, show_all)
    if table.row_count == 0:
        print_info("No packages found.")
        return
    console.print(table)
