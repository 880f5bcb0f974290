"""Update command implementation.

Replaces installed packages with their newest installable versions.
"""

from typing import Annotated

import typer

from pkgctl.cli.context import get_app_context
from pkgctl.cli.operations import run_operations
from pkgctl.core.errors import AlreadyCurrentError, PkgctlError
from pkgctl.utils.formatting import print_error, print_info


def update(
    ctx: typer.Context,
    names: Annotated[
        list[str] | None,
        typer.Argument(help="Packages to update."),
    ] = None,
    update_all: Annotated[
        bool,
        typer.Option(
            "--all",
            "-a",
            help="Update every installed package.",
        ),
    ] = False,
    yes: Annotated[
        bool,
        typer.Option(
            "--yes",
            "-y",
            help="Skip confirmation prompt and proceed.",
        ),
    ] = False,
) -> None:
    """Update packages to their newest versions.

    Examples:
        pkgctl update org.gnu.Emacs
        pkgctl update --all --yes
    """
    if not names and not update_all:
        print_error("Name at least one package or use --all.")
        raise typer.Exit(code=1)

    app_ctx = get_app_context(ctx)
    try:
        app_ctx.prepare()
        if update_all:
            installed = {ipv.package for ipv in app_ctx.registry.get_all_installed()}
            # Detected software without a download cannot be updated
            targets = sorted(p for p in installed if app_ctx.catalog.find_newest_installable(p) is not None)
            ops = app_ctx.planner.plan_updates(targets)
        elif len(names) == 1:
            ops = app_ctx.planner.plan_update(names[0])
        else:
            ops = app_ctx.planner.plan_updates(names)
    except AlreadyCurrentError as e:
        print_info(str(e))
        return
    except PkgctlError as e:
        print_error(str(e))
        raise typer.Exit(code=1) from e

    if not ops:
        print_info("All packages are up to date.")
        return

    run_operations(app_ctx, ops, yes, "Updating packages")
