"""Uninstall command implementation."""

from typing import Annotated

import typer

from pkgctl.cli.commands.install import parse_version_option
from pkgctl.cli.context import get_app_context
from pkgctl.cli.operations import run_operations
from pkgctl.core.errors import NoInstalledVersionError, PkgctlError
from pkgctl.utils.formatting import print_error


def uninstall(
    ctx: typer.Context,
    name: Annotated[str, typer.Argument(help="Package name.")],
    version: Annotated[
        str | None,
        typer.Option(
            "--version",
            "-V",
            help="Version to remove (default: newest installed).",
        ),
    ] = None,
    yes: Annotated[
        bool,
        typer.Option(
            "--yes",
            "-y",
            help="Skip confirmation prompt and proceed.",
        ),
    ] = False,
) -> None:
    """Uninstall an installed package version.

    The installation directory is deleted. Uninstalling fails when another
    installed package depends on the version.

    Examples:
        pkgctl uninstall org.gnu.Emacs
        pkgctl uninstall org.gnu.Emacs --version 28.2 --yes
    """
    app_ctx = get_app_context(ctx)
    wanted = parse_version_option(version)
    try:
        app_ctx.prepare()
        if wanted is None:
            target = app_ctx.catalog.find_newest_installed(name, app_ctx.registry)
        else:
            target = app_ctx.catalog.find_package_version(name, wanted)
            if target is not None and not target.is_installed(app_ctx.registry):
                target = None
        if target is None:
            label = f"{name} {wanted}" if wanted is not None else name
            msg = f"No installed version found for the package {label}"
            raise NoInstalledVersionError(msg)
        ops = app_ctx.planner.plan_uninstallation(target)
    except PkgctlError as e:
        print_error(str(e))
        raise typer.Exit(code=1) from e

    run_operations(app_ctx, ops, yes, f"Uninstalling {target}")
