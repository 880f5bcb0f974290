"""Install command implementation.

Plans the installation of a package version together with its missing
dependencies and executes it.
"""

from typing import Annotated

import typer

from pkgctl.cli.context import get_app_context
from pkgctl.cli.operations import run_operations
from pkgctl.core.errors import PkgctlError
from pkgctl.models.version import Version
from pkgctl.utils.formatting import print_error, print_info


def parse_version_option(value: str | None) -> Version | None:
    """Convert a --version option into a Version.

    Raises:
        typer.BadParameter: If the version is invalid.
    """
    if value is None:
        return None
    try:
        return Version.parse(value)
    except ValueError as e:
        raise typer.BadParameter(str(e)) from e


def install(
    ctx: typer.Context,
    name: Annotated[str, typer.Argument(help="Package name, e.g. org.gnu.Emacs.")],
    version: Annotated[
        str | None,
        typer.Option(
            "--version",
            "-V",
            help="Version to install (default: newest installable).",
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
    """Install a package and its missing dependencies.

    Examples:
        pkgctl install org.gnu.Emacs
        pkgctl install org.gnu.Emacs --version 29.1 --yes
    """
    app_ctx = get_app_context(ctx)
    wanted = parse_version_option(version)
    try:
        app_ctx.prepare()
        target = app_ctx.planner.resolve(name, wanted)
        if target.is_installed(app_ctx.registry):
            print_info(f"{target} is already installed.")
            return
        ops = app_ctx.planner.plan_installation(target)
    except PkgctlError as e:
        print_error(str(e))
        raise typer.Exit(code=1) from e

    run_operations(app_ctx, ops, yes, f"Installing {target}")
