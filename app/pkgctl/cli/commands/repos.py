"""Repository list commands.

Manages the ordered list of catalog URLs. Earlier repositories take
priority when two of them describe the same package version.
"""

from typing import Annotated

import typer

from pkgctl.cli.context import get_app_context
from pkgctl.core.errors import PkgctlError
from pkgctl.core.repositories import add_repository_url, get_repository_urls, remove_repository_url
from pkgctl.utils.formatting import console, create_table, print_error, print_info, print_success

app = typer.Typer(
    help="Manage catalog repositories.",
    no_args_is_help=True,
)


@app.command("list")
def list_repositories(ctx: typer.Context) -> None:
    """Show the configured repositories in priority order."""
    app_ctx = get_app_context(ctx)
    try:
        urls = get_repository_urls(app_ctx.store)
    except PkgctlError as e:
        print_error(str(e))
        raise typer.Exit(code=1) from e

    if not urls:
        print_info("No repositories configured. Add one with 'pkgctl repos add URL'.")
        return

    table = create_table("Repositories")
    table.add_column("#", width=3, justify="right", style="muted")
    table.add_column("URL", overflow="fold")
    for i, url in enumerate(urls, start=1):
        table.add_row(str(i), url)
    console.print(table)


@app.command("add")
def add_repository(
    ctx: typer.Context,
    url: Annotated[str, typer.Argument(help="Absolute URL of a catalog document.")],
) -> None:
    """Append a repository to the list."""
    app_ctx = get_app_context(ctx)
    try:
        added = add_repository_url(app_ctx.store, url)
    except (ValueError, PkgctlError) as e:
        print_error(str(e))
        raise typer.Exit(code=1) from e

    if added:
        print_success(f"Added {url}")
    else:
        print_info(f"{url} is already configured.")


@app.command("remove")
def remove_repository(
    ctx: typer.Context,
    url: Annotated[str, typer.Argument(help="URL to remove.")],
) -> None:
    """Remove a repository from the list."""
    app_ctx = get_app_context(ctx)
    try:
        removed = remove_repository_url(app_ctx.store, url)
    except PkgctlError as e:
        print_error(str(e))
        raise typer.Exit(code=1) from e

    if not removed:
        print_error(f"{url} is not configured.")
        raise typer.Exit(code=1)
    print_success(f"Removed {url}")
