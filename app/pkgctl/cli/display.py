"""Shared Rich display functions for packages and operations.

Provides reusable table builders and summary printers used by the
install, uninstall and update commands.
"""

import typer
from rich.table import Table

from pkgctl.core.catalog import Catalog
from pkgctl.core.job import Job
from pkgctl.core.registry import InstalledRegistry
from pkgctl.models.operation import InstallOperation
from pkgctl.utils.formatting import console, create_table, print_error, print_success


def create_operations_table(ops: list[InstallOperation], catalog: Catalog) -> Table:
    """Create a Rich table displaying planned operations in execution order.

    Args:
        ops: Operations to display.
        catalog: Catalog used to look up package titles.

    Returns:
        Rich Table configured for operation display.
    """
    table = create_table("Planned Operations")
    table.add_column("#", width=3, justify="right", style="muted")
    table.add_column("Operation", width=11, justify="center")
    table.add_column("Package", no_wrap=True)
    table.add_column("Version", style="muted")

    for i, op in enumerate(ops, start=1):
        if op.is_install:
            op_text = "[added]+install[/added]"
            style = "added"
        else:
            op_text = "[removed]-uninstall[/removed]"
            style = "removed"
        title = catalog.get_package_title_and_name(op.package)
        table.add_row(str(i), op_text, f"[{style}]{title}[/{style}]", str(op.version))

    return table


def create_packages_table(catalog: Catalog, registry: InstalledRegistry, show_all: bool) -> Table:
    """Create a Rich table of installed (or all known) package versions.

    Args:
        catalog: Catalog with the known packages.
        registry: Registry answering which versions are installed.
        show_all: If True, include versions that are not installed.
    """
    table = create_table("Packages" if show_all else "Installed Packages")
    table.add_column("", width=2, justify="center")
    table.add_column("Package", no_wrap=True)
    table.add_column("Version", style="muted")
    table.add_column("Directory", overflow="fold")

    for package in catalog.get_packages():
        versions = sorted(catalog.get_package_versions(package.name), key=lambda pv: pv.version, reverse=True)
        for pv in versions:
            path = registry.get_path(pv.package, pv.version)
            if path:
                icon = "[package_installed]●[/]"
                name = f"[package_installed]{package.title}[/] [muted]({package.name})[/]"
            elif show_all:
                icon = "[package_available]○[/]"
                name = f"[package_available]{package.title}[/] [muted]({package.name})[/]"
            else:
                continue
            table.add_row(icon, name, str(pv.version), path or "-")

    return table


def print_operations_summary(ops: list[InstallOperation]) -> None:
    """Print the number of installs and uninstalls."""
    install_count = sum(1 for op in ops if op.is_install)
    uninstall_count = sum(1 for op in ops if op.is_uninstall)

    parts: list[str] = []
    if install_count:
        parts.append(f"[added]{install_count} to install[/added]")
    if uninstall_count:
        parts.append(f"[removed]{uninstall_count} to uninstall[/removed]")

    if parts:
        console.print(f"\nSummary: {', '.join(parts)}")


def confirm_operations(count: int) -> bool:
    """Prompt the user to confirm the execution of operations."""
    return typer.confirm(f"\nProceed with {count} operation(s)?", default=False)


def report_job_result(job: Job, applied: int, total: int) -> None:
    """Print the outcome of an executed request.

    Raises:
        typer.Exit: With code 1 if the job failed or was cancelled.
    """
    if job.error_message:
        print_error(job.error_message)
        if applied:
            console.print(f"[muted]{applied} of {total} operation(s) were applied before the error.[/]")
        raise typer.Exit(code=1)
    if job.is_cancelled():
        print_error(f"Cancelled after {applied} of {total} operation(s).")
        raise typer.Exit(code=1)
    print_success(f"All {total} operation(s) completed successfully.")
