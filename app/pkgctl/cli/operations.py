"""Confirm and execute planned operations from CLI commands."""

import typer

from pkgctl.cli.context import AppContext
from pkgctl.cli.display import (
    confirm_operations,
    create_operations_table,
    print_operations_summary,
    report_job_result,
)
from pkgctl.cli.progress import watch_job
from pkgctl.models.operation import InstallOperation
from pkgctl.utils.formatting import console, print_info


def run_operations(app_ctx: AppContext, ops: list[InstallOperation], yes: bool, title: str) -> None:
    """Show, confirm and execute planned operations.

    Args:
        app_ctx: Application context.
        ops: Planned operations.
        yes: Skip the confirmation prompt.
        title: Title of the root job.

    Raises:
        typer.Exit: If the user declines or execution fails.
    """
    if not ops:
        print_info("Nothing to do.")
        return

    ordered = app_ctx.planner.order_for_execution(ops)
    if not app_ctx.quiet:
        console.print(create_operations_table(ordered, app_ctx.catalog))
        print_operations_summary(ordered)

    if not yes and not confirm_operations(len(ordered)):
        print_info("Aborted.")
        raise typer.Exit(code=0)

    job = app_ctx.executor.start(ops, title)
    watch_job(job, quiet=app_ctx.quiet)
    applied = sum(1 for op in ops if app_ctx.executor.is_applied(op))
    report_job_result(job, applied, len(ops))
