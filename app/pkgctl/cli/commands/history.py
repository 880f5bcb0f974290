"""History command for viewing executed operations.

This module provides the `pkgctl history` command for viewing the
operations that pkgctl applied.
"""

import json
from datetime import datetime
from typing import Annotated

import typer

from pkgctl.cli.context import get_app_context
from pkgctl.models.history import HistoryEntry
from pkgctl.utils.formatting import console, create_table, print_info


def history(
    ctx: typer.Context,
    limit: Annotated[
        int,
        typer.Option(
            "--limit",
            "-n",
            help="Maximum number of entries to show.",
        ),
    ] = 20,
    json_output: Annotated[
        bool,
        typer.Option(
            "--json",
            help="Output as JSON.",
        ),
    ] = False,
) -> None:
    """Show history of applied operations.

    Examples:
        pkgctl history              # Show last 20 entries
        pkgctl history -n 50        # Show last 50 entries
        pkgctl history --json       # JSON output for scripting
    """
    app_ctx = get_app_context(ctx)
    entries = app_ctx.state.get_history(limit=limit)

    if not entries:
        print_info("No history entries found.")
        return

    if json_output:
        _print_json(entries)
    else:
        _print_table(entries)


def _print_table(entries: list[HistoryEntry]) -> None:
    """Print history as Rich table.

    Args:
        entries: List of history entries to display.
    """
    table = create_table("Package History")
    table.add_column("ID", style="dim")
    table.add_column("Timestamp", style="cyan")
    table.add_column("Action", style="green")
    table.add_column("Packages", style="white")

    for entry in entries:
        pkg_count = len(entry.items)
        pkg_names = ", ".join(f"{item.name} {item.version}" for item in entry.items[:3])
        if pkg_count > 3:
            pkg_names += f" (+{pkg_count - 3} more)"

        table.add_row(
            entry.id[:8],
            _format_timestamp(entry.timestamp),
            entry.action_type.value,
            pkg_names,
        )

    console.print(table)


def _format_timestamp(iso_timestamp: str) -> str:
    """Format ISO timestamp as YYYY-MM-DD HH:MM."""
    dt = datetime.fromisoformat(iso_timestamp.replace("Z", "+00:00"))
    return dt.strftime("%Y-%m-%d %H:%M")


def _print_json(entries: list[HistoryEntry]) -> None:
    """Print history as JSON for scripting."""
    output = [entry.to_dict() for entry in entries]
    console.print_json(json.dumps(output))
