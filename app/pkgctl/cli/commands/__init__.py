"""CLI commands for pkgctl.

This package contains all subcommand implementations.
"""

from pkgctl.cli.commands import download, history, install, listing, refresh, repos, uninstall, update

__all__ = ["download", "history", "install", "listing", "refresh", "repos", "uninstall", "update"]
