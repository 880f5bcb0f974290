"""CLI package for pkgctl.

This package contains the Typer application and all subcommands.
"""

from pkgctl.cli.main import app

__all__ = ["app"]
