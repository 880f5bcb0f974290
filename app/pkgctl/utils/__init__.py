"""Utility modules for pkgctl.

This module exports commonly used utility functions.
"""

from pkgctl.utils.formatting import (
    console,
    create_table,
    err_console,
    print_error,
    print_info,
    print_success,
    print_warning,
)
from pkgctl.utils.fs import is_under_or_equals, make_valid_filename, normalize_path

__all__ = [
    "console",
    "create_table",
    "err_console",
    "is_under_or_equals",
    "make_valid_filename",
    "normalize_path",
    "print_error",
    "print_info",
    "print_success",
    "print_warning",
]
