"""Filesystem path helpers."""

import os
import re
from pathlib import Path

_INVALID_FILENAME_CHARS = re.compile(r'[\\/:*?"<>|\x00-\x1f]')


def normalize_path(path: str | Path) -> str:
    """Return an absolute, case-normalized path without trailing separator."""
    return os.path.normcase(os.path.abspath(os.fspath(path)))


def is_under_or_equals(path: str | Path, directory: str | Path) -> bool:
    """Check whether a path is the directory itself or lies inside it."""
    p = normalize_path(path)
    d = normalize_path(directory)
    return p == d or p.startswith(d.rstrip(os.sep) + os.sep)


def path_depth(path: str | Path) -> int:
    """Number of components of the normalized path."""
    return len(Path(normalize_path(path)).parts)


def make_valid_filename(name: str, replacement: str = "_") -> str:
    """Replace characters that cannot appear in a file name.

    Args:
        name: Arbitrary text such as a package title.
        replacement: Character used for invalid characters.

    Returns:
        A non-empty file name.
    """
    cleaned = _INVALID_FILENAME_CHARS.sub(replacement, name).strip(" .")
    return cleaned or replacement


def find_non_existing_path(base: Path) -> Path:
    """Return base, or base with the smallest numeric suffix that does not exist."""
    if not base.exists():
        return base
    i = 2
    while True:
        candidate = base.with_name(f"{base.name}_{i}")
        if not candidate.exists():
            return candidate
        i += 1
