"""Unit tests for filesystem helpers."""

from pathlib import Path

import pytest

from pkgctl.utils.fs import (
    find_non_existing_path,
    is_under_or_equals,
    make_valid_filename,
    normalize_path,
    path_depth,
)


class TestPaths:
    """Tests for path comparisons."""

    def test_normalize_strips_trailing_separator(self, tmp_path: Path) -> None:
        """Trailing separators do not matter."""
        assert normalize_path(f"{tmp_path}/") == normalize_path(tmp_path)

    @pytest.mark.parametrize(
        ("path", "directory", "expected"),
        [
            ("/opt/app", "/opt/app", True),
            ("/opt/app/bin/x", "/opt/app", True),
            ("/opt/app-2", "/opt/app", False),
            ("/opt", "/opt/app", False),
            ("/opt/app/../other", "/opt/app", False),
        ],
    )
    def test_is_under_or_equals(self, path: str, directory: str, expected: bool) -> None:
        """Prefix matches must end on a path component."""
        assert is_under_or_equals(path, directory) is expected

    def test_path_depth(self) -> None:
        """Deeper paths have more components."""
        assert path_depth("/opt/app/plugins") > path_depth("/opt/app")


class TestFileNames:
    """Tests for file name helpers."""

    @pytest.mark.parametrize(
        ("name", "expected"),
        [
            ("Editor", "Editor"),
            ('a/b\\c:d*e?f"g<h>i|j', "a_b_c_d_e_f_g_h_i_j"),
            ("  dots. ", "dots"),
            ("...", "_"),
        ],
    )
    def test_make_valid_filename(self, name: str, expected: str) -> None:
        """Invalid characters are replaced and edges trimmed."""
        assert make_valid_filename(name) == expected

    def test_find_non_existing_path(self, tmp_path: Path) -> None:
        """Numeric suffixes start at 2."""
        base = tmp_path / "Editor"
        assert find_non_existing_path(base) == base

        base.mkdir()
        (tmp_path / "Editor_2").mkdir()
        assert find_non_existing_path(base) == tmp_path / "Editor_3"
