"""Unit tests for StateManager.

Tests for appending and reading the history file.
"""

from pathlib import Path

import pytest

from pkgctl.core.state import StateManager
from pkgctl.models.history import HistoryActionType, HistoryItem, create_history_entry


def _entry(action: HistoryActionType, name: str = "org.x"):
    return create_history_entry(action, [HistoryItem(name, "1.0")])


class TestStateManager:
    """Tests for StateManager."""

    @pytest.fixture
    def state(self, tmp_path: Path) -> StateManager:
        """StateManager writing below tmp_path."""
        return StateManager(tmp_path / "state")

    def test_empty_history(self, state: StateManager) -> None:
        """No file means no history."""
        assert state.get_history() == []

    def test_record_creates_file(self, state: StateManager) -> None:
        """Recording creates the directory and appends one line."""
        state.record_action(_entry(HistoryActionType.INSTALL))

        assert state.history_path.exists()
        assert len(state.history_path.read_text().splitlines()) == 1

    def test_newest_first_and_limit(self, state: StateManager) -> None:
        """Entries are returned newest first and limited."""
        for name in ("org.a", "org.b", "org.c"):
            state.record_action(_entry(HistoryActionType.INSTALL, name))

        history = state.get_history(limit=2)

        assert [e.items[0].name for e in history] == ["org.c", "org.b"]

    def test_filter_by_type(self, state: StateManager) -> None:
        """action_type filters the entries."""
        state.record_action(_entry(HistoryActionType.INSTALL))
        state.record_action(_entry(HistoryActionType.UNINSTALL))

        history = state.get_history(action_type=HistoryActionType.UNINSTALL)

        assert [e.action_type for e in history] == [HistoryActionType.UNINSTALL]

    def test_corrupt_lines_skipped(self, state: StateManager) -> None:
        """Corrupt and blank lines are skipped."""
        entry = _entry(HistoryActionType.INSTALL)
        state.record_action(entry)
        with state.history_path.open("a") as f:
            f.write("not json\n\n{}\n")

        assert state.get_history() == [entry]

    def test_get_entry_by_id(self, state: StateManager) -> None:
        """Entries can be found by id."""
        entry = _entry(HistoryActionType.INSTALL)
        state.record_action(entry)

        assert state.get_entry_by_id(entry.id) == entry
        assert state.get_entry_by_id("missing") is None
