"""Unit tests for history command.

Tests for the CLI history command implementation.
"""

import json

import pytest
from typer.testing import CliRunner

from pkgctl.cli.context import AppContext
from pkgctl.cli.main import app
from pkgctl.models.history import HistoryActionType, HistoryEntry, HistoryItem

runner = CliRunner()


@pytest.fixture
def sample_history_entries() -> list[HistoryEntry]:
    """Create sample history entries, oldest first."""
    return [
        HistoryEntry(
            id="def678901234",
            timestamp="2026-01-26T14:25:00+00:00",
            action_type=HistoryActionType.UNINSTALL,
            items=(HistoryItem(name="org.gnu.Nano", version="7.2"),),
        ),
        HistoryEntry(
            id="abc123456789",
            timestamp="2026-01-26T14:30:00+00:00",
            action_type=HistoryActionType.INSTALL,
            items=tuple(HistoryItem(name=f"org.example.P{i}", version="1.0") for i in range(5)),
            metadata={"job": "Installing"},
        ),
    ]


class TestHistoryCommand:
    """Tests for pkgctl history."""

    def test_history_empty(self, app_ctx: AppContext) -> None:
        """History shows a message when no entries exist."""
        result = runner.invoke(app, ["history"], obj=app_ctx)

        assert result.exit_code == 0
        assert "No history entries found" in result.stdout

    def test_history_table(self, app_ctx: AppContext, sample_history_entries: list[HistoryEntry]) -> None:
        """Entries are shown newest first with truncated package lists."""
        for entry in sample_history_entries:
            app_ctx.state.record_action(entry)

        result = runner.invoke(app, ["history"], obj=app_ctx)

        assert result.exit_code == 0
        assert result.stdout.index("abc12345") < result.stdout.index("def67890")
        assert "(+2 more)" in result.stdout
        assert "2026-01-26 14:30" in result.stdout

    def test_history_json_output(
        self, app_ctx: AppContext, sample_history_entries: list[HistoryEntry]
    ) -> None:
        """History --json outputs valid JSON."""
        for entry in sample_history_entries:
            app_ctx.state.record_action(entry)

        result = runner.invoke(app, ["history", "--json", "-n", "1"], obj=app_ctx)

        assert result.exit_code == 0
        data = json.loads(result.stdout)
        assert len(data) == 1
        assert data[0]["id"] == "abc123456789"
        assert data[0]["action_type"] == "install"
        assert data[0]["metadata"] == {"job": "Installing"}
        assert len(data[0]["items"]) == 5
