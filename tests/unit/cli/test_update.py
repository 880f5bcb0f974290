"""Unit tests for the update command."""

from pathlib import Path

from typer.testing import CliRunner

from pkgctl.cli.context import AppContext
from pkgctl.cli.main import app
from pkgctl.models.version import Version

runner = CliRunner()

RUNTIME = "org.example.Runtime"


class TestUpdateCommand:
    """Tests for pkgctl update."""

    def test_requires_names_or_all(self, app_ctx: AppContext) -> None:
        """Without packages or --all the command fails."""
        result = runner.invoke(app, ["update"], obj=app_ctx)

        assert result.exit_code == 1
        assert "--all" in result.output

    def test_update_single_package(self, app_ctx: AppContext) -> None:
        """The installed version is replaced by the newest one."""
        runner.invoke(app, ["install", RUNTIME, "--version", "0.9", "--yes"], obj=app_ctx)

        result = runner.invoke(app, ["update", RUNTIME, "--yes"], obj=app_ctx)

        assert result.exit_code == 0, result.output
        assert app_ctx.registry.is_installed(RUNTIME, Version.parse("1.0"))
        assert not app_ctx.registry.is_installed(RUNTIME, Version.parse("0.9"))

    def test_already_current(self, app_ctx: AppContext) -> None:
        """Updating a current package is not an error."""
        runner.invoke(app, ["install", RUNTIME, "--yes"], obj=app_ctx)

        result = runner.invoke(app, ["update", RUNTIME, "--yes"], obj=app_ctx)

        assert result.exit_code == 0
        assert "up to date" in result.output

    def test_update_all(self, app_ctx: AppContext, tmp_path: Path) -> None:
        """--all updates every installed package with a download."""
        runner.invoke(app, ["install", RUNTIME, "--version", "0.9", "--yes"], obj=app_ctx)
        detected = tmp_path / "detected"
        detected.mkdir()
        app_ctx.registry.set_path("org.detected", Version.parse("1"), str(detected))

        result = runner.invoke(app, ["update", "--all", "--yes"], obj=app_ctx)

        assert result.exit_code == 0, result.output
        assert app_ctx.registry.is_installed(RUNTIME, Version.parse("1.0"))

    def test_update_all_nothing_to_do(self, app_ctx: AppContext) -> None:
        """--all with current packages prints a notice."""
        result = runner.invoke(app, ["update", "--all"], obj=app_ctx)

        assert result.exit_code == 0
        assert "up to date" in result.output

    def test_not_installed(self, app_ctx: AppContext) -> None:
        """Updating a package that is not installed fails."""
        result = runner.invoke(app, ["update", RUNTIME, "--yes"], obj=app_ctx)

        assert result.exit_code == 1
        assert "No installed version" in result.output
