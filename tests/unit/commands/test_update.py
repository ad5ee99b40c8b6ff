"""Test update command."""

import json
import signal
import threading
from pathlib import Path
from unittest.mock import patch

import pytest
import typer
from rich.console import Console

from polybump.changesets import ChangesetStore
from polybump.commands.update import (
    UpdateCommand,
    UpdateOptions,
    cancel_on_interrupt,
    handle_update_command,
    render_plan_table,
    report_result,
    update,
)
from polybump.commands.base import CommandContext
from polybump.errors import ManifestWriteError
from polybump.orchestrator import OrchestrationMode, OrchestrationResult
from polybump.versioning.semver import BumpType
from polybump.workspace import Workspace

PKG_A = "packages/pkg-a/package.json"
PKG_B = "packages/pkg-b/package.json"


@pytest.fixture
def workspace(workspace_dir: Path) -> Workspace:
    ChangesetStore(workspace_dir).create(["pkg-a"], BumpType.MAJOR, "Breaking change")
    return Workspace.discover(workspace_dir)


@pytest.fixture
def consoles():
    return Console(record=True, width=200), Console(record=True, width=200)


def version_of(workspace: Workspace, package_id: str) -> str:
    return json.loads((workspace.root / package_id).read_text())["version"]


async def test_update(workspace):
    result = await update(workspace)

    assert result.mode is OrchestrationMode.UPDATE
    assert result.succeeded == [PKG_A, PKG_B]
    assert version_of(workspace, PKG_B) == "2.0.0"
    assert ChangesetStore(workspace.root).list() == []


async def test_update_dry_run(workspace):
    result = await update(workspace, dry_run=True)

    assert result.mode is OrchestrationMode.DRY_RUN
    assert [p.update.next_version for p in result.plan] == ["2.0.0", "2.0.0"]
    assert version_of(workspace, PKG_A) == "1.0.0"
    assert len(ChangesetStore(workspace.root).list()) == 1


async def test_update_never_publishes(workspace):
    result = await UpdateCommand(CommandContext(workspace=workspace)).execute()
    assert result.publish_results == {}
    assert all(p.publish_command is None for p in result.plan)


def test_build_orchestrator_continue_on_error(workspace):
    command = UpdateCommand(
        CommandContext(workspace=workspace), UpdateOptions(continue_on_error=True)
    )
    orchestrator = command.build_orchestrator()

    assert orchestrator.config.continue_on_error is True
    assert workspace.config.continue_on_error is False


def test_build_orchestrator_passes_env_and_scope(workspace):
    command = UpdateCommand(
        CommandContext(workspace=workspace, env={"CHANNEL": "beta"}),
        UpdateOptions(languages=["rust"]),
    )
    orchestrator = command.build_orchestrator()

    assert orchestrator.env == {"CHANNEL": "beta"}
    assert not orchestrator.publish_filter(workspace.get_package("pkg-a"))
    assert orchestrator.publish_filter(workspace.get_package("engine"))
    assert command.validate() == []


async def test_render_plan_table(workspace):
    result = await update(workspace, dry_run=True)
    console = Console(record=True, width=200)
    console.print(render_plan_table(result.plan))

    output = console.export_text()
    assert "pkg-a: ^1.0.0 -> ^2.0.0" in output
    assert "Publish" not in output


class TestReportResult:
    """Tests for report_result."""

    def test_success(self, consoles):
        console, error_console = consoles
        result = OrchestrationResult(mode=OrchestrationMode.UPDATE, succeeded=[PKG_A, PKG_B])

        report_result(result, console, error_console)

        assert "Updated 2 packages" in console.export_text()

    def test_failure_exits(self, consoles):
        console, error_console = consoles
        result = OrchestrationResult(
            mode=OrchestrationMode.UPDATE,
            succeeded=[PKG_A],
            failed={PKG_B: ManifestWriteError(Path(PKG_B), "disk full")},
        )

        with pytest.raises(typer.Exit) as exc_info:
            report_result(result, console, error_console)

        assert exc_info.value.exit_code == 1
        assert "disk full" in error_console.export_text()

    def test_cancelled(self, consoles):
        console, error_console = consoles
        result = OrchestrationResult(
            mode=OrchestrationMode.PUBLISH, cancelled=True, unreached=[PKG_A, PKG_B]
        )

        with pytest.raises(typer.Exit):
            report_result(result, console, error_console)

        output = error_console.export_text()
        assert "Cancelled." in output
        assert f"Not processed: {PKG_A}, {PKG_B}" in output


class TestCancelOnInterrupt:
    """Tests for the SIGINT handler."""

    def test_first_interrupt_sets_event(self):
        with cancel_on_interrupt() as event:
            handler = signal.getsignal(signal.SIGINT)
            handler(signal.SIGINT, None)
            assert event.is_set()

            with pytest.raises(KeyboardInterrupt):
                handler(signal.SIGINT, None)

    def test_handler_restored(self):
        previous = signal.getsignal(signal.SIGINT)
        with cancel_on_interrupt():
            pass
        assert signal.getsignal(signal.SIGINT) is previous

    def test_off_main_thread(self):
        events = []

        def worker():
            with cancel_on_interrupt() as event:
                events.append(event)

        thread = threading.Thread(target=worker)
        thread.start()
        thread.join()

        assert len(events) == 1
        assert not events[0].is_set()


class TestHandleUpdateCommand:
    """Tests for the CLI handler."""

    async def test_yes(self, workspace, consoles):
        console, error_console = consoles

        await handle_update_command(
            workspace, console=console, error_console=error_console, yes=True
        )

        output = console.export_text()
        assert "Pending updates:" in output
        assert "Updated 2 packages" in output
        assert version_of(workspace, PKG_A) == "2.0.0"

    async def test_dry_run(self, workspace, consoles):
        console, error_console = consoles

        await handle_update_command(
            workspace, console=console, error_console=error_console, dry_run=True
        )

        assert "Dry run - no changes will be made" in console.export_text()
        assert version_of(workspace, PKG_A) == "1.0.0"

    async def test_declined(self, workspace, consoles):
        console, error_console = consoles

        with patch("typer.confirm", return_value=False) as confirm:
            await handle_update_command(workspace, console=console, error_console=error_console)

        confirm.assert_called_once()
        assert "Update cancelled." in console.export_text()
        assert version_of(workspace, PKG_A) == "1.0.0"

    async def test_nothing_pending(self, workspace_dir, consoles):
        console, error_console = consoles
        workspace = Workspace.discover(workspace_dir)

        await handle_update_command(workspace, console=console, error_console=error_console)

        assert "No packages to update" in console.export_text()

    async def test_error_exits(self, workspace, consoles):
        console, error_console = consoles
        (workspace.root / ".polybump" / "changesets" / "broken.json").write_text("{}")

        with pytest.raises(typer.Exit):
            await handle_update_command(workspace, console=console, error_console=error_console)

        assert "Error:" in error_console.export_text()

    async def test_json_output(self, workspace, consoles):
        console, error_console = consoles

        await handle_update_command(
            workspace, console=console, error_console=error_console, yes=True, json_output=True
        )

        output = console.export_text()
        data = json.loads(output)
        assert data["mode"] == "update"
        assert data["dry_run"] is False
        assert data["succeeded"] == [PKG_A, PKG_B]
        assert [p["next"] for p in data["plan"]] == ["2.0.0", "2.0.0"]
        assert data["latest"] is None
        assert "Pending updates:" not in output

    async def test_json_dry_run_reports_latest(self, workspace_dir, consoles):
        console, error_console = consoles
        ChangesetStore(workspace_dir).create(["pkg-a"], BumpType.MINOR, "Feature")
        config = Workspace.discover(workspace_dir).config
        workspace = Workspace.load(
            workspace_dir, config.model_copy(update={"latest_package": PKG_B})
        )

        await handle_update_command(
            workspace, console=console, error_console=error_console, dry_run=True, json_output=True
        )

        data = json.loads(console.export_text())
        assert data["dry_run"] is True
        assert data["latest"] == {"id": PKG_B, "version": "1.0.1"}
        assert version_of(workspace, PKG_A) == "1.0.0"

    async def test_workspace_version_printed(self, workspace_dir, consoles):
        console, error_console = consoles
        ChangesetStore(workspace_dir).create(["pkg-a"], BumpType.PATCH, "Fix")
        config = Workspace.discover(workspace_dir).config
        workspace = Workspace.load(
            workspace_dir, config.model_copy(update={"latest_package": PKG_A})
        )

        await handle_update_command(
            workspace, console=console, error_console=error_console, yes=True
        )

        assert f"Workspace version: 1.0.1 ({PKG_A})" in console.export_text()
