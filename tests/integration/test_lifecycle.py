"""Full lifecycle integration tests."""

from __future__ import annotations

import json
import subprocess
import sys
from pathlib import Path

import pytest


def run_polybump(args: list[str], cwd: Path) -> subprocess.CompletedProcess[str]:
    """Run polybump CLI command."""
    return subprocess.run(
        [sys.executable, "-m", "polybump", *args],
        cwd=cwd,
        capture_output=True,
        text=True,
    )


def write_package_json(path: Path, data: dict) -> None:
    path.mkdir(parents=True, exist_ok=True)
    (path / "package.json").write_text(json.dumps(data, indent=2) + "\n")


def read_package_json(path: Path) -> dict:
    return json.loads((path / "package.json").read_text())


@pytest.fixture
def monorepo(tmp_path: Path) -> Path:
    """An initialized workspace with pkg-b depending on pkg-a."""
    result = run_polybump(["init"], tmp_path)
    assert result.returncode == 0, result.stderr

    write_package_json(tmp_path / "packages" / "pkg-a", {"name": "pkg-a", "version": "1.0.0"})
    write_package_json(
        tmp_path / "packages" / "pkg-b",
        {"name": "pkg-b", "version": "1.0.0", "dependencies": {"pkg-a": "^1.0.0"}},
    )
    return tmp_path


class TestInitCommand:
    """Tests for polybump init command."""

    def test_init_creates_state_dir(self, tmp_path: Path) -> None:
        """Init creates .polybump/ with config and changesets."""
        result = run_polybump(["init"], tmp_path)

        assert result.returncode == 0
        assert (tmp_path / ".polybump" / "config.yaml").exists()
        assert (tmp_path / ".polybump" / "changesets").is_dir()

    def test_init_twice_fails(self, tmp_path: Path) -> None:
        """Second init refuses to overwrite."""
        run_polybump(["init"], tmp_path)
        result = run_polybump(["init"], tmp_path)

        assert result.returncode == 1
        assert "already initialized" in result.stderr

    def test_command_outside_workspace(self, tmp_path: Path) -> None:
        """Commands need an initialized workspace."""
        result = run_polybump(["check"], tmp_path)

        assert result.returncode == 1
        assert "No polybump workspace found" in result.stderr


class TestMajorBumpLifecycle:
    """add -> check -> update across a dependency edge."""

    def test_major_bump_propagates(self, monorepo: Path) -> None:
        """A major bump of pkg-a bumps pkg-b and rewrites its constraint."""
        result = run_polybump(
            ["add", "-p", "pkg-a", "-b", "major", "-m", "Remove deprecated API"], monorepo
        )
        assert result.returncode == 0, result.stderr

        result = run_polybump(["check", "--json"], monorepo)
        assert result.returncode == 0, result.stderr
        report = json.loads(result.stdout)
        assert [(u["name"], u["next"]) for u in report["updates"]] == [
            ("pkg-a", "2.0.0"),
            ("pkg-b", "2.0.0"),
        ]

        result = run_polybump(["update", "--yes"], monorepo)
        assert result.returncode == 0, result.stderr

        pkg_a = read_package_json(monorepo / "packages" / "pkg-a")
        pkg_b = read_package_json(monorepo / "packages" / "pkg-b")
        assert pkg_a["version"] == "2.0.0"
        assert pkg_b["version"] == "2.0.0"
        assert pkg_b["dependencies"]["pkg-a"] == "^2.0.0"

        changelog_a = (monorepo / "packages" / "pkg-a" / "CHANGELOG.md").read_text()
        changelog_b = (monorepo / "packages" / "pkg-b" / "CHANGELOG.md").read_text()
        assert "## 2.0.0" in changelog_a
        assert "- Remove deprecated API" in changelog_a
        assert "## 2.0.0" in changelog_b
        assert "pkg-a" in changelog_b

        assert list((monorepo / ".polybump" / "changesets").glob("*.json")) == []

    def test_dry_run_changes_nothing(self, monorepo: Path) -> None:
        """--dry-run prints the plan and leaves every file alone."""
        run_polybump(["add", "-p", "pkg-a", "-b", "major", "-m", "Breaking"], monorepo)
        before = (monorepo / "packages" / "pkg-b" / "package.json").read_bytes()

        result = run_polybump(["update", "--dry-run"], monorepo)

        assert result.returncode == 0, result.stderr
        assert "Dry run" in result.stdout
        assert (monorepo / "packages" / "pkg-b" / "package.json").read_bytes() == before
        assert len(list((monorepo / ".polybump" / "changesets").glob("*.json"))) == 1

    def test_second_update_is_noop(self, monorepo: Path) -> None:
        """Consumed changesets are not applied twice."""
        run_polybump(["add", "-p", "pkg-a", "-b", "patch", "-m", "Fix"], monorepo)
        run_polybump(["update", "--yes"], monorepo)

        result = run_polybump(["update", "--yes"], monorepo)

        assert result.returncode == 0
        assert "No packages to update" in result.stdout
        assert read_package_json(monorepo / "packages" / "pkg-a")["version"] == "1.0.1"


class TestPublishLifecycle:
    """publish runs commands in dependency order."""

    def test_publish_order(self, monorepo: Path) -> None:
        log = monorepo / "publish.log"
        config = monorepo / ".polybump" / "config.yaml"
        config.write_text(
            config.read_text().replace(
                "publish: {}", f'publish:\n  node: "echo {{name}}@{{version}} >> {log}"'
            )
        )
        run_polybump(["add", "-p", "pkg-a", "-b", "minor", "-m", "Feature"], monorepo)

        result = run_polybump(["publish", "--yes"], monorepo)

        assert result.returncode == 0, result.stderr
        assert log.read_text().splitlines() == ["pkg-a@1.1.0", "pkg-b@1.0.1"]

    def test_publish_failure_exit_code(self, monorepo: Path) -> None:
        config = monorepo / ".polybump" / "config.yaml"
        config.write_text(config.read_text().replace("publish: {}", 'publish:\n  node: "exit 4"'))
        run_polybump(["add", "-p", "pkg-a", "-b", "patch", "-m", "Fix"], monorepo)

        result = run_polybump(["publish", "--yes"], monorepo)

        assert result.returncode == 1
        assert "pkg-a" in result.stderr
        assert read_package_json(monorepo / "packages" / "pkg-b")["version"] == "1.0.1"
        assert "publish" in result.stderr

    def test_publish_retry_keeps_version(self, monorepo: Path) -> None:
        """A second publish after a failure runs the commands again without bumping."""
        config = monorepo / ".polybump" / "config.yaml"
        original = config.read_text()
        config.write_text(original.replace("publish: {}", 'publish:\n  node: "exit 4"'))
        run_polybump(["add", "-p", "pkg-a", "-b", "patch", "-m", "Fix"], monorepo)

        assert run_polybump(["publish", "--yes"], monorepo).returncode == 1
        assert run_polybump(["publish", "--yes"], monorepo).returncode == 1

        log = monorepo / "publish.log"
        config.write_text(
            original.replace(
                "publish: {}", f'publish:\n  node: "echo {{name}}@{{version}} >> {log}"'
            )
        )
        result = run_polybump(["publish", "--yes"], monorepo)

        assert result.returncode == 0, result.stderr
        assert log.read_text().splitlines() == ["pkg-a@1.0.1", "pkg-b@1.0.1"]
        assert read_package_json(monorepo / "packages" / "pkg-a")["version"] == "1.0.1"
        assert not (monorepo / ".polybump" / "unpublished.json").exists()


class TestCyclicWorkspace:
    """A dependency cycle stops every command before anything is written."""

    def test_update_refuses_cycle(self, monorepo: Path) -> None:
        run_polybump(["add", "-p", "pkg-a", "-b", "minor", "-m", "Feature"], monorepo)
        write_package_json(
            monorepo / "packages" / "pkg-a",
            {"name": "pkg-a", "version": "1.0.0", "dependencies": {"pkg-b": "^1.0.0"}},
        )
        changesets = monorepo / ".polybump" / "changesets"
        (changeset_path,) = changesets.glob("*.json")
        pending = changeset_path.read_bytes()
        manifests = [monorepo / "packages" / name / "package.json" for name in ("pkg-a", "pkg-b")]
        before = [path.read_bytes() for path in manifests]

        result = run_polybump(["update", "--yes"], monorepo)

        assert result.returncode == 1
        assert "cycle" in result.stderr
        assert [path.read_bytes() for path in manifests] == before
        assert list(changesets.glob("*.json")) == [changeset_path]
        assert changeset_path.read_bytes() == pending
        assert not (monorepo / "packages" / "pkg-a" / "CHANGELOG.md").exists()
