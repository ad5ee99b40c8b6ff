"""Shared test fixtures for polybump tests."""

from __future__ import annotations

import json
import os
import tempfile
from collections.abc import Generator
from pathlib import Path

import pytest
from dotenv import load_dotenv

# Load .env from project root (doesn't override existing env vars)
load_dotenv(Path(__file__).parent.parent / ".env")


def write_json(path: Path, data: dict) -> Path:
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(json.dumps(data, indent=2) + "\n", encoding="utf-8")
    return path


@pytest.fixture
def temp_dir() -> Generator[Path, None, None]:
    """Create a temporary directory for tests."""
    with tempfile.TemporaryDirectory() as tmpdir:
        yield Path(tmpdir).resolve()


@pytest.fixture
def sample_config_yaml() -> str:
    """Sample .polybump/config.yaml content."""
    return """\
base_branch: main
ignore:
  - "examples/**"
publish:
  node: "echo publishing {name}@{version}"
changelog:
  enabled: true
  filename: CHANGELOG.md
"""


@pytest.fixture
def sample_pyproject() -> str:
    """Sample pyproject.toml content."""
    return """\
[project]
name = "sample-pkg"
version = "1.0.0"
description = "A sample package"
dependencies = ["requests>=2.0.0"]

[project.optional-dependencies]
dev = ["pytest>=7.0.0"]
"""


@pytest.fixture
def workspace_dir(temp_dir: Path, sample_config_yaml: str) -> Path:
    """Create a polyglot workspace.

    Layout::

        packages/pkg-a/package.json     pkg-a 1.0.0
        packages/pkg-b/package.json     pkg-b 1.0.0, pkg-a ^1.0.0
        python/core/pyproject.toml      py-core 0.3.0
        crates/engine/Cargo.toml        engine 0.1.0
        examples/demo/package.json      ignored by config
    """
    state = temp_dir / ".polybump"
    (state / "changesets").mkdir(parents=True)
    (state / "config.yaml").write_text(sample_config_yaml, encoding="utf-8")

    write_json(
        temp_dir / "packages" / "pkg-a" / "package.json",
        {"name": "pkg-a", "version": "1.0.0", "description": "Package A"},
    )
    write_json(
        temp_dir / "packages" / "pkg-b" / "package.json",
        {
            "name": "pkg-b",
            "version": "1.0.0",
            "description": "Package B",
            "dependencies": {"pkg-a": "^1.0.0"},
        },
    )

    core = temp_dir / "python" / "core"
    core.mkdir(parents=True)
    (core / "pyproject.toml").write_text(
        """\
[project]
name = "py-core"
version = "0.3.0"
dependencies = []
""",
        encoding="utf-8",
    )

    engine = temp_dir / "crates" / "engine"
    engine.mkdir(parents=True)
    (engine / "Cargo.toml").write_text(
        """\
[package]
name = "engine"
version = "0.1.0"
edition = "2021"
""",
        encoding="utf-8",
    )

    write_json(
        temp_dir / "examples" / "demo" / "package.json",
        {"name": "demo", "version": "0.0.1", "dependencies": {"pkg-a": "^1.0.0"}},
    )

    return temp_dir


@pytest.fixture
def git_workspace(workspace_dir: Path) -> Path:
    """Create a workspace with git initialized on a main branch."""
    os.system(f"cd {workspace_dir} && git init -q -b main")
    os.system(f"cd {workspace_dir} && git config user.email 'test@test.com'")
    os.system(f"cd {workspace_dir} && git config user.name 'Test'")
    os.system(f"cd {workspace_dir} && git add -A")
    os.system(f"cd {workspace_dir} && git commit -q -m 'Initial commit'")
    return workspace_dir


@pytest.fixture
def cargo_workspace(temp_dir: Path) -> Path:
    """Create a virtual Cargo workspace sharing one requirement.

    Layout::

        Cargo.toml              no version, [workspace.dependencies] core = "0.1"
        crates/core/Cargo.toml  core 0.1.0
        crates/app/Cargo.toml   app 1.0.0, core = { workspace = true }
    """
    (temp_dir / ".polybump" / "changesets").mkdir(parents=True)
    (temp_dir / "Cargo.toml").write_text(
        """\
[workspace]
members = ["crates/*"]

[workspace.dependencies]
core = { path = "crates/core", version = "0.1" }
""",
        encoding="utf-8",
    )
    for name, body in (
        ("core", '[package]\nname = "core"\nversion = "0.1.0"\n'),
        (
            "app",
            '[package]\nname = "app"\nversion = "1.0.0"\n\n'
            "[dependencies]\ncore = { workspace = true }\n",
        ),
    ):
        (temp_dir / "crates" / name).mkdir(parents=True)
        (temp_dir / "crates" / name / "Cargo.toml").write_text(body, encoding="utf-8")
    return temp_dir
