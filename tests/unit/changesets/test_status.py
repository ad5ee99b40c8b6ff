"""Tests for missing-changeset detection."""

from __future__ import annotations

from datetime import datetime, timezone
from pathlib import Path

import pytest

from polybump.changesets.models import Changeset
from polybump.changesets.status import find_missing_changesets, find_owning_package
from polybump.versioning.semver import BumpType
from polybump.workspace.graph import DependencyGraph
from polybump.workspace.package import Package, PackageKind


def make_package(
    package_id: str, name: str | None, kind: PackageKind = PackageKind.PACKAGE
) -> Package:
    return Package(
        id=package_id,
        ecosystem="node",
        kind=kind,
        name=name,
        version="1.0.0",
        path=Path("/ws") / Path(package_id).parent,
        manifest_path=Path("/ws") / package_id,
    )


ROOT = make_package("package.json", None, PackageKind.WORKSPACE)
APP = make_package("apps/web/package.json", "web")
NESTED = make_package("apps/web/plugins/auth/package.json", "auth")


@pytest.fixture
def graph() -> DependencyGraph:
    return DependencyGraph.build([ROOT, APP, NESTED])


class TestFindOwningPackage:
    """Tests for find_owning_package."""

    def test_deepest_wins(self) -> None:
        owner = find_owning_package("apps/web/plugins/auth/src/index.ts", [ROOT, APP, NESTED])
        assert owner is NESTED

    def test_parent_package(self) -> None:
        assert find_owning_package("apps/web/src/app.ts", [ROOT, APP, NESTED]) is APP

    def test_root_package_catches_rest(self) -> None:
        assert find_owning_package("README.md", [ROOT, APP]) is ROOT

    def test_no_root_package(self) -> None:
        assert find_owning_package("README.md", [APP]) is None

    def test_sibling_prefix_not_matched(self) -> None:
        assert find_owning_package("apps/website/index.ts", [APP]) is None

    def test_state_dir_belongs_to_nobody(self) -> None:
        assert find_owning_package(".polybump/changesets/a.json", [ROOT]) is None


class TestFindMissingChangesets:
    """Tests for find_missing_changesets."""

    def test_reports_uncovered(self, graph: DependencyGraph) -> None:
        missing = find_missing_changesets(["apps/web/src/app.ts"], graph, [])
        assert missing == [APP]

    def test_covered_by_name(self, graph: DependencyGraph) -> None:
        changeset = Changeset(
            id="c1",
            packages=frozenset({"web"}),
            bump=BumpType.PATCH,
            created_at=datetime(2024, 1, 1, tzinfo=timezone.utc),
        )
        missing = find_missing_changesets(
            ["apps/web/src/app.ts", "apps/web/plugins/auth/a.ts"], graph, [changeset]
        )
        assert missing == [NESTED]

    def test_covered_by_id(self, graph: DependencyGraph) -> None:
        changeset = Changeset(
            id="c1",
            packages=frozenset({APP.id}),
            bump=BumpType.PATCH,
            created_at=datetime(2024, 1, 1, tzinfo=timezone.utc),
        )
        assert find_missing_changesets(["apps/web/x.ts"], graph, [changeset]) == []

    def test_sorted_and_deduplicated(self, graph: DependencyGraph) -> None:
        missing = find_missing_changesets(
            ["apps/web/plugins/auth/a.ts", "LICENSE", "apps/web/a.ts", "apps/web/b.ts"], graph, []
        )
        assert [p.id for p in missing] == [
            "apps/web/package.json",
            "apps/web/plugins/auth/package.json",
            "package.json",
        ]
