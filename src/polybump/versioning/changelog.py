"""Changelog entries built from changeset summaries."""

from __future__ import annotations

from collections.abc import Iterable
from datetime import date
from pathlib import Path

from polybump.changesets.models import Changeset
from polybump.versioning.semver import BumpType

CHANGELOG_HEADER = "# Changelog"

SECTION_TITLES: dict[BumpType, str] = {
    BumpType.MAJOR: "Major Changes",
    BumpType.MINOR: "Minor Changes",
    BumpType.PATCH: "Patch Changes",
}


def _bullet(summary: str) -> str:
    lines = summary.strip().splitlines() or [""]
    return "\n".join([f"- {lines[0]}", *(f"  {line}" if line else "" for line in lines[1:])])


def generate_changelog_entry(
    version: str,
    changesets: Iterable[Changeset],
    dependency_updates: Iterable[tuple[str, str]] = (),
    release_date: date | None = None,
) -> str:
    """Render one version's changelog entry.

    Changeset summaries are grouped by bump type (major first) and kept in
    creation order inside each group.

    Args:
        version: The new version.
        changesets: Changesets that bumped the package directly.
        dependency_updates: ``(name, new_version)`` of bumped dependencies.
        release_date: Date shown in the heading. Defaults to today.

    Returns:
        Markdown entry ending in a single newline.
    """
    release_date = release_date or date.today()
    lines = [f"## {version} ({release_date.isoformat()})", ""]

    ordered = sorted(changesets, key=lambda c: (c.created_at, c.id))
    for bump, title in SECTION_TITLES.items():
        summaries = [c.summary for c in ordered if c.bump is bump and c.summary.strip()]
        if not summaries:
            continue
        lines += [f"### {title}", ""]
        lines += [_bullet(s) for s in summaries]
        lines.append("")

    dependency_updates = list(dependency_updates)
    if dependency_updates:
        lines += ["### Dependencies", ""]
        lines += [f"- Updated {name} to {new_version}" for name, new_version in dependency_updates]
        lines.append("")

    if len(lines) == 2:
        lines += ["- Version bump", ""]
    return "\n".join(lines)


def prepend_to_changelog(path: Path, entry: str) -> None:
    """Insert an entry at the top of a changelog, below its ``# Changelog`` title.

    The file is created when missing; its line endings are preserved.
    """
    if not path.exists():
        path.write_text(f"{CHANGELOG_HEADER}\n\n{entry}", encoding="utf-8")
        return

    with open(path, encoding="utf-8", newline="") as f:
        existing = f.read()
    newline = "\r\n" if "\r\n" in existing else "\n"
    entry = entry.replace("\n", newline)

    first_line, _, rest = existing.partition(newline)
    if first_line.strip() == CHANGELOG_HEADER:
        content = f"{first_line}{newline}{newline}{entry}{newline}{rest.lstrip(newline)}"
    else:
        content = f"{entry}{newline}{existing}"

    with open(path, "w", encoding="utf-8", newline="") as f:
        f.write(content)
