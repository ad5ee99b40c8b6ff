"""On-disk changeset store (``.polybump/changesets/<id>.json``)."""

from __future__ import annotations

import json
import logging
import os
import tempfile
import uuid
from collections.abc import Iterable
from datetime import datetime, timedelta, timezone
from pathlib import Path

from pydantic import ValidationError

from polybump.changesets.models import Changeset
from polybump.config import STATE_DIR
from polybump.errors import ChangesetError, ConfigurationError
from polybump.versioning.semver import BumpType

logger = logging.getLogger(__name__)

CHANGESETS_DIR = "changesets"
UNPUBLISHED_FILE = "unpublished.json"


class ChangesetStore:
    """Pending changesets of one workspace.

    Records persist until the packages they name have been updated; each
    record is one JSON file, rewritten atomically.
    """

    def __init__(self, root: Path) -> None:
        """Initialize store.

        Args:
            root: Workspace root directory.
        """
        self.root = root
        self.directory = root / STATE_DIR / CHANGESETS_DIR
        self.unpublished_path = root / STATE_DIR / UNPUBLISHED_FILE

    @property
    def is_initialized(self) -> bool:
        return self.directory.is_dir()

    def init(self) -> None:
        """Create the empty store. Idempotent."""
        self.directory.mkdir(parents=True, exist_ok=True)

    def _require_initialized(self) -> None:
        if not self.is_initialized:
            raise ConfigurationError(
                "Changeset store is not initialized; run 'polybump init'",
                path=self.directory,
            )

    def _path(self, changeset_id: str) -> Path:
        return self.directory / f"{changeset_id}.json"

    def _read(self, path: Path) -> Changeset:
        try:
            with open(path, encoding="utf-8") as f:
                data = json.load(f)
            return Changeset.model_validate(data)
        except (OSError, json.JSONDecodeError, ValidationError) as e:
            raise ChangesetError(f"Malformed changeset: {e}", path=path) from e

    def _write_json(self, path: Path, data: object) -> None:
        fd, tmp = tempfile.mkstemp(dir=path.parent, prefix=".tmp-", suffix=".tmp")
        try:
            with os.fdopen(fd, "w", encoding="utf-8") as f:
                json.dump(data, f, indent=2)
                f.write("\n")
            os.replace(tmp, path)
        except BaseException:
            Path(tmp).unlink(missing_ok=True)
            raise

    def _write(self, changeset: Changeset) -> None:
        self._write_json(self._path(changeset.id), changeset.to_record())

    def list(self) -> list[Changeset]:
        """All pending changesets, oldest first.

        Raises:
            ConfigurationError: If the store was never initialized.
            ChangesetError: If a record is malformed.
        """
        self._require_initialized()
        changesets = [self._read(path) for path in sorted(self.directory.glob("*.json"))]
        return sorted(changesets, key=lambda c: (c.created_at, c.id))

    def get(self, changeset_id: str) -> Changeset:
        """Load one changeset.

        Raises:
            ChangesetError: If no such changeset exists or it is malformed.
        """
        self._require_initialized()
        path = self._path(changeset_id)
        if not path.is_file():
            raise ChangesetError(f"Unknown changeset '{changeset_id}'")
        return self._read(path)

    def create(self, packages: Iterable[str], bump: BumpType, summary: str) -> str:
        """Record a new changeset.

        Args:
            packages: Package ids or names the change applies to.
            bump: Bump severity (patch, minor or major).
            summary: Human readable description, used in changelogs.

        Returns:
            The new changeset id.

        Raises:
            ChangesetError: If the record would be invalid.
        """
        self._require_initialized()
        created_at = datetime.now(timezone.utc)
        existing = self.list()
        if existing and created_at <= existing[-1].created_at:
            created_at = existing[-1].created_at + timedelta(microseconds=1)

        changeset_id = uuid.uuid4().hex[:12]
        try:
            changeset = Changeset(
                id=changeset_id,
                packages=frozenset(packages),
                bump=bump,
                summary=summary.strip(),
                created_at=created_at,
            )
        except ValidationError as e:
            raise ChangesetError(f"Invalid changeset: {e}") from e
        self._write(changeset)
        logger.debug("Created changeset %s for %s", changeset_id, sorted(changeset.packages))
        return changeset_id

    def archive(self, changeset_id: str, packages: Iterable[str] | None = None) -> None:
        """Consume a changeset, wholly or for some of its package references.

        Args:
            changeset_id: Changeset to consume.
            packages: References already handled. When given and others
                remain, the record is rewritten naming only the rest.

        Raises:
            ChangesetError: If no such changeset exists.
        """
        changeset = self.get(changeset_id)
        remaining = changeset.packages - set(packages) if packages is not None else frozenset()
        if remaining:
            self._write(changeset.model_copy(update={"packages": frozenset(remaining)}))
            logger.debug("Changeset %s narrowed to %s", changeset_id, sorted(remaining))
            return
        self._path(changeset_id).unlink()
        logger.debug("Changeset %s archived", changeset_id)

    def unpublished(self) -> list[str]:
        """Ids of packages whose new version is on disk but not yet published.

        Raises:
            ChangesetError: If the record is malformed.
        """
        if not self.unpublished_path.is_file():
            return []
        try:
            with open(self.unpublished_path, encoding="utf-8") as f:
                data = json.load(f)
        except (OSError, json.JSONDecodeError) as e:
            raise ChangesetError(
                f"Malformed publish record: {e}", path=self.unpublished_path
            ) from e
        if not isinstance(data, list) or not all(isinstance(i, str) for i in data):
            raise ChangesetError(
                "Malformed publish record: expected a list of ids", path=self.unpublished_path
            )
        return data

    def mark_unpublished(self, package_id: str) -> None:
        """Remember that a package's version was written but its publish has not succeeded."""
        self._require_initialized()
        pending = self.unpublished()
        if package_id not in pending:
            self._write_json(self.unpublished_path, sorted([*pending, package_id]))

    def mark_published(self, package_id: str) -> None:
        """Forget a package once its publish command succeeded."""
        pending = self.unpublished()
        if package_id not in pending:
            return
        pending.remove(package_id)
        if pending:
            self._write_json(self.unpublished_path, pending)
        else:
            self.unpublished_path.unlink()
