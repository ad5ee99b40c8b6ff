"""Changesets: recorded bump intents and their on-disk store."""

from polybump.changesets.models import Changeset
from polybump.changesets.status import find_missing_changesets, find_owning_package
from polybump.changesets.store import ChangesetStore

__all__ = [
    "Changeset",
    "ChangesetStore",
    "find_missing_changesets",
    "find_owning_package",
]
