"""Shared TOML helpers: fast reads with tomllib, edits with tomlkit documents."""

from __future__ import annotations

from pathlib import Path
from typing import Any

import tomlkit
from tomlkit.items import String
from tomlkit.toml_document import TOMLDocument

from polybump.compat import tomllib
from polybump.ecosystems.base import read_manifest_text, write_manifest_text
from polybump.errors import ManifestParseError, ManifestWriteError


def load_data(path: Path) -> dict[str, Any]:
    """Parse a TOML manifest into plain Python data.

    Raises:
        ManifestParseError: If the file is unreadable or not valid TOML.
    """
    text = read_manifest_text(path)
    try:
        return tomllib.loads(text)
    except tomllib.TOMLDecodeError as e:
        raise ManifestParseError(path, str(e)) from e


def load_document(path: Path) -> TOMLDocument:
    """Parse a TOML manifest into an editable, formatting-aware document.

    Raises:
        ManifestWriteError: If the file is unreadable or not valid TOML.
    """
    try:
        text = read_manifest_text(path)
        return tomlkit.parse(text)
    except ManifestParseError as e:
        raise ManifestWriteError(path, e.reason) from e
    except tomlkit.exceptions.ParseError as e:
        raise ManifestWriteError(path, str(e)) from e


def save_document(path: Path, document: TOMLDocument) -> None:
    write_manifest_text(path, tomlkit.dumps(document))


def string_like(existing: Any, value: str) -> String:
    """Build a TOML string that keeps the quoting style of ``existing``."""
    literal = isinstance(existing, String) and existing.as_string().startswith("'")
    return tomlkit.string(value, literal=literal)
