"""Ecosystem registry, keyed by ecosystem and by manifest file name."""

from __future__ import annotations

from pathlib import Path

from polybump.ecosystems.base import Ecosystem, ManifestData
from polybump.ecosystems.csharp import CSharpEcosystem
from polybump.ecosystems.dart import DartEcosystem
from polybump.ecosystems.java import JavaEcosystem
from polybump.ecosystems.node import NodeEcosystem
from polybump.ecosystems.python import PythonEcosystem
from polybump.ecosystems.rust import RustEcosystem

ECOSYSTEMS: dict[str, Ecosystem] = {
    ecosystem.key: ecosystem
    for ecosystem in (
        NodeEcosystem(),
        PythonEcosystem(),
        RustEcosystem(),
        DartEcosystem(),
        JavaEcosystem(),
        CSharpEcosystem(),
    )
}

MANIFEST_NAMES: dict[str, Ecosystem] = {
    name: ecosystem for ecosystem in ECOSYSTEMS.values() for name in ecosystem.manifest_names
}


def get_ecosystem(key: str) -> Ecosystem:
    """Look up an ecosystem by key.

    Raises:
        KeyError: If no ecosystem is registered under the key.
    """
    try:
        return ECOSYSTEMS[key]
    except KeyError:
        known = ", ".join(sorted(ECOSYSTEMS))
        raise KeyError(f"Unknown ecosystem '{key}' (known: {known})") from None


def ecosystem_for(path: Path) -> Ecosystem | None:
    """Return the ecosystem owning a manifest file, if any.

    Fixed file names are looked up directly; ecosystems whose manifests are
    named after the project (``*.csproj``) are asked in turn.
    """
    ecosystem = MANIFEST_NAMES.get(path.name)
    if ecosystem is not None:
        return ecosystem
    return next((e for e in ECOSYSTEMS.values() if e.owns(path)), None)


__all__ = [
    "ECOSYSTEMS",
    "MANIFEST_NAMES",
    "CSharpEcosystem",
    "DartEcosystem",
    "Ecosystem",
    "JavaEcosystem",
    "ManifestData",
    "NodeEcosystem",
    "PythonEcosystem",
    "RustEcosystem",
    "ecosystem_for",
    "get_ecosystem",
]
