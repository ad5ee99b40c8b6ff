"""Semantic version parsing, ordering and bumping."""

from __future__ import annotations

import re
from dataclasses import dataclass, replace
from enum import Enum
from functools import reduce

from polybump.errors import VersionParseError


class BumpType(str, Enum):
    """Version bump severity.

    Ordered ``NONE < PATCH < MINOR < MAJOR``; comparisons use that ordinal
    rather than the string value.
    """

    NONE = "none"
    PATCH = "patch"
    MINOR = "minor"
    MAJOR = "major"

    @property
    def ordinal(self) -> int:
        return _BUMP_ORDER[self]

    def __lt__(self, other: object) -> bool:
        if not isinstance(other, BumpType):
            return NotImplemented
        return self.ordinal < other.ordinal

    def __le__(self, other: object) -> bool:
        if not isinstance(other, BumpType):
            return NotImplemented
        return self.ordinal <= other.ordinal

    def __gt__(self, other: object) -> bool:
        if not isinstance(other, BumpType):
            return NotImplemented
        return self.ordinal > other.ordinal

    def __ge__(self, other: object) -> bool:
        if not isinstance(other, BumpType):
            return NotImplemented
        return self.ordinal >= other.ordinal

    @classmethod
    def parse(cls, value: str) -> BumpType:
        """Parse a bump name case-insensitively.

        Raises:
            ValueError: If the name is not a known bump type.
        """
        try:
            return cls(value.strip().lower())
        except ValueError:
            raise ValueError(
                f"Invalid bump type '{value}' (expected patch, minor or major)"
            ) from None


_BUMP_ORDER = {
    BumpType.NONE: 0,
    BumpType.PATCH: 1,
    BumpType.MINOR: 2,
    BumpType.MAJOR: 3,
}


def merge_bumps(*bumps: BumpType) -> BumpType:
    """Merge bump severities; the highest one wins.

    Idempotent and monotonic: adding inputs can never lower the result.
    """
    return reduce(lambda a, b: a if a >= b else b, bumps, BumpType.NONE)


SEMVER_PATTERN = re.compile(
    r"^(?P<major>0|[1-9]\d*)\.(?P<minor>0|[1-9]\d*)\.(?P<patch>0|[1-9]\d*)"
    r"(?:-(?P<prerelease>[0-9A-Za-z-]+(?:\.[0-9A-Za-z-]+)*))?"
    r"(?:\+(?P<build>[0-9A-Za-z-]+(?:\.[0-9A-Za-z-]+)*))?$"
)


@dataclass(frozen=True)
class Version:
    """A ``major.minor.patch[-prerelease][+build]`` version.

    ``pre_separator`` records how the prerelease was attached so that
    grammars which allow other spellings (PEP 440 ``1.0.0rc1``) still
    round-trip exactly.
    """

    major: int
    minor: int
    patch: int
    prerelease: str | None = None
    build: str | None = None
    pre_separator: str = "-"

    @classmethod
    def parse(cls, version: str) -> Version:
        """Parse a strict semver string.

        Raises:
            VersionParseError: If the string is not valid semver.
        """
        match = SEMVER_PATTERN.fullmatch(version) if version else None
        if not match:
            raise VersionParseError(version)
        return cls(
            major=int(match.group("major")),
            minor=int(match.group("minor")),
            patch=int(match.group("patch")),
            prerelease=match.group("prerelease"),
            build=match.group("build"),
        )

    def __str__(self) -> str:
        text = f"{self.major}.{self.minor}.{self.patch}"
        if self.prerelease is not None:
            text += f"{self.pre_separator}{self.prerelease}"
        if self.build is not None:
            text += f"+{self.build}"
        return text

    @property
    def release(self) -> tuple[int, int, int]:
        return (self.major, self.minor, self.patch)

    @property
    def is_prerelease(self) -> bool:
        return self.prerelease is not None

    def bump(self, bump: BumpType) -> Version:
        """Return the next version for a bump; prerelease and build are dropped.

        Raises:
            ValueError: If bump is ``BumpType.NONE``.
        """
        if bump == BumpType.MAJOR:
            return Version(self.major + 1, 0, 0)
        if bump == BumpType.MINOR:
            return Version(self.major, self.minor + 1, 0)
        if bump == BumpType.PATCH:
            return Version(self.major, self.minor, self.patch + 1)
        raise ValueError("Cannot bump a version with BumpType.NONE")

    def without_prerelease(self) -> Version:
        return replace(self, prerelease=None, build=None, pre_separator="-")

    def _precedence_key(self) -> tuple:
        # Build metadata never affects precedence; a release outranks its prereleases.
        if self.prerelease is None:
            return (*self.release, 1, ())
        identifiers = []
        for part in re.split(r"[.\-]", self.prerelease):
            if part.isdigit():
                identifiers.append((0, int(part), ""))
            else:
                identifiers.append((1, 0, part))
        return (*self.release, 0, tuple(identifiers))

    def __lt__(self, other: object) -> bool:
        if not isinstance(other, Version):
            return NotImplemented
        return self._precedence_key() < other._precedence_key()

    def __le__(self, other: object) -> bool:
        if not isinstance(other, Version):
            return NotImplemented
        return self._precedence_key() <= other._precedence_key()

    def __gt__(self, other: object) -> bool:
        if not isinstance(other, Version):
            return NotImplemented
        return self._precedence_key() > other._precedence_key()

    def __ge__(self, other: object) -> bool:
        if not isinstance(other, Version):
            return NotImplemented
        return self._precedence_key() >= other._precedence_key()

    def same_precedence(self, other: Version) -> bool:
        return self._precedence_key() == other._precedence_key()


PEP440_PATTERN = re.compile(
    r"^(?P<major>0|[1-9]\d*)\.(?P<minor>0|[1-9]\d*)\.(?P<patch>0|[1-9]\d*)"
    r"(?:(?P<sep>[-._]?)(?P<prerelease>(?:a|b|rc|c|alpha|beta|pre|preview|post|dev)"
    r"[-._]?\d*(?:[-._]?(?:post|dev)[-._]?\d*)*))?"
    r"(?:\+(?P<build>[0-9A-Za-z]+(?:[-._][0-9A-Za-z]+)*))?$",
    re.IGNORECASE,
)


class VersionScheme:
    """Version grammar of one ecosystem: a parse/format pair plus bumping."""

    name = "semver"

    def parse(self, version: str) -> Version:
        return Version.parse(version)

    def format(self, version: Version) -> str:
        return str(version)

    def next_version(self, version: str, bump: BumpType) -> str:
        return self.format(self.parse(version).bump(bump))


class Pep440Scheme(VersionScheme):
    """Semver-shaped versions that also accept PEP 440 suffix spellings.

    ``1.2.3rc1``, ``1.2.3.post1`` and ``1.2.3-beta.1`` are all accepted;
    the exact suffix spelling is preserved on format.
    """

    name = "pep440-semver"

    def parse(self, version: str) -> Version:
        match = PEP440_PATTERN.fullmatch(version) if version else None
        if not match:
            raise VersionParseError(version)
        prerelease = match.group("prerelease")
        return Version(
            major=int(match.group("major")),
            minor=int(match.group("minor")),
            patch=int(match.group("patch")),
            prerelease=prerelease,
            build=match.group("build"),
            pre_separator=(match.group("sep") or "") if prerelease else "-",
        )


SEMVER = VersionScheme()
PEP440 = Pep440Scheme()


def next_version(version: str, bump: BumpType, scheme: VersionScheme = SEMVER) -> str:
    """Compute the next version string.

    Examples:
        next_version("1.2.3", BumpType.PATCH) -> "1.2.4"
        next_version("1.2.3", BumpType.MINOR) -> "1.3.0"
        next_version("1.2.3-beta.1", BumpType.MAJOR) -> "2.0.0"

    Raises:
        VersionParseError: If version does not match the scheme grammar.
    """
    return scheme.next_version(version, bump)


def split_version(
    version: str, scheme: VersionScheme = SEMVER
) -> tuple[int, int, int, str | None]:
    """Split a version into ``(major, minor, patch, prerelease)``."""
    parsed = scheme.parse(version)
    return (parsed.major, parsed.minor, parsed.patch, parsed.prerelease)


def split_constraint_prefix(constraint: str) -> tuple[str | None, str]:
    """Split the operator prefix off a constraint.

    Examples:
        "^1.0.0" -> ("^", "1.0.0")
        ">=1.0.0+build1" -> (">=", "1.0.0+build1")
        "1.0.0" -> (None, "1.0.0")
        "latest" -> (None, "latest")
    """
    for index, char in enumerate(constraint):
        if char.isdigit():
            if index == 0:
                return None, constraint
            return constraint[:index], constraint[index:]
    return None, constraint
