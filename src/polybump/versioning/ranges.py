"""Version range evaluation for semver-style dependency constraints.

npm, Cargo and pub all build their constraint languages out of the same
comparators (``>=1.2.0``, ``<2.0.0``...) plus shorthand operators (caret,
tilde, x-ranges). Each grammar is parsed here into a disjunction of
comparator sets::

    "^1.2.0 || >=3"  ->  [[>=1.2.0, <2.0.0], [>=3.0.0]]

An empty comparator set matches every version.
"""

from __future__ import annotations

import re
from dataclasses import dataclass

from polybump.versioning.semver import Version


class RangeParseError(ValueError):
    """A constraint is not a range this module understands."""


@dataclass(frozen=True)
class Comparator:
    """A single ``<op> <version>`` test."""

    op: str
    version: Version

    def test(self, version: Version) -> bool:
        if self.op == "<":
            return version < self.version
        if self.op == "<=":
            return version <= self.version
        if self.op == ">":
            return version > self.version
        if self.op == ">=":
            return version >= self.version
        return version.same_precedence(self.version)

    def __str__(self) -> str:
        return f"{self.op}{self.version}"


ComparatorSet = list[Comparator]
Range = list[ComparatorSet]

_PARTIAL = re.compile(
    r"[vV]?(?P<major>\d+|[xX*])"
    r"(?:\.(?P<minor>\d+|[xX*]))?"
    r"(?:\.(?P<patch>\d+|[xX*]))?"
    r"(?:-(?P<pre>[0-9A-Za-z-]+(?:\.[0-9A-Za-z-]+)*))?"
    r"(?:\+(?P<build>[0-9A-Za-z-]+(?:\.[0-9A-Za-z-]+)*))?"
)
_TOKEN = re.compile(r"(?P<op><=|>=|<|>|=|\^|~)?(?P<version>.+)")
_OP_SPACING = re.compile(r"(<=|>=|<|>|=|\^|~)\s+")

ANY: Range = [[]]


def _component(value: str | None) -> int | None:
    if value is None or value in ("x", "X", "*"):
        return None
    return int(value)


def _parse_partial(text: str) -> tuple[int | None, int | None, int | None, str | None]:
    match = _PARTIAL.fullmatch(text)
    if not match:
        raise RangeParseError(f"Invalid version in range: '{text}'")
    major = _component(match.group("major"))
    minor = _component(match.group("minor")) if major is not None else None
    patch = _component(match.group("patch")) if minor is not None else None
    pre = match.group("pre") if patch is not None else None
    return major, minor, patch, pre


def _caret(
    major: int | None, minor: int | None, patch: int | None, pre: str | None
) -> ComparatorSet:
    if major is None:
        return []
    lower = Comparator(">=", Version(major, minor or 0, patch or 0, pre))
    if major > 0 or minor is None:
        upper = Version(major + 1, 0, 0)
    elif minor > 0 or patch is None:
        upper = Version(0, minor + 1, 0)
    else:
        upper = Version(0, 0, patch + 1)
    return [lower, Comparator("<", upper)]


def _tilde(
    major: int | None, minor: int | None, patch: int | None, pre: str | None
) -> ComparatorSet:
    if major is None:
        return []
    lower = Comparator(">=", Version(major, minor or 0, patch or 0, pre))
    if minor is None:
        return [lower, Comparator("<", Version(major + 1, 0, 0))]
    return [lower, Comparator("<", Version(major, minor + 1, 0))]


def _x_range(
    major: int | None, minor: int | None, patch: int | None, pre: str | None
) -> ComparatorSet:
    if major is None:
        return []
    if minor is None:
        return [
            Comparator(">=", Version(major, 0, 0)),
            Comparator("<", Version(major + 1, 0, 0)),
        ]
    if patch is None:
        return [
            Comparator(">=", Version(major, minor, 0)),
            Comparator("<", Version(major, minor + 1, 0)),
        ]
    return [Comparator("=", Version(major, minor, patch, pre))]


def _comparison(
    op: str, major: int | None, minor: int | None, patch: int | None, pre: str | None
) -> ComparatorSet:
    if major is None:
        # ">=*" matches everything; "<*" matches nothing.
        return [] if op in (">=", "<=") else [Comparator("<", Version(0, 0, 0, "0"))]
    if patch is not None:
        return [Comparator(op, Version(major, minor or 0, patch, pre))]
    # Partial operands compare against the whole x-range they denote.
    if minor is None:
        floor, ceiling = Version(major, 0, 0), Version(major + 1, 0, 0)
    else:
        floor, ceiling = Version(major, minor, 0), Version(major, minor + 1, 0)
    if op == ">=":
        return [Comparator(">=", floor)]
    if op == ">":
        return [Comparator(">=", ceiling)]
    if op == "<":
        return [Comparator("<", floor)]
    return [Comparator("<", ceiling)]


def expand_comparator(op: str | None, text: str, default_op: str = "=") -> ComparatorSet:
    """Expand one operator/version token into primitive comparators."""
    parts = _parse_partial(text)
    op = op or default_op
    if op == "^":
        return _caret(*parts)
    if op == "~":
        return _tilde(*parts)
    if op == "=":
        return _x_range(*parts)
    return _comparison(op, *parts)


def _parse_tokens(text: str, default_op: str, separator: str | None = None) -> ComparatorSet:
    text = _OP_SPACING.sub(r"\1", text.strip())
    tokens = text.split(separator) if separator else text.split()
    comparators: ComparatorSet = []
    for token in tokens:
        token = token.strip()
        if not token:
            if separator:
                raise RangeParseError(f"Empty comparator in '{text}'")
            continue
        match = _TOKEN.fullmatch(token)
        if not match:
            raise RangeParseError(f"Invalid comparator '{token}'")
        comparators.extend(
            expand_comparator(match.group("op"), match.group("version").strip(), default_op)
        )
    return comparators


def _parse_hyphen(lower: str, upper: str) -> ComparatorSet:
    low_major, low_minor, low_patch, low_pre = _parse_partial(lower)
    comparators: ComparatorSet = []
    if low_major is not None:
        comparators.append(
            Comparator(">=", Version(low_major, low_minor or 0, low_patch or 0, low_pre))
        )
    comparators.extend(_comparison("<=", *_parse_partial(upper)))
    return comparators


_HYPHEN = re.compile(r"(\S+)\s+-\s+(\S+)")


def parse_npm_range(text: str) -> Range:
    """Parse an npm semver range (``^1.2.0``, ``1.x || >=3``, ``1.0.0 - 2.0.0``).

    Raises:
        RangeParseError: If the text is not a semver range.
    """
    text = text.strip()
    if text in ("", "*", "latest", "x", "X"):
        return ANY
    alternatives: Range = []
    for alternative in text.split("||"):
        alternative = alternative.strip()
        hyphen = _HYPHEN.fullmatch(alternative)
        if hyphen:
            alternatives.append(_parse_hyphen(hyphen.group(1), hyphen.group(2)))
        else:
            alternatives.append(_parse_tokens(alternative, default_op="="))
    return alternatives


def parse_cargo_requirement(text: str) -> Range:
    """Parse a Cargo version requirement; a bare version means caret.

    Raises:
        RangeParseError: If the text is not a valid requirement.
    """
    text = text.strip()
    if text in ("", "*"):
        return ANY
    return [_parse_tokens(text, default_op="^", separator=",")]


def parse_dart_constraint(text: str) -> Range:
    """Parse a pub version constraint (``^1.2.0``, ``>=1.0.0 <2.0.0``, ``any``).

    Raises:
        RangeParseError: If the text is not a valid constraint.
    """
    text = text.strip()
    if text in ("", "any"):
        return ANY
    return [_parse_tokens(text, default_op="=")]


def satisfies(range_: Range, version: Version) -> bool:
    """Check whether any comparator set of a range admits the version."""
    return any(all(c.test(version) for c in comparators) for comparators in range_)


_SIMPLE_CONSTRAINT = re.compile(
    r"(?P<prefix>\^|~|=|>=|)\s*(?P<version>[vV]?\d+(?:\.\d+){0,2}(?:[-+][0-9A-Za-z.+-]+)?)"
)


def rewrite_range(old: str, new_version: Version, default_prefix: str = "^") -> str:
    """Rewrite a constraint so it references a new version.

    Single-comparator constraints keep their operator (``~1.0.0`` ->
    ``~2.0.0``, bare ``1.0`` -> ``2.0.0``); anything more complex is
    replaced by ``default_prefix`` + the new version.
    """
    leading = old[: len(old) - len(old.lstrip())]
    trailing = old[len(old.rstrip()) :]
    match = _SIMPLE_CONSTRAINT.fullmatch(old.strip())
    prefix = match.group("prefix") if match else default_prefix
    return f"{leading}{prefix}{new_version}{trailing}"


_NUGET_INTERVAL = re.compile(r"(?P<open>[\[(])(?P<body>[^\])]*)(?P<close>[\])])")


def _nuget_version(text: str) -> str:
    # NuGet treats a missing component as zero rather than as a wildcard.
    release, sep, rest = text.partition("-")
    parts = release.split(".")
    if "*" not in release:
        parts += ["0"] * (3 - len(parts))
    return ".".join(parts) + sep + rest


def parse_nuget_range(text: str) -> Range:
    """Parse a NuGet version range.

    A bare version is a minimum (``1.0`` means ``>=1.0.0``); interval
    notation gives explicit bounds (``[1.0,2.0)``, ``(,1.0]``, ``[1.0]``).
    A ``*`` in a bare version floats like an npm x-range.

    Raises:
        RangeParseError: If the text is not a valid range.
    """
    text = text.strip()
    if text in ("", "*"):
        return ANY
    match = _NUGET_INTERVAL.fullmatch(text)
    if match is None:
        if "*" in text:
            return [expand_comparator("=", text)]
        return [expand_comparator(">=", _nuget_version(text))]

    bounds = [bound.strip() for bound in match.group("body").split(",")]
    if len(bounds) == 1:
        if match.group("open") != "[" or match.group("close") != "]" or not bounds[0]:
            raise RangeParseError(f"Invalid exact NuGet range '{text}'")
        return [expand_comparator("=", _nuget_version(bounds[0]))]
    if len(bounds) != 2:
        raise RangeParseError(f"Invalid NuGet range '{text}'")

    lower, upper = bounds
    comparators: ComparatorSet = []
    if lower:
        comparators += expand_comparator(
            ">=" if match.group("open") == "[" else ">", _nuget_version(lower)
        )
    if upper:
        comparators += expand_comparator(
            "<=" if match.group("close") == "]" else "<", _nuget_version(upper)
        )
    return [comparators]
