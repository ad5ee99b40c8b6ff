"""Interactive terminal UI components."""

from __future__ import annotations

from collections.abc import Callable
from typing import Any

import questionary
from questionary import Style

from polybump.versioning.semver import BumpType
from polybump.workspace.package import Package


def get_style() -> Style:
    """Provide the Style used for interactive prompts."""
    return Style(
        [
            ("qmark", "fg:#673ab7 bold"),
            ("question", "bold"),
            ("answer", "fg:#f44336 bold"),
            ("pointer", "fg:#673ab7 bold"),
            ("highlighted", "fg:#673ab7 bold"),
            ("selected", "fg:#cc5454"),
            ("separator", "fg:#cc5454"),
            ("instruction", "fg:#888888"),
        ]
    )


def _safe_ask(fn: Callable[..., Any], *args: Any, default: Any = None, **kwargs: Any) -> Any:
    """Invoke a questionary prompt; cancellation yields ``default``.

    Args:
        fn: Prompt factory such as ``questionary.select``.
        *args: Positional arguments forwarded to ``fn``.
        default: Value returned when the user cancels (Ctrl-C) or answers nothing.
        **kwargs: Keyword arguments forwarded to ``fn``.
    """
    try:
        result = fn(*args, **kwargs).ask()
    except KeyboardInterrupt:
        return default
    return result if result is not None else default


def select_packages(packages: list[Package]) -> list[Package]:
    """Interactively select packages.

    Args:
        packages: List of available packages.

    Returns:
        List of selected packages (empty list if cancelled or none selected).
    """
    if not packages:
        return []

    choices = [
        questionary.Choice(
            title=f"{p.id} ({p.display_name} {p.version or '?'})",
            value=p,
            checked=False,
        )
        for p in sorted(packages, key=lambda p: p.id)
    ]

    selected = _safe_ask(
        questionary.checkbox,
        "Which packages changed?",
        choices=choices,
        style=get_style(),
        instruction="(Space to select, Enter to confirm)",
        default=[],
    )
    return selected or []


def select_bump() -> BumpType | None:
    """Interactively select a bump severity."""
    choices = [
        questionary.Choice("patch (bug fixes)", value=BumpType.PATCH),
        questionary.Choice("minor (new features)", value=BumpType.MINOR),
        questionary.Choice("major (breaking changes)", value=BumpType.MAJOR),
    ]
    return _safe_ask(
        questionary.select,
        "What kind of change is this?",
        choices=choices,
        style=get_style(),
        use_indicator=True,
        default=None,
    )


def ask_summary() -> str | None:
    """Prompt for the changelog summary."""
    summary = _safe_ask(
        questionary.text,
        "Summary:",
        validate=lambda text: bool(text.strip()) or "A summary is required",
        style=get_style(),
        default=None,
    )
    return summary.strip() if summary else None
