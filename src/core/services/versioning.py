"""
Domain — Minimum-version satisfaction (pure).

Dot-separated integer versions compared field by field. No I/O,
no subprocess.
"""

from __future__ import annotations

import re
from enum import Enum

from src.core.errors import InvalidVersionError

_FIELD = re.compile(r"[0-9]+")


class VersionComparison(str, Enum):
    LESS = "less"
    GREATER_OR_EQUAL = "greater_or_equal"


def parse_version(version: str) -> tuple[int, ...]:
    """Split ``"1.21.5"`` into ``(1, 21, 5)``.

    Raises:
        InvalidVersionError: If the string is empty or any field is not
            a run of digits (``"1.21.x"``, ``"1..2"``, ``"1.2-beta"``).
    """
    if not isinstance(version, str) or not version.strip():
        raise InvalidVersionError(f"Empty version string: {version!r}")

    fields = version.strip().split(".")
    for field in fields:
        if not _FIELD.fullmatch(field):
            raise InvalidVersionError(
                f"Invalid version {version!r}: field {field!r} is not an integer"
            )
    return tuple(int(f) for f in fields)


def compare_versions(current: str, required: str) -> VersionComparison:
    """Answer "does ``current`` satisfy the minimum ``required``?".

    The shorter version is padded with zero fields; the first unequal
    field decides. All-equal means GREATER_OR_EQUAL.

    Examples::

        compare_versions("1.21.4", "1.21.5")  -> LESS
        compare_versions("2", "1.99.99")      -> GREATER_OR_EQUAL
    """
    cur = parse_version(current)
    req = parse_version(required)

    width = max(len(cur), len(req))
    cur += (0,) * (width - len(cur))
    req += (0,) * (width - len(req))

    for a, b in zip(cur, req):
        if a < b:
            return VersionComparison.LESS
        if a > b:
            return VersionComparison.GREATER_OR_EQUAL
    return VersionComparison.GREATER_OR_EQUAL


def satisfies_minimum(current: str, required: str) -> bool:
    """True if ``current`` is not less than ``required``."""
    return compare_versions(current, required) is VersionComparison.GREATER_OR_EQUAL


def version_in_range(version: str, minimum: str, maximum: str) -> bool:
    """Inclusive range check built on the minimum-version rule."""
    return satisfies_minimum(version, minimum) and satisfies_minimum(maximum, version)
