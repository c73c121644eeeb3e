"""Small text helpers shared by the source list and the read-side."""

import re

_WHITESPACE = re.compile(r"\s+")


def slugify(name: str) -> str:
    """Lower-case a human-readable name and turn spaces into hyphens.

    Examples:
        >>> slugify("Premier League")
        'premier-league'
        >>> slugify("  Serie   A ")
        'serie-a'
    """
    return _WHITESPACE.sub("-", (name or "").strip().lower())


def normalize_marker(text: str) -> str:
    """Canonical form of a status marker: stripped, upper-case, no trailing dot."""
    return (text or "").strip().upper().rstrip(".")
