"""Normalization of author-supplied slugs and category lists."""

from __future__ import annotations

import re
import unicodedata

_NON_SLUG = re.compile(r"[^a-z0-9]+")


def normalize_slug(text: str | None) -> str:
    """Turn arbitrary title or slug text into a URL-safe slug.

    Accented letters are folded to ASCII, everything outside ``[a-z0-9]`` is
    collapsed into single hyphens, and leading/trailing hyphens are trimmed.
    The result is stable: normalizing a slug again returns it unchanged.
    """
    if not text:
        return ""
    folded = unicodedata.normalize("NFKD", text)
    folded = "".join(ch for ch in folded if not unicodedata.combining(ch))
    slug = _NON_SLUG.sub("-", folded.lower())
    return slug.strip("-")


def normalize_categories(raw: str | None, force_lower_case: bool = False) -> list[str]:
    """Parse a comma-delimited category string into an ordered, unique list."""
    if not raw:
        return []

    categories: list[str] = []
    seen: set[str] = set()
    for token in raw.split(","):
        name = token.strip()
        if not name or name == ",":
            continue
        if force_lower_case:
            name = name.lower()
        if name in seen:
            continue
        seen.add(name)
        categories.append(name)
    return categories
