"""User-facing message lookup with optional YAML translation catalogs.

Keys are the English text itself, so a missing translation degrades to the
key.  A catalog file is a flat YAML mapping of key to translated text.
"""

from __future__ import annotations

import logging
from pathlib import Path

import yaml

logger = logging.getLogger(__name__)

SLUG_IN_USE = "The page slug was not changed because the requested slug is already in use."
CONTENT_REQUIRED = "Content is required to publish."
AUTHOR_REQUIRED = "Author is required to publish."
UPDATE_FAILED = "Updating a post failed. An error has been logged."


class Messages:
    def __init__(self, catalog: dict[str, str] | None = None) -> None:
        self._catalog = dict(catalog or {})

    def __getitem__(self, key: str) -> str:
        return self._catalog.get(key, key)

    @classmethod
    def from_file(cls, path: Path | None) -> Messages:
        """Load a catalog from *path*; a missing file yields the identity lookup."""
        if path is None or not path.exists():
            return cls()
        data = yaml.safe_load(path.read_text(encoding="utf-8")) or {}
        if not isinstance(data, dict):
            logger.warning("Ignoring message catalog %s: not a mapping", path)
            return cls()
        return cls({str(k): str(v) for k, v in data.items()})
