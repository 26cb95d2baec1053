"""Blog post model, normalization helpers, and history snapshots."""

from posts.history import restore, snapshot
from posts.models import (
    CommandResult,
    EditCommand,
    HistorySnapshot,
    Post,
    ProjectSettings,
    SaveMode,
    TeaserMode,
    TeaserTruncationMode,
    ValidationState,
)
from posts.normalize import normalize_categories, normalize_slug

__all__ = [
    "CommandResult",
    "EditCommand",
    "HistorySnapshot",
    "Post",
    "ProjectSettings",
    "SaveMode",
    "TeaserMode",
    "TeaserTruncationMode",
    "ValidationState",
    "normalize_categories",
    "normalize_slug",
    "restore",
    "snapshot",
]
