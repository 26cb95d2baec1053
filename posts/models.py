"""Blog post data model: posts, history snapshots, edit commands, results."""

from __future__ import annotations

import uuid
from dataclasses import asdict, dataclass, field, fields
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Generic, TypeVar

T = TypeVar("T")

# Post fields that hold datetimes and need ISO-8601 (de)serialization
_DATETIME_FIELDS = ("pub_date", "draft_pub_date", "created_utc", "last_modified")


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


def _new_id() -> str:
    return uuid.uuid4().hex


def _dt_to_str(value: datetime | None) -> str | None:
    return value.isoformat() if value is not None else None


def _dt_from_str(value: Any) -> datetime | None:
    if value is None or value == "":
        return None
    if isinstance(value, datetime):
        dt = value
    else:
        dt = datetime.fromisoformat(str(value))
    if dt.tzinfo is None:
        dt = dt.replace(tzinfo=timezone.utc)
    return dt


class SaveMode(str, Enum):
    """What the author wants to happen to the edit."""

    SAVE_DRAFT = "draft"
    PUBLISH_LATER = "later"
    PUBLISH_NOW = "now"


class TeaserMode(str, Enum):
    OFF = "off"
    FEEDS_ONLY = "feeds_only"
    FEEDS_AND_LISTS = "feeds_and_lists"


class TeaserTruncationMode(str, Enum):
    LENGTH = "length"  # characters
    WORD = "word"
    SENTENCE = "sentence"


@dataclass
class Post:
    """A blog post with a live (published) body and an optional pending draft."""

    project_id: str
    title: str = ""
    slug: str = ""
    id: str = field(default_factory=_new_id)
    meta_description: str = ""
    categories: list[str] = field(default_factory=list)
    content: str = ""
    draft_content: str | None = None
    author: str = ""
    draft_author: str | None = None
    pub_date: datetime | None = None
    draft_pub_date: datetime | None = None
    is_published: bool = False
    auto_teaser: str = ""
    teaser_override: str = ""
    suppress_teaser: bool = False
    correlation_key: str = ""
    image_url: str = ""
    thumbnail_url: str = ""
    is_featured: bool = False
    content_type: str = "html"
    created_by: str = ""
    created_utc: datetime = field(default_factory=_utcnow)
    last_modified_by: str = ""
    last_modified: datetime = field(default_factory=_utcnow)

    @property
    def has_draft(self) -> bool:
        return bool(self.draft_content)

    def normalize_datetimes(self) -> None:
        """Treat naive datetimes as UTC so they compare with aware clocks."""
        for name in _DATETIME_FIELDS:
            setattr(self, name, _dt_from_str(getattr(self, name)))

    def to_dict(self) -> dict[str, Any]:
        data = asdict(self)
        for name in _DATETIME_FIELDS:
            data[name] = _dt_to_str(data[name])
        return data

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> Post:
        known = {f.name for f in fields(cls)}
        kwargs = {k: v for k, v in data.items() if k in known}
        for name in _DATETIME_FIELDS:
            if name in kwargs:
                kwargs[name] = _dt_from_str(kwargs[name])
        # created_utc / last_modified are non-optional
        for name in ("created_utc", "last_modified"):
            if kwargs.get(name) is None:
                kwargs.pop(name, None)
        kwargs["categories"] = list(kwargs.get("categories") or [])
        return cls(**kwargs)


@dataclass(frozen=True)
class HistorySnapshot:
    """Immutable copy of a post's editable fields taken before an edit."""

    content_id: str
    project_id: str
    title: str
    slug: str
    meta_description: str
    categories: tuple[str, ...]
    content: str
    draft_content: str | None
    author: str
    draft_author: str | None
    pub_date: datetime | None
    draft_pub_date: datetime | None
    is_published: bool
    teaser_override: str
    suppress_teaser: bool
    correlation_key: str
    image_url: str
    thumbnail_url: str
    is_featured: bool
    content_type: str
    archived_by: str
    archived_utc: datetime
    is_draft_history: bool
    id: str = field(default_factory=_new_id)

    def to_dict(self) -> dict[str, Any]:
        data = asdict(self)
        data["categories"] = list(self.categories)
        for name in ("pub_date", "draft_pub_date", "archived_utc"):
            data[name] = _dt_to_str(data[name])
        return data

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> HistorySnapshot:
        known = {f.name for f in fields(cls)}
        kwargs = {k: v for k, v in data.items() if k in known}
        kwargs["categories"] = tuple(kwargs.get("categories") or ())
        for name in ("pub_date", "draft_pub_date", "archived_utc"):
            kwargs[name] = _dt_from_str(kwargs.get(name))
        return cls(**kwargs)


@dataclass
class EditCommand:
    """One author edit as submitted by the transport layer."""

    title: str
    content: str = ""
    author: str = ""
    save_mode: SaveMode = SaveMode.SAVE_DRAFT
    slug: str | None = None
    meta_description: str = ""
    categories: str = ""  # comma-delimited, as typed
    new_pub_date: datetime | None = None  # user-local wall time
    image_url: str = ""
    thumbnail_url: str = ""
    is_featured: bool = False
    content_type: str = "html"
    teaser_override: str = ""
    suppress_teaser: bool = False
    correlation_key: str = ""


@dataclass(frozen=True)
class ProjectSettings:
    project_id: str
    title: str = ""
    base_url: str = ""
    teaser_mode: TeaserMode = TeaserMode.OFF
    teaser_truncation_mode: TeaserTruncationMode = TeaserTruncationMode.WORD
    teaser_truncation_length: int = 20
    language_code: str = "en"

    @classmethod
    def from_dict(cls, project_id: str, data: dict[str, Any]) -> ProjectSettings:
        return cls(
            project_id=project_id,
            title=str(data.get("title", "")),
            base_url=str(data.get("base_url", "")),
            teaser_mode=TeaserMode(data.get("teaser_mode", TeaserMode.OFF.value)),
            teaser_truncation_mode=TeaserTruncationMode(
                data.get("teaser_truncation_mode", TeaserTruncationMode.WORD.value)
            ),
            teaser_truncation_length=int(data.get("teaser_truncation_length", 20)),
            language_code=str(data.get("language_code", "en")),
        )


class ValidationState:
    """Field-keyed error messages collected while handling one request."""

    def __init__(self) -> None:
        self._errors: dict[str, list[str]] = {}

    def add(self, key: str, message: str) -> None:
        self._errors.setdefault(key, []).append(message)

    def errors_for(self, key: str) -> list[str]:
        return list(self._errors.get(key, []))

    @property
    def is_valid(self) -> bool:
        return not self._errors

    @property
    def messages(self) -> list[str]:
        return [msg for msgs in self._errors.values() for msg in msgs]

    def as_dict(self) -> dict[str, list[str]]:
        return {k: list(v) for k, v in self._errors.items()}

    def __contains__(self, key: object) -> bool:
        return key in self._errors

    def __len__(self) -> int:
        return len(self.messages)


@dataclass
class CommandResult(Generic[T]):
    """Outcome of a command: the value (may be set even on failure) and errors."""

    value: T | None
    succeeded: bool
    errors: list[str] = field(default_factory=list)
    field_errors: dict[str, list[str]] = field(default_factory=dict)
