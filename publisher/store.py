"""Post and history persistence.

DocumentStore / HistoryStore are the interfaces the orchestrator talks to.
The file-backed implementations keep one directory per project:

    {projects_dir}/{project_id}/settings.yaml
    {projects_dir}/{project_id}/posts.json
    {projects_dir}/{project_id}/history.json
"""

from __future__ import annotations

import abc
import asyncio
import json
import logging
from pathlib import Path
from typing import Any

import aiofiles
import yaml

from posts.models import HistorySnapshot, Post, ProjectSettings
from publisher.events import PublishEventHandler

logger = logging.getLogger(__name__)


class DocumentStore(abc.ABC):
    """Abstract interface so we can swap storage backends later."""

    @abc.abstractmethod
    async def get_settings(self, project_id: str) -> ProjectSettings:
        """Return the project's blog settings."""

    @abc.abstractmethod
    async def slug_is_available(self, project_id: str, slug: str) -> bool:
        """Check whether no post in the project uses *slug*."""

    @abc.abstractmethod
    async def get(self, project_id: str, post_id: str) -> Post | None:
        """Fetch a post by id."""

    @abc.abstractmethod
    async def get_by_slug(self, project_id: str, slug: str) -> Post | None:
        """Fetch a post by slug."""

    @abc.abstractmethod
    async def list_posts(self, project_id: str) -> list[Post]:
        """Return every post of the project."""

    @abc.abstractmethod
    async def create(self, post: Post) -> None:
        """Persist a new post."""

    @abc.abstractmethod
    async def update(self, post: Post) -> None:
        """Persist changes to an existing post."""

    @abc.abstractmethod
    async def fire_publish_event(self, post: Post) -> None:
        """Notify interested parties that *post* went live."""


class HistoryStore(abc.ABC):
    @abc.abstractmethod
    async def create_history(self, project_id: str, entry: HistorySnapshot) -> None:
        """Persist a pre-edit snapshot."""

    @abc.abstractmethod
    async def delete_draft_history(self, project_id: str, post_id: str) -> None:
        """Drop the draft snapshots of a post whose draft was published."""

    @abc.abstractmethod
    async def list_history(self, project_id: str, post_id: str) -> list[HistorySnapshot]:
        """Return a post's snapshots, oldest first."""


# ---------------------------------------------------------------------------
# JSON file helper (shared by the file stores)
# ---------------------------------------------------------------------------

class JsonFile:
    """Thin wrapper around a JSON document holding a single list under *key*."""

    def __init__(self, path: Path, key: str) -> None:
        self.path = path
        self.key = key

    async def load(self) -> list[dict[str, Any]]:
        if not self.path.exists():
            return []
        async with aiofiles.open(self.path, "r", encoding="utf-8") as f:
            data = json.loads(await f.read())
        return list(data.get(self.key, []))

    async def save(self, items: list[dict[str, Any]]) -> None:
        self.path.parent.mkdir(parents=True, exist_ok=True)
        async with aiofiles.open(self.path, "w", encoding="utf-8") as f:
            await f.write(json.dumps({self.key: items}, indent=2, default=str))


# ---------------------------------------------------------------------------
# File-backed stores (default)
# ---------------------------------------------------------------------------

class FileDocumentStore(DocumentStore):
    """Keeps each project's posts in ``posts.json`` next to ``settings.yaml``."""

    def __init__(
        self,
        projects_dir: Path,
        handlers: list[PublishEventHandler] | None = None,
    ) -> None:
        self.projects_dir = projects_dir
        self.handlers = list(handlers or [])
        self._lock = asyncio.Lock()

    def _posts_file(self, project_id: str) -> JsonFile:
        return JsonFile(self.projects_dir / project_id / "posts.json", "posts")

    async def get_settings(self, project_id: str) -> ProjectSettings:
        path = self.projects_dir / project_id / "settings.yaml"
        if not path.exists():
            logger.debug("No settings file for project %s, using defaults", project_id)
            return ProjectSettings(project_id=project_id)
        async with aiofiles.open(path, "r", encoding="utf-8") as f:
            data = yaml.safe_load(await f.read()) or {}
        return ProjectSettings.from_dict(project_id, data)

    async def list_posts(self, project_id: str) -> list[Post]:
        items = await self._posts_file(project_id).load()
        return [Post.from_dict(item) for item in items]

    async def get(self, project_id: str, post_id: str) -> Post | None:
        for post in await self.list_posts(project_id):
            if post.id == post_id:
                return post
        return None

    async def get_by_slug(self, project_id: str, slug: str) -> Post | None:
        for post in await self.list_posts(project_id):
            if post.slug == slug:
                return post
        return None

    async def slug_is_available(self, project_id: str, slug: str) -> bool:
        return await self.get_by_slug(project_id, slug) is None

    async def create(self, post: Post) -> None:
        async with self._lock:
            store = self._posts_file(post.project_id)
            items = await store.load()
            if any(item["slug"] == post.slug for item in items):
                raise ValueError(
                    f"Slug '{post.slug}' already exists in project {post.project_id}"
                )
            items.append(post.to_dict())
            await store.save(items)
        logger.info("Created post %s (%s)", post.slug, post.id)

    async def update(self, post: Post) -> None:
        async with self._lock:
            store = self._posts_file(post.project_id)
            items = await store.load()
            for i, item in enumerate(items):
                if item["id"] == post.id:
                    items[i] = post.to_dict()
                    break
            else:
                raise KeyError(post.id)
            await store.save(items)
        logger.info("Updated post %s (%s)", post.slug, post.id)

    async def fire_publish_event(self, post: Post) -> None:
        settings = await self.get_settings(post.project_id)
        for handler in self.handlers:
            await handler.handle(post, settings)
        logger.info(
            "Publish event for %s delivered to %d handler(s)",
            post.slug,
            len(self.handlers),
        )


class FileHistoryStore(HistoryStore):
    """Keeps each project's snapshots in ``history.json``."""

    def __init__(self, projects_dir: Path) -> None:
        self.projects_dir = projects_dir
        self._lock = asyncio.Lock()

    def _history_file(self, project_id: str) -> JsonFile:
        return JsonFile(self.projects_dir / project_id / "history.json", "history")

    async def create_history(self, project_id: str, entry: HistorySnapshot) -> None:
        async with self._lock:
            store = self._history_file(project_id)
            items = await store.load()
            items.append(entry.to_dict())
            await store.save(items)
        logger.debug("Archived %s of post %s", entry.id, entry.content_id)

    async def delete_draft_history(self, project_id: str, post_id: str) -> None:
        async with self._lock:
            store = self._history_file(project_id)
            items = await store.load()
            kept = [
                item
                for item in items
                if not (item["content_id"] == post_id and item.get("is_draft_history"))
            ]
            if len(kept) != len(items):
                await store.save(kept)
                logger.debug(
                    "Removed %d draft history entries of post %s",
                    len(items) - len(kept),
                    post_id,
                )

    async def list_history(self, project_id: str, post_id: str) -> list[HistorySnapshot]:
        items = await self._history_file(project_id).load()
        return [
            HistorySnapshot.from_dict(item)
            for item in items
            if item["content_id"] == post_id
        ]
