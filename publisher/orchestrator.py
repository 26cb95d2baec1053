"""Create-or-update workflow for blog posts.

One call to :meth:`PublishOrchestrator.handle` turns an :class:`EditCommand`
into persisted state:

    validate -> merge fields -> save-mode transition -> teaser
             -> history snapshot -> post -> publish event

Nothing is changed or persisted when validation fails; the post is still
returned alongside the field errors.  Unexpected collaborator failures are
logged and reported as a single generic message with no post.
"""

from __future__ import annotations

import copy
import logging
import uuid
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Callable

from posts.history import snapshot
from posts.models import (
    CommandResult,
    EditCommand,
    HistorySnapshot,
    Post,
    ProjectSettings,
    SaveMode,
    TeaserMode,
    ValidationState,
)
from posts.normalize import normalize_categories, normalize_slug
from publisher import messages as msg
from publisher.formatter import MarkdownRenderer
from publisher.messages import Messages
from publisher.store import DocumentStore, HistoryStore
from publisher.teaser import TeaserGenerator
from publisher.timezones import TimeZoneResolver, convert_to_utc

logger = logging.getLogger(__name__)


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


@dataclass
class PostEdit:
    """The post being edited, and the snapshot to archive if it already existed."""

    post: Post
    history: HistorySnapshot | None = None

    @property
    def is_new(self) -> bool:
        return self.history is None

    @classmethod
    def new(
        cls, command: EditCommand, project_id: str, acting_user: str, now: datetime
    ) -> PostEdit:
        post = Post(
            project_id=project_id,
            title=command.title,
            meta_description=command.meta_description,
            slug=normalize_slug(command.title),
            created_by=acting_user,
            created_utc=now,
            last_modified=now,
        )
        return cls(post=post)

    @classmethod
    def existing(cls, post: Post, acting_user: str, now: datetime) -> PostEdit:
        working = copy.deepcopy(post)
        working.normalize_datetimes()
        return cls(post=working, history=snapshot(working, acting_user, now))


class PublishOrchestrator:
    """Apply author edits to posts and drive the draft / publish lifecycle.

    Parameters
    ----------
    store:
        Post persistence, slug lookups, project settings and publish events.
    history:
        Snapshot persistence.
    force_lower_case_categories:
        Lower-case category names when normalizing them.
    clock:
        Returns the current aware UTC time.
    """

    def __init__(
        self,
        store: DocumentStore,
        history: HistoryStore,
        renderer: MarkdownRenderer | None = None,
        teasers: TeaserGenerator | None = None,
        time_zones: TimeZoneResolver | None = None,
        messages: Messages | None = None,
        force_lower_case_categories: bool = False,
        clock: Callable[[], datetime] | None = None,
    ) -> None:
        self.store = store
        self.history = history
        self.renderer = renderer or MarkdownRenderer()
        self.teasers = teasers or TeaserGenerator()
        self.time_zones = time_zones or TimeZoneResolver()
        self.messages = messages or Messages()
        self.force_lower_case_categories = force_lower_case_categories
        self._clock = clock or _utcnow

    # -- Public API ----------------------------------------------------------

    async def handle(
        self,
        command: EditCommand,
        project_id: str,
        acting_user: str,
        existing: Post | None = None,
    ) -> CommandResult[Post]:
        """Create a post (``existing is None``) or apply *command* to *existing*.

        *existing* itself is never modified; the returned post is a copy.
        Cancelling the awaiting task stops the pipeline where it is, without
        undoing persistence steps that already completed.
        """
        try:
            return await self._handle(command, project_id, acting_user, existing)
        except Exception:
            logger.exception(
                "Saving post %r in project %s failed", command.title, project_id
            )
            return CommandResult(None, False, [self.messages[msg.UPDATE_FAILED]])

    async def publish_due_drafts(
        self, project_id: str, acting_user: str = "scheduler"
    ) -> list[Post]:
        """Publish every scheduled draft whose publish date has arrived.

        Returns the posts that went live.  A failure on one post is logged and
        the remaining posts are still processed.
        """
        settings = await self.store.get_settings(project_id)
        now = self._clock()
        published: list[Post] = []

        for post in await self.store.list_posts(project_id):
            if post.draft_pub_date is None or post.draft_pub_date > now:
                continue
            try:
                await self._publish_draft(post, settings, acting_user, now)
            except Exception:
                logger.exception("Scheduled publish of %s failed", post.slug)
                continue
            published.append(post)

        if published:
            logger.info(
                "Published %d scheduled post(s) in project %s", len(published), project_id
            )
        return published

    # -- Pipeline ------------------------------------------------------------

    async def _handle(
        self,
        command: EditCommand,
        project_id: str,
        acting_user: str,
        existing: Post | None,
    ) -> CommandResult[Post]:
        settings = await self.store.get_settings(project_id)
        now = self._clock()

        if existing is None:
            edit = PostEdit.new(command, project_id, acting_user, now)
        else:
            edit = PostEdit.existing(existing, acting_user, now)
        post = edit.post

        validation = ValidationState()
        new_slug = await self._validate(command, post, project_id, validation)
        if not validation.is_valid:
            logger.info(
                "Rejected edit of %r: %s", post.slug or command.title, validation.as_dict()
            )
            return CommandResult(post, False, validation.messages, validation.as_dict())

        self._merge_fields(post, command, acting_user, now, new_slug)
        should_fire_publish_event = await self._apply_save_mode(post, command, now)

        if settings.teaser_mode != TeaserMode.OFF:
            self._regenerate_teaser(post, settings)

        if edit.history is not None:
            await self.history.create_history(project_id, edit.history)

        if edit.is_new:
            await self.store.create(post)
        else:
            await self.store.update(post)

        if should_fire_publish_event:
            await self.store.fire_publish_event(post)
            await self.history.delete_draft_history(project_id, post.id)

        logger.info(
            "Saved post %s (%s, mode=%s)",
            post.slug,
            "new" if edit.is_new else "existing",
            command.save_mode.value,
        )
        return CommandResult(post, True)

    async def _validate(
        self,
        command: EditCommand,
        post: Post,
        project_id: str,
        validation: ValidationState,
    ) -> str | None:
        """Record field errors and return the slug to assign, if it changes."""
        if command.save_mode == SaveMode.PUBLISH_NOW:
            if not command.content or not command.content.strip():
                validation.add("Content", self.messages[msg.CONTENT_REQUIRED])
            if not command.author or not command.author.strip():
                validation.add("Author", self.messages[msg.AUTHOR_REQUIRED])

        requested = normalize_slug(command.slug)
        if not requested or requested == post.slug:
            return None
        if not await self.store.slug_is_available(project_id, requested):
            validation.add("Slug", self.messages[msg.SLUG_IN_USE])
            return None
        return requested

    def _merge_fields(
        self,
        post: Post,
        command: EditCommand,
        acting_user: str,
        now: datetime,
        new_slug: str | None,
    ) -> None:
        post.title = command.title
        post.correlation_key = command.correlation_key
        post.image_url = command.image_url
        post.thumbnail_url = command.thumbnail_url
        post.is_featured = command.is_featured
        post.content_type = command.content_type
        post.teaser_override = command.teaser_override
        post.suppress_teaser = command.suppress_teaser
        post.last_modified = now
        post.last_modified_by = acting_user
        if new_slug:
            post.slug = new_slug
        post.categories = normalize_categories(
            command.categories, self.force_lower_case_categories
        )

    async def _apply_save_mode(
        self, post: Post, command: EditCommand, now: datetime
    ) -> bool:
        """Apply the draft / schedule / publish transition.

        Returns True when the post went live and the publish event must fire.
        """
        mode = command.save_mode

        if mode == SaveMode.SAVE_DRAFT:
            post.draft_content = command.content
            post.draft_author = command.author
            return False

        if mode == SaveMode.PUBLISH_LATER:
            post.draft_content = command.content
            post.draft_author = command.author
            if command.new_pub_date is not None:
                zone_id = await self.time_zones.resolve_user_time_zone_id()
                post.draft_pub_date = convert_to_utc(command.new_pub_date, zone_id)
            if post.pub_date is None:
                post.is_published = False
            return False

        if mode == SaveMode.PUBLISH_NOW:
            post.content = command.content
            post.author = command.author
            # Publishing now may only pull a scheduled date earlier
            if post.pub_date is None or post.pub_date > now:
                post.pub_date = now
            post.is_published = True
            post.draft_content = None
            post.draft_author = None
            post.draft_pub_date = None
            return True

        raise ValueError(f"Unknown save mode: {mode!r}")

    def _regenerate_teaser(self, post: Post, settings: ProjectSettings) -> None:
        # Always the live body, even when only the draft changed
        if post.content_type == "markdown":
            html = self.renderer.to_html(post.content)
        else:
            html = post.content
        result = self.teasers.generate_teaser(
            settings.teaser_truncation_mode,
            settings.teaser_truncation_length,
            html,
            uuid.uuid4().hex,  # cache key
            post.slug,
            settings.language_code,
            False,  # log_warnings
        )
        post.auto_teaser = result.content

    async def _publish_draft(
        self,
        post: Post,
        settings: ProjectSettings,
        acting_user: str,
        now: datetime,
    ) -> None:
        entry = snapshot(post, acting_user, now)

        if post.draft_content:
            post.content = post.draft_content
        if post.draft_author:
            post.author = post.draft_author
        post.pub_date = post.draft_pub_date
        post.is_published = True
        post.draft_content = None
        post.draft_author = None
        post.draft_pub_date = None
        post.last_modified = now
        post.last_modified_by = acting_user

        if settings.teaser_mode != TeaserMode.OFF:
            self._regenerate_teaser(post, settings)

        await self.history.create_history(post.project_id, entry)
        await self.store.update(post)
        await self.store.fire_publish_event(post)
        await self.history.delete_draft_history(post.project_id, post.id)
        logger.info("Published scheduled draft %s (pub_date=%s)", post.slug, post.pub_date)
