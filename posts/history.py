"""Point-in-time snapshots of posts, taken before an edit is applied."""

from __future__ import annotations

from datetime import datetime, timezone

from posts.models import HistorySnapshot, Post


def snapshot(post: Post, acting_user: str, now: datetime | None = None) -> HistorySnapshot:
    """Capture the editable fields of an existing *post*.

    A snapshot taken while the post has a pending draft is flagged as draft
    history; those entries are dropped once the draft is published.
    """
    return HistorySnapshot(
        content_id=post.id,
        project_id=post.project_id,
        title=post.title,
        slug=post.slug,
        meta_description=post.meta_description,
        categories=tuple(post.categories),
        content=post.content,
        draft_content=post.draft_content,
        author=post.author,
        draft_author=post.draft_author,
        pub_date=post.pub_date,
        draft_pub_date=post.draft_pub_date,
        is_published=post.is_published,
        teaser_override=post.teaser_override,
        suppress_teaser=post.suppress_teaser,
        correlation_key=post.correlation_key,
        image_url=post.image_url,
        thumbnail_url=post.thumbnail_url,
        is_featured=post.is_featured,
        content_type=post.content_type,
        archived_by=acting_user,
        archived_utc=now or datetime.now(timezone.utc),
        is_draft_history=post.has_draft,
    )


def restore(post: Post, entry: HistorySnapshot) -> Post:
    """Copy the fields recorded in *entry* back onto *post* and return it."""
    if entry.content_id != post.id:
        raise ValueError(
            f"History entry {entry.id} belongs to post {entry.content_id}, not {post.id}"
        )
    post.title = entry.title
    post.slug = entry.slug
    post.meta_description = entry.meta_description
    post.categories = list(entry.categories)
    post.content = entry.content
    post.draft_content = entry.draft_content
    post.author = entry.author
    post.draft_author = entry.draft_author
    post.pub_date = entry.pub_date
    post.draft_pub_date = entry.draft_pub_date
    post.is_published = entry.is_published
    post.teaser_override = entry.teaser_override
    post.suppress_teaser = entry.suppress_teaser
    post.correlation_key = entry.correlation_key
    post.image_url = entry.image_url
    post.thumbnail_url = entry.thumbnail_url
    post.is_featured = entry.is_featured
    post.content_type = entry.content_type
    return post
