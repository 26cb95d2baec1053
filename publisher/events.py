"""Publish-event handlers.

FeedPublishHandler    — writes the post's HTML and RSS item to published/{project}/{date}/
WebhookPublishHandler — POSTs the post to an external webhook via httpx
"""

from __future__ import annotations

import abc
import asyncio
import logging
from pathlib import Path
from typing import TYPE_CHECKING, Any

import aiofiles
import httpx

from publisher.formatter import MarkdownRenderer, build_rss_item, wrap_blog_html

if TYPE_CHECKING:
    from posts.models import Post, ProjectSettings

logger = logging.getLogger(__name__)


class PublishEventHandler(abc.ABC):
    """Something that reacts when a post goes live."""

    @abc.abstractmethod
    async def handle(self, post: Post, settings: ProjectSettings) -> None:
        """React to *post* having been published."""


def _post_link(post: Post, settings: ProjectSettings) -> str:
    base = settings.base_url.rstrip("/")
    return f"{base}/{post.slug}" if base else post.slug


# ---------------------------------------------------------------------------
# File feed (default)
# ---------------------------------------------------------------------------

class FeedPublishHandler(PublishEventHandler):
    """Saves the published post as blog HTML plus an RSS snippet."""

    def __init__(
        self, published_dir: Path, renderer: MarkdownRenderer | None = None
    ) -> None:
        self.published_dir = published_dir
        self.renderer = renderer or MarkdownRenderer()

    async def handle(self, post: Post, settings: ProjectSettings) -> None:
        if post.content_type == "markdown":
            html_body = self.renderer.to_html(post.content)
        else:
            html_body = post.content

        day = post.pub_date.date().isoformat() if post.pub_date else "undated"
        day_dir = self.published_dir / post.project_id / day
        day_dir.mkdir(parents=True, exist_ok=True)

        out_path = day_dir / f"{post.slug}.html"
        async with aiofiles.open(out_path, "w", encoding="utf-8") as f:
            await f.write(wrap_blog_html(post, html_body))

        description = post.meta_description or post.teaser_override
        rss_path = day_dir / f"{post.slug}.rss.xml"
        async with aiofiles.open(rss_path, "w", encoding="utf-8") as f:
            await f.write(
                build_rss_item(
                    post.title,
                    _post_link(post, settings),
                    description,
                    post.pub_date.isoformat() if post.pub_date else "",
                    post.author,
                )
            )
        logger.info("Published %s → %s", post.slug, out_path)


# ---------------------------------------------------------------------------
# Webhook
# ---------------------------------------------------------------------------

# Back off and retry on 429
_MAX_RETRIES = 3
_RETRY_BASE_DELAY = 2.0  # seconds


class WebhookPublishHandler(PublishEventHandler):
    """Notify an external service (CMS, search indexer, chat) about a publish.

    Parameters
    ----------
    url:
        Endpoint that receives a JSON description of the post.
    token:
        Optional bearer token.
    """

    def __init__(self, url: str, token: str = "", timeout: float = 30.0) -> None:
        self.url = url
        self.token = token
        self.timeout = timeout
        self._client: httpx.AsyncClient | None = None

    # -- HTTP helpers --------------------------------------------------------

    def _headers(self) -> dict[str, str]:
        headers = {
            "Content-Type": "application/json",
            "Accept": "application/json",
        }
        if self.token:
            headers["Authorization"] = f"Bearer {self.token}"
        return headers

    async def _get_client(self) -> httpx.AsyncClient:
        if self._client is None or self._client.is_closed:
            self._client = httpx.AsyncClient(
                headers=self._headers(),
                timeout=self.timeout,
            )
        return self._client

    async def close(self) -> None:
        if self._client and not self._client.is_closed:
            await self._client.aclose()

    async def _post_with_retry(self, payload: dict[str, Any]) -> httpx.Response:
        """POST with automatic retry on 429 rate-limit responses."""
        client = await self._get_client()
        for attempt in range(1, _MAX_RETRIES + 1):
            resp = await client.post(self.url, json=payload)
            if resp.status_code != 429:
                return resp
            delay = _RETRY_BASE_DELAY * attempt
            logger.warning(
                "Webhook rate-limited (429), retrying in %.1fs (attempt %d/%d)",
                delay, attempt, _MAX_RETRIES,
            )
            await asyncio.sleep(delay)
        return resp  # return last response even if still 429

    def _build_payload(self, post: Post, settings: ProjectSettings) -> dict[str, Any]:
        return {
            "event": "post.published",
            "project": post.project_id,
            "id": post.id,
            "title": post.title,
            "slug": post.slug,
            "url": _post_link(post, settings),
            "author": post.author,
            "categories": list(post.categories),
            "pub_date": post.pub_date.isoformat() if post.pub_date else None,
            "teaser": post.teaser_override or post.auto_teaser,
            "image_url": post.image_url,
        }

    # -- PublishEventHandler implementation ----------------------------------

    async def handle(self, post: Post, settings: ProjectSettings) -> None:
        resp = await self._post_with_retry(self._build_payload(post, settings))

        if resp.status_code in (200, 201, 202, 204):
            logger.info("Webhook notified of %s (%d)", post.slug, resp.status_code)
            return

        if resp.status_code == 401:
            logger.error("Webhook auth failed (401) — check PUBLISH_WEBHOOK_TOKEN")
        elif resp.status_code == 429:
            logger.error("Webhook rate limit exceeded after %d retries", _MAX_RETRIES)
        else:
            logger.error("Webhook error %d: %s", resp.status_code, resp.text[:500])
        raise RuntimeError(
            f"Publish webhook returned {resp.status_code} for slug '{post.slug}'"
        )
