"""Markdown rendering, edit-file parsing, and blog HTML / RSS snippets."""

from __future__ import annotations

import logging
import re
from datetime import datetime
from pathlib import Path
from typing import Any
from xml.sax.saxutils import escape as xml_escape

import aiofiles
import markdown
import yaml

from posts.models import EditCommand, Post, SaveMode

logger = logging.getLogger(__name__)

# Markdown extensions for richer HTML output
_EXTENSIONS = ["extra", "smarty", "toc"]


def _parse_frontmatter(text: str) -> tuple[dict[str, Any], str]:
    """Split YAML frontmatter from Markdown body.

    Expected format:
        ---
        title: ...
        slug: ...
        ---
        Body text here.
    """
    match = re.match(r"^---\s*\n(.*?)\n---\s*\n(.*)$", text, re.DOTALL)
    if not match:
        return {}, text
    meta = yaml.safe_load(match.group(1)) or {}
    body = match.group(2)
    return meta, body


class MarkdownRenderer:
    """Markdown to HTML converter reusing one ``markdown.Markdown`` instance."""

    def __init__(self, extensions: list[str] | None = None) -> None:
        self._md = markdown.Markdown(extensions=extensions or _EXTENSIONS)

    def to_html(self, text: str) -> str:
        self._md.reset()
        return self._md.convert(text or "")


def _categories_to_str(value: Any) -> str:
    if value is None:
        return ""
    if isinstance(value, (list, tuple)):
        return ", ".join(str(v) for v in value)
    return str(value)


def _parse_pub_date(value: Any) -> datetime | None:
    if value is None or value == "":
        return None
    if isinstance(value, datetime):
        return value
    return datetime.fromisoformat(str(value))


def command_from_markdown(
    text: str, save_mode: SaveMode | None = None
) -> EditCommand:
    """Build an :class:`EditCommand` from a Markdown file with frontmatter.

    Frontmatter keys mirror the command's fields (``categories`` may be a
    YAML list or a comma string, ``pub_date`` is a local ISO timestamp).
    The body becomes the command content.
    """
    meta, body = _parse_frontmatter(text)
    mode = save_mode or SaveMode(meta.get("save_mode", SaveMode.SAVE_DRAFT.value))
    return EditCommand(
        title=str(meta.get("title", "")),
        content=body.strip(),
        author=str(meta.get("author", "")),
        save_mode=mode,
        slug=str(meta["slug"]) if meta.get("slug") is not None else None,
        meta_description=str(meta.get("meta_description", "")),
        categories=_categories_to_str(meta.get("categories")),
        new_pub_date=_parse_pub_date(meta.get("pub_date")),
        image_url=str(meta.get("image_url", "")),
        thumbnail_url=str(meta.get("thumbnail_url", "")),
        is_featured=bool(meta.get("is_featured", False)),
        content_type=str(meta.get("content_type", "markdown")),
        teaser_override=str(meta.get("teaser_override", "")),
        suppress_teaser=bool(meta.get("suppress_teaser", False)),
        correlation_key=str(meta.get("correlation_key", "")),
    )


async def load_edit_command(
    path: Path, save_mode: SaveMode | None = None
) -> EditCommand:
    """Read an edit file from disk; see :func:`command_from_markdown`."""
    async with aiofiles.open(path, "r", encoding="utf-8") as f:
        raw = await f.read()
    command = command_from_markdown(raw, save_mode)
    if not command.title:
        command.title = path.stem.replace("-", " ").title()
    logger.debug("Loaded edit command %r from %s", command.title, path)
    return command


def wrap_blog_html(post: Post, html_body: str) -> str:
    """Wrap rendered post HTML in the blog article template."""
    cats = "".join(f'<span class="category">{c}</span>' for c in post.categories)
    published = post.pub_date.date().isoformat() if post.pub_date else ""
    image = (
        f'<div class="featured-image" data-src="{post.image_url}"></div>'
        if post.image_url
        else ""
    )

    return f"""\
<article class="blog-post">
  <header>
    <h1>{post.title}</h1>
    <div class="meta">
      <span class="author">{post.author}</span>
      <time datetime="{published}">{published}</time>
    </div>
    {f'<div class="categories">{cats}</div>' if cats else ''}
    {image}
  </header>
  <div class="content">
{html_body}
  </div>
</article>
"""


def build_rss_item(
    title: str, link: str, description: str, pub_date: str, author: str
) -> str:
    """Generate an RSS <item> XML snippet."""
    return f"""\
<item>
  <title>{xml_escape(title)}</title>
  <link>{xml_escape(link)}</link>
  <description>{xml_escape(description)}</description>
  <pubDate>{xml_escape(pub_date)}</pubDate>
  <author>{xml_escape(author)}</author>
</item>
"""
