#!/usr/bin/env python3
"""Blog publisher — command-line front end.

Usage:
    python main.py --edit post.md                    Save post.md as a draft
    python main.py --edit post.md --mode now         Publish post.md immediately
    python main.py --edit post.md --mode later \\
        --pub-date 2026-11-01T09:00                  Schedule post.md
    python main.py --edit post.md --post hello-world Apply post.md to an existing post
    python main.py --publish-due                     Publish scheduled drafts that are due
    python main.py --schedule                        Keep publishing due drafts periodically
    python main.py --list                            List posts of the project
"""

from __future__ import annotations

import argparse
import asyncio
import dataclasses
import logging
import sys
from datetime import datetime
from pathlib import Path

from config import Config
from posts.models import Post, SaveMode
from publisher.events import FeedPublishHandler, PublishEventHandler, WebhookPublishHandler
from publisher.formatter import MarkdownRenderer, load_edit_command
from publisher.messages import Messages
from publisher.orchestrator import PublishOrchestrator
from publisher.scheduler import PublishScheduler
from publisher.store import FileDocumentStore, FileHistoryStore
from publisher.teaser import TeaserGenerator
from publisher.timezones import TimeZoneResolver

logger = logging.getLogger("publisher.cli")


def build_orchestrator(cfg: Config) -> PublishOrchestrator:
    """Wire the file-backed stores and publish handlers from *cfg*."""
    renderer = MarkdownRenderer()
    handlers: list[PublishEventHandler] = [FeedPublishHandler(cfg.published_dir, renderer)]
    if cfg.publish_webhook_url:
        handlers.append(
            WebhookPublishHandler(cfg.publish_webhook_url, cfg.publish_webhook_token)
        )

    return PublishOrchestrator(
        store=FileDocumentStore(cfg.projects_dir, handlers),
        history=FileHistoryStore(cfg.projects_dir),
        renderer=renderer,
        teasers=TeaserGenerator(),
        time_zones=TimeZoneResolver(cfg.user_time_zone),
        messages=Messages.from_file(cfg.messages_path),
        force_lower_case_categories=cfg.force_lower_case_categories,
    )


# ---------------------------------------------------------------------------
# Commands
# ---------------------------------------------------------------------------

async def _find_post(orchestrator: PublishOrchestrator, project_id: str, key: str) -> Post | None:
    post = await orchestrator.store.get(project_id, key)
    if post is None:
        post = await orchestrator.store.get_by_slug(project_id, key)
    return post


async def run_edit(
    cfg: Config,
    path: Path,
    user: str,
    mode: SaveMode | None = None,
    pub_date: datetime | None = None,
    post_key: str | None = None,
) -> bool:
    """Apply an edit file; returns True when it was saved."""
    orchestrator = build_orchestrator(cfg)
    command = await load_edit_command(path, mode)
    if pub_date is not None:
        command.new_pub_date = pub_date

    existing = None
    if post_key:
        existing = await _find_post(orchestrator, cfg.project_id, post_key)
        if existing is None:
            logger.error("No post %r in project %s", post_key, cfg.project_id)
            return False

    result = await orchestrator.handle(command, cfg.project_id, user, existing)
    if not result.succeeded:
        for error in result.errors:
            logger.error("%s", error)
        return False

    post = result.value
    logger.info(
        "Saved %s (id=%s, published=%s, scheduled=%s)",
        post.slug,
        post.id,
        post.is_published,
        post.draft_pub_date.isoformat() if post.draft_pub_date else "-",
    )
    return True


async def run_publish_due(cfg: Config, user: str) -> int:
    orchestrator = build_orchestrator(cfg)
    published = await orchestrator.publish_due_drafts(cfg.project_id, user)
    for post in published:
        logger.info("Published %s", post.slug)
    return len(published)


async def run_list(cfg: Config) -> None:
    orchestrator = build_orchestrator(cfg)
    for post in await orchestrator.store.list_posts(cfg.project_id):
        status = "published" if post.is_published else "draft"
        if post.draft_pub_date:
            status += f", scheduled {post.draft_pub_date.isoformat()}"
        print(f"{post.slug}\t{post.title}\t{status}")


# ---------------------------------------------------------------------------
# CLI
# ---------------------------------------------------------------------------

def _setup_logging(cfg: Config) -> None:
    log_dir = cfg.log_dir
    log_dir.mkdir(parents=True, exist_ok=True)

    handlers: list[logging.Handler] = [
        logging.StreamHandler(sys.stdout),
        logging.FileHandler(log_dir / "publisher.log"),
    ]
    logging.basicConfig(
        level=getattr(logging, cfg.log_level.upper(), logging.INFO),
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
        handlers=handlers,
    )


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="publisher",
        description="Blog post drafting, scheduling and publishing",
    )
    action = parser.add_mutually_exclusive_group(required=True)
    action.add_argument(
        "--edit", type=Path, metavar="FILE",
        help="Markdown file with YAML frontmatter to save",
    )
    action.add_argument(
        "--publish-due", action="store_true",
        help="Publish scheduled drafts whose date has passed",
    )
    action.add_argument(
        "--schedule", action="store_true",
        help="Start the APScheduler loop that publishes due drafts",
    )
    action.add_argument(
        "--list", action="store_true",
        help="List the project's posts",
    )
    parser.add_argument(
        "--mode", choices=[m.value for m in SaveMode], default=None,
        help="Save mode for --edit (overrides the file's save_mode)",
    )
    parser.add_argument(
        "--pub-date", type=datetime.fromisoformat, default=None,
        help="Local publish time for --mode later, e.g. 2026-11-01T09:00",
    )
    parser.add_argument(
        "--post", type=str, default=None,
        help="Id or slug of the existing post that --edit applies to",
    )
    parser.add_argument(
        "--user", type=str, default="cli",
        help="Name recorded as the acting user",
    )
    parser.add_argument(
        "--project", type=str, default=None,
        help="Project id (defaults to PROJECT_ID)",
    )
    return parser


def main(argv: list[str] | None = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)

    cfg = Config.from_env()
    if args.project:
        cfg = dataclasses.replace(cfg, project_id=args.project)
    _setup_logging(cfg)

    if args.schedule:
        logger.info("Starting scheduler mode")
        scheduler = PublishScheduler(
            build_orchestrator(cfg),
            (cfg.project_id,),
            interval_minutes=cfg.schedule_interval_minutes,
            acting_user=args.user,
        )
        scheduler.run_blocking()
        return 0
    if args.publish_due:
        asyncio.run(run_publish_due(cfg, args.user))
        return 0
    if args.list:
        asyncio.run(run_list(cfg))
        return 0

    mode = SaveMode(args.mode) if args.mode else None
    ok = asyncio.run(
        run_edit(cfg, args.edit, args.user, mode, args.pub_date, args.post)
    )
    return 0 if ok else 1


if __name__ == "__main__":
    sys.exit(main())
