"""APScheduler-based promotion of scheduled drafts."""

from __future__ import annotations

import asyncio
import logging

from apscheduler.schedulers.asyncio import AsyncIOScheduler
from apscheduler.triggers.interval import IntervalTrigger

from publisher.orchestrator import PublishOrchestrator

logger = logging.getLogger(__name__)


class PublishScheduler:
    """Periodically publish drafts whose scheduled date has passed."""

    def __init__(
        self,
        orchestrator: PublishOrchestrator,
        project_ids: tuple[str, ...],
        interval_minutes: int = 5,
        acting_user: str = "scheduler",
    ) -> None:
        self._orchestrator = orchestrator
        self._project_ids = project_ids
        self._interval_minutes = interval_minutes
        self._acting_user = acting_user
        self._scheduler: AsyncIOScheduler | None = None

    async def run_once(self) -> int:
        """Promote due drafts in every project, logging success or failure."""
        total = 0
        for project_id in self._project_ids:
            try:
                published = await self._orchestrator.publish_due_drafts(
                    project_id, self._acting_user
                )
            except Exception:
                logger.exception("Scheduled publishing failed for %s", project_id)
                continue
            total += len(published)
        logger.debug("Scheduled publishing run finished: %d post(s)", total)
        return total

    def start(self) -> None:
        """Start the scheduler on the running asyncio event loop."""
        self._scheduler = AsyncIOScheduler()
        trigger = IntervalTrigger(minutes=self._interval_minutes)
        self._scheduler.add_job(
            self.run_once, trigger, id="publish_due_drafts", coalesce=True, max_instances=1
        )
        self._scheduler.start()
        logger.info(
            "Scheduler started — checking %s for due drafts every %d minute(s)",
            ", ".join(self._project_ids),
            self._interval_minutes,
        )

    def stop(self) -> None:
        if self._scheduler:
            self._scheduler.shutdown(wait=False)
            logger.info("Scheduler stopped")

    def run_blocking(self) -> None:
        """Start scheduler and block forever (for CLI --schedule mode)."""
        loop = asyncio.new_event_loop()
        asyncio.set_event_loop(loop)
        self.start()
        try:
            loop.run_forever()
        except (KeyboardInterrupt, SystemExit):
            self.stop()
        finally:
            loop.close()
