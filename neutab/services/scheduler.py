"""Background scheduler for periodic sync jobs."""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

from apscheduler.schedulers.asyncio import AsyncIOScheduler
from apscheduler.triggers.interval import IntervalTrigger

if TYPE_CHECKING:
    from neutab.application.sync.agent import CloudSyncAgent
    from neutab.config import AppConfig

logger = logging.getLogger(__name__)

PREFS_POLL_JOB_ID = "sync_prefs_poll"


class SchedulerService:
    """Runs the preference poll that backs up ``SyncPreferencesChanged`` events.

    Preferences written by another process never reach this process's event
    bus, so the agent's edge detector is also fed on a fixed interval.
    """

    def __init__(self, cfg: AppConfig, agent: CloudSyncAgent) -> None:
        self.cfg = cfg
        self.agent = agent
        self._scheduler: AsyncIOScheduler | None = None
        self._started = False

    @property
    def running(self) -> bool:
        return self._started

    async def start(self) -> None:
        """Start the scheduler with the preference poll job."""
        if self._started:
            logger.warning("scheduler_already_started")
            return

        self._scheduler = AsyncIOScheduler()
        interval = self.cfg.cloud_sync.prefs_poll_interval_sec
        self._scheduler.add_job(
            self._poll_preferences,
            trigger=IntervalTrigger(seconds=interval),
            id=PREFS_POLL_JOB_ID,
            name="Cloud sync preference poll",
            replace_existing=True,
            max_instances=1,
            coalesce=True,
        )
        logger.info(
            "scheduler_prefs_poll_job_added",
            extra={"job_id": PREFS_POLL_JOB_ID, "interval_sec": interval},
        )

        self._scheduler.start()
        self._started = True
        logger.info("scheduler_started")

    async def stop(self) -> None:
        """Stop the scheduler. Jobs already running are left to finish."""
        if self._scheduler and self._started:
            self._scheduler.shutdown(wait=False)
            self._scheduler = None
            self._started = False
            logger.info("scheduler_stopped")

    async def _poll_preferences(self) -> None:
        try:
            self.agent.check_preferences()
        except Exception:
            logger.exception("scheduled_prefs_poll_failed")
