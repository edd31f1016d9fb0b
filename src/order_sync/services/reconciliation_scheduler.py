"""
Reconciliation Scheduler using APScheduler.

Runs the order status sync every SYNC_INTERVAL_MINUTES (10 by default).
A run can also be triggered synchronously through run_once().
"""

from typing import Optional

from apscheduler.schedulers.asyncio import AsyncIOScheduler
from apscheduler.triggers.interval import IntervalTrigger

from elitespeed_api.config.constants import SYNC_INTERVAL_MINUTES
from elitespeed_api.core.logger import setup_logger
from order_sync.services.reconciliation_service import ReconciliationService, SyncResult

logger = setup_logger(__name__)

SCHEDULED_SYNC_JOB_ID = "order_status_sync"


class ReconciliationScheduler:
    """Manages the recurring order status sync job."""

    def __init__(
        self,
        reconciliation_service: ReconciliationService,
        interval_minutes: int = SYNC_INTERVAL_MINUTES,
        max_instances: int = 1,
    ):
        """
        Args:
            reconciliation_service: Service running the sync
            interval_minutes: Minutes between scheduled runs
            max_instances: Concurrent runs allowed when a run overlaps the next tick
        """
        self.service = reconciliation_service
        self.interval_minutes = interval_minutes
        self.max_instances = max_instances
        self.scheduler = AsyncIOScheduler()
        self._started = False

    async def start(self, run_startup_sync: bool = True):
        """
        Start scheduler with the sync job.

        Args:
            run_startup_sync: Whether to run a sync immediately
        """
        if self._started:
            logger.warning("Scheduler already started")
            return

        self.scheduler.add_job(
            self._run_scheduled_sync,
            IntervalTrigger(minutes=self.interval_minutes),
            id=SCHEDULED_SYNC_JOB_ID,
            name="EliteSpeed Order Status Sync",
            replace_existing=True,
            coalesce=True,
            max_instances=self.max_instances,
        )
        logger.info(f"Added scheduled sync job (every {self.interval_minutes} minute(s))")

        self.scheduler.start()
        self._started = True
        logger.info("Reconciliation scheduler started")

        if run_startup_sync:
            logger.info("Running startup sync...")
            try:
                result = await self.service.run_sync(sync_type="startup")
                logger.info(
                    f"Startup sync completed: {result.updated} updated, {result.failed} failed"
                )
            except Exception as e:
                logger.error(f"Startup sync failed: {e}", exc_info=True)

    async def stop(self):
        """Gracefully stop scheduler."""
        if not self._started:
            return

        self.scheduler.shutdown(wait=True)
        self._started = False
        logger.info("Reconciliation scheduler stopped")

    async def run_once(self, force: bool = False, limit: Optional[int] = None) -> SyncResult:
        """Run one sync now and return its report (manual trigger)."""
        logger.info(f"Manual sync triggered (force={force}, limit={limit})")
        return await self.service.run_sync(sync_type="manual", force=force, limit=limit)

    async def _run_scheduled_sync(self):
        """Wrapper for scheduled sync with error handling."""
        try:
            logger.info("Scheduled sync triggered")
            result = await self.service.run_sync(sync_type="scheduled")
            if result.success:
                logger.info(f"Scheduled sync completed: {result.updated}/{result.candidates} orders updated")
            else:
                logger.warning(f"Scheduled sync had issues: {result.errors}")
        except Exception as e:
            logger.error(f"Scheduled sync failed: {e}", exc_info=True)

    def get_next_run_times(self) -> dict:
        """Get next scheduled run times for dashboard."""
        result = {}

        for job in self.scheduler.get_jobs():
            next_run = job.next_run_time
            if next_run:
                result[job.id] = next_run.strftime("%Y-%m-%d %H:%M:%S")
            else:
                result[job.id] = None

        return result

    def get_next_scheduled_sync(self) -> Optional[str]:
        """Get the next scheduled sync time as formatted string."""
        job = self.scheduler.get_job(SCHEDULED_SYNC_JOB_ID)
        if job and job.next_run_time:
            return job.next_run_time.strftime("%Y-%m-%d %H:%M:%S")
        return None

    @property
    def is_running(self) -> bool:
        """Check if scheduler is running."""
        return self._started and self.scheduler.running
