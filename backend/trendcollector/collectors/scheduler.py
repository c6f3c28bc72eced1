"""APScheduler-based collection scheduler.

CollectionScheduler owns one AsyncIOScheduler with a single cron job that
runs a full collection pass and reports it through the notifier. It is an
explicit object with start/stop and an observable state rather than a
module-level singleton, so whoever builds it decides its lifetime.

Overlapping runs are only prevented for runs started by the same scheduler
instance (the cron job and run_now share a lock). Two processes, or a
scheduler and a separate CLI invocation, can still collect concurrently.
"""

import asyncio
import enum
from datetime import tzinfo
from typing import Optional

import structlog
from apscheduler.job import Job
from apscheduler.schedulers.asyncio import AsyncIOScheduler
from apscheduler.triggers.cron import CronTrigger
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from trendcollector.collectors.collector_service import CollectAllResult, CollectorService
from trendcollector.collectors.ytdlp import YtDlpClient
from trendcollector.config import settings
from trendcollector.core.exceptions import CollectionInProgressError
from trendcollector.services.notifier import TelegramNotifier

logger = structlog.get_logger(__name__)

JOB_ID = "collect_all"


class SchedulerState(str, enum.Enum):
    STOPPED = "stopped"
    RUNNING = "running"


class CollectionScheduler:
    """Runs collect_all on a cron schedule and on demand."""

    def __init__(
        self,
        db_session_factory: async_sessionmaker[AsyncSession],
        notifier: Optional[TelegramNotifier] = None,
        client: Optional[YtDlpClient] = None,
        cron: Optional[str] = None,
        timezone: Optional[tzinfo] = None,
        limit: Optional[int] = None,
    ):
        """Initialize collection scheduler.

        Args:
            db_session_factory: Async session factory; each run gets its own session
            notifier: Receives every run result; None disables notifications
            client: yt-dlp client shared by all runs
            cron: Crontab expression (defaults to settings.SCHEDULE_CRON)
            timezone: Timezone of the cron expression (defaults to settings.TIMEZONE)
            limit: Videos per keyword (defaults to settings.COLLECT_LIMIT)
        """
        self.db_session_factory = db_session_factory
        self.notifier = notifier
        self.client = client or YtDlpClient()
        self.cron = cron or settings.SCHEDULE_CRON
        self.timezone = timezone or settings.get_timezone()
        self.limit = limit or settings.COLLECT_LIMIT
        self.scheduler = AsyncIOScheduler(timezone=self.timezone)
        self._run_lock = asyncio.Lock()
        self.logger = logger.bind(service="collection_scheduler")

    @property
    def state(self) -> SchedulerState:
        return SchedulerState.RUNNING if self.scheduler.running else SchedulerState.STOPPED

    def is_running(self) -> bool:
        return self.state is SchedulerState.RUNNING

    def start(self) -> Optional[Job]:
        """Register the cron job and start the scheduler.

        Must be called from within a running event loop.

        Returns:
            The scheduled APScheduler Job, or None if already running
        """
        if self.scheduler.running:
            self.logger.warning("scheduler_already_running")
            return None

        job = self.scheduler.add_job(
            func=self._run_scheduled_collection,
            trigger=CronTrigger.from_crontab(self.cron, timezone=self.timezone),
            id=JOB_ID,
            name="Collect all keywords",
            replace_existing=True,
            max_instances=1,
            coalesce=True,
        )
        self.scheduler.start()

        self.logger.info(
            "scheduler_started",
            cron=self.cron,
            timezone=str(self.timezone),
            next_run=job.next_run_time.isoformat() if job.next_run_time else None,
        )
        return job

    def stop(self) -> None:
        """Stop the scheduler.

        A run that is already executing is not interrupted; it finishes on
        its own task.
        """
        if not self.scheduler.running:
            self.logger.warning("scheduler_not_running")
            return

        self.scheduler.remove_all_jobs()
        self.scheduler.shutdown(wait=False)
        self.logger.info("scheduler_stopped")

    def get_status(self) -> dict:
        """Current state, schedule and next run time."""
        job = self.scheduler.get_job(JOB_ID) if self.scheduler.running else None
        next_run = getattr(job, "next_run_time", None) if job else None
        return {
            "state": self.state.value,
            "cron": self.cron,
            "next_run": next_run.isoformat() if next_run else None,
            "collecting": self._run_lock.locked(),
        }

    async def run_now(self) -> CollectAllResult:
        """Run a full collection immediately and notify the result.

        Raises:
            CollectionInProgressError: A run started by this scheduler is active
            ToolNotInstalled: yt-dlp is unavailable
        """
        self.logger.info("manual_collection_started")
        try:
            return await self._collect_and_notify()
        except CollectionInProgressError:
            raise
        except Exception as e:
            self.logger.error("manual_collection_failed", error=str(e), exc_info=True)
            await self._notify_error(e, "manual collection")
            raise

    async def _run_scheduled_collection(self) -> None:
        """Job entry point called by APScheduler.

        Catches all exceptions so one failed run does not break the schedule.
        """
        if self._run_lock.locked():
            self.logger.warning("scheduled_collection_skipped", reason="run_in_progress")
            return

        self.logger.info("scheduled_collection_started")
        try:
            await self._collect_and_notify()
        except Exception as e:
            self.logger.error("scheduled_collection_failed", error=str(e), exc_info=True)
            await self._notify_error(e, "scheduled collection")

    async def _collect_and_notify(self) -> CollectAllResult:
        if self._run_lock.locked():
            raise CollectionInProgressError()

        async with self._run_lock:
            async with self.db_session_factory() as db:
                collector = CollectorService(db, client=self.client)
                result = await collector.collect_all(self.limit)

        if self.notifier is not None:
            await self.notifier.notify_collection_result(result)

        return result

    async def _notify_error(self, error: Exception, context: str) -> None:
        if self.notifier is not None:
            await self.notifier.notify_error(error, context)
