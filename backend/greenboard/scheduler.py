"""Cron scheduling of contribution runs using APScheduler."""

import asyncio
import logging
from datetime import datetime, timezone
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

from apscheduler.schedulers.asyncio import AsyncIOScheduler
from apscheduler.triggers.cron import CronTrigger

from greenboard.config import ScheduleConfig
from greenboard.models import (
    ScheduleSettingsView,
    ScheduleState,
    SchedulerStatus,
)
from greenboard.pipeline import RunOrchestrator
from greenboard.services.git import GitGateway

logger = logging.getLogger(__name__)

JOB_ID = "contribution-run"


class SchedulerError(RuntimeError):
    """Invalid schedule or scheduler misuse."""


def build_trigger(cron: str, tz_name: str) -> CronTrigger:
    """Validate a crontab expression and timezone and build the trigger."""
    try:
        tz = ZoneInfo(tz_name)
    except (ZoneInfoNotFoundError, ValueError) as e:
        raise SchedulerError(f"Invalid timezone: {tz_name}") from e

    try:
        return CronTrigger.from_crontab(cron, timezone=tz)
    except ValueError as e:
        raise SchedulerError(f"Invalid cron expression: {cron!r} ({e})") from e


class ContributionScheduler:
    """Runs pull -> today's commits -> push on a cron schedule.

    The cron trigger and manual triggers share execute_task(), which never
    runs twice at once: a trigger arriving mid-run is dropped.
    """

    def __init__(
        self,
        gateway: GitGateway,
        orchestrator: RunOrchestrator,
        config: ScheduleConfig | None = None,
    ):
        self.gateway = gateway
        self.orchestrator = orchestrator
        self.config = config or ScheduleConfig()
        self._state = ScheduleState()
        self._scheduler: AsyncIOScheduler | None = None
        self._cron = self.config.cron
        self._timezone = self.config.timezone
        self._idle = asyncio.Event()
        self._idle.set()
        self._background: set[asyncio.Task] = set()

    @property
    def running(self) -> bool:
        return self._state.running

    @property
    def executing(self) -> bool:
        return self._state.executing

    def start(self, cron: str | None = None, tz_name: str | None = None) -> None:
        """Arm the cron trigger. Must be called from a running event loop."""
        if self._scheduler is not None:
            raise SchedulerError("Scheduler already running")

        cron = cron or self.config.cron
        tz_name = tz_name or self.config.timezone
        trigger = build_trigger(cron, tz_name)

        logger.info(f"Starting scheduler: cron={cron!r} timezone={tz_name}")

        scheduler = AsyncIOScheduler(timezone=ZoneInfo(tz_name))
        scheduler.add_job(
            self.execute_task,
            trigger,
            id=JOB_ID,
            name="Contributions: Daily Run",
            max_instances=1,
            coalesce=True,
        )
        scheduler.start()

        self._scheduler = scheduler
        self._cron = cron
        self._timezone = tz_name
        self._state.running = True
        logger.info("Scheduler started successfully")

    def stop(self) -> None:
        """Disarm the cron trigger. Idempotent."""
        if self._scheduler is None:
            return

        self._scheduler.shutdown(wait=False)
        self._scheduler = None
        self._state.running = False
        logger.info("Scheduler stopped")

    async def shutdown(self) -> None:
        """Stop the trigger and wait for an in-flight run to finish."""
        self.stop()

        if self._state.executing:
            logger.info("Waiting for the running task to finish...")
            try:
                await asyncio.wait_for(
                    self._idle.wait(), timeout=self.config.drain_timeout_seconds
                )
            except asyncio.TimeoutError:
                logger.warning(
                    f"Running task did not finish within {self.config.drain_timeout_seconds}s"
                )

    async def execute_task(self) -> bool:
        """Run one pull/commit/push cycle. Returns False if skipped."""
        if self._state.executing:
            logger.warning("Task already running, skipping this execution")
            return False

        self._state.executing = True
        self._idle.clear()
        self._state.last_run_at = datetime.now(timezone.utc)
        self._state.stats.total_runs += 1

        logger.info("Starting scheduled contribution task")

        try:
            await self.gateway.pull()
            result = await self.orchestrator.run_today()
            push_result = await self.gateway.push()

            self._state.stats.successful_runs += 1
            logger.info(
                f"Scheduled task completed successfully: "
                f"commits_created={result.commits_created} errors={result.errors} "
                f"pushed={push_result.pushed} stats={self._state.stats.model_dump()}"
            )
        except Exception as e:
            self._state.stats.failed_runs += 1
            logger.error(
                f"Scheduled task failed: error={e} stats={self._state.stats.model_dump()}"
            )
        finally:
            self._state.executing = False
            self._idle.set()

        return True

    async def run_now(self) -> bool:
        """Manual trigger outside the cron cadence."""
        logger.info("Manual task execution triggered")
        return await self.execute_task()

    def trigger(self) -> asyncio.Task:
        """Submit a manual run in the background and return immediately."""
        task = asyncio.get_running_loop().create_task(self.run_now())
        self._background.add(task)
        task.add_done_callback(self._on_manual_done)
        return task

    def _on_manual_done(self, task: asyncio.Task) -> None:
        self._background.discard(task)
        if not task.cancelled() and task.exception() is not None:
            logger.error(f"Manual trigger failed: {task.exception()}")

    def next_run(self) -> datetime | None:
        if self._scheduler is None:
            return None
        job = self._scheduler.get_job(JOB_ID)
        return job.next_run_time if job else None

    def status(self) -> SchedulerStatus:
        """Read-only snapshot of the scheduler state."""
        return SchedulerStatus(
            running=self._state.running,
            executing=self._state.executing,
            last_run=self._state.last_run_at,
            next_run=self.next_run(),
            stats=self._state.stats.model_copy(),
            config=ScheduleSettingsView(cron=self._cron, timezone=self._timezone),
        )
