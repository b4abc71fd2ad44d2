"""Run orchestration: today's contributions, backfill, pattern drawing and random fill."""

import asyncio
import logging
import random
from collections.abc import Awaitable, Callable
from datetime import date, datetime, time, timedelta
from zoneinfo import ZoneInfo

from greenboard.config import Settings
from greenboard.models import BackfillStats, RunResult
from greenboard.patterns import DAYS_PER_WEEK, CoordinateMapper, get_pattern
from greenboard.producer import CommitProducer

logger = logging.getLogger("greenboard.pipeline")

# Backfill commits land between 09:00 and 20:59 local time
BACKFILL_FIRST_HOUR = 9
BACKFILL_HOUR_SPAN = 12

# Today's commits are spread over the 12 hours following "now"
TODAY_SPREAD_MINUTES = 12 * 60

BACKFILL_PROGRESS_DAYS = 7
RANDOM_PROGRESS_COMMITS = 10


class RunOrchestrator:
    """Sequences commit creation for each run mode.

    Commits are always created one after another: each one rewrites the
    marker file and depends on the index state left by the previous commit.
    """

    def __init__(
        self,
        producer: CommitProducer,
        mapper: CoordinateMapper,
        settings: Settings,
        rng: random.Random | None = None,
        sleep: Callable[[float], Awaitable[None]] | None = None,
        now: Callable[[], datetime] | None = None,
    ):
        self.producer = producer
        self.mapper = mapper
        self.settings = settings
        self.tz = ZoneInfo(settings.schedule.timezone)
        self._rng = rng or random.Random()
        self._sleep = sleep or asyncio.sleep
        self._now = now or (lambda: datetime.now(self.tz))

    async def run_today(self) -> RunResult:
        """Create a random number of commits spread across today."""
        commits_cfg = self.settings.commits
        today = self._now()
        commit_count = self._rng.randint(commits_cfg.min_per_day, commits_cfg.max_per_day)

        logger.info(
            f"Creating {commit_count} contributions for today: "
            f"date={today:%Y-%m-%d} timezone={self.settings.schedule.timezone}"
        )

        result = RunResult()
        for i in range(commit_count):
            commit_time = today + timedelta(minutes=self._rng.random() * TODAY_SPREAD_MINUTES)

            try:
                result.commits.append(await self.producer.create_commit(commit_time))
                await self._sleep(commits_cfg.delay_ms / 1000)
            except Exception as e:
                result.errors += 1
                logger.error(f"Failed to create commit {i + 1}/{commit_count}: {e}")

        return result

    async def run_backfill(
        self,
        start_date: date,
        end_date: date,
        skip_weekends: bool | None = None,
        min_commits: int | None = None,
        max_commits: int | None = None,
    ) -> BackfillStats:
        """Create commits for every day in [start_date, end_date]."""
        backfill_cfg = self.settings.backfill
        skip_weekends = backfill_cfg.skip_weekends if skip_weekends is None else skip_weekends
        min_commits = backfill_cfg.min_commits if min_commits is None else min_commits
        max_commits = backfill_cfg.max_commits if max_commits is None else max_commits

        if start_date > end_date:
            raise ValueError(f"Backfill start {start_date} is after end {end_date}")
        if min_commits > max_commits:
            raise ValueError(f"min_commits ({min_commits}) must be <= max_commits ({max_commits})")

        logger.info(
            f"Starting backfill: start={start_date} end={end_date} "
            f"skip_weekends={skip_weekends} min_commits={min_commits} max_commits={max_commits}"
        )

        stats = BackfillStats()
        current = start_date

        while current <= end_date:
            if skip_weekends and current.weekday() >= 5:
                logger.debug(f"Skipping weekend: {current}")
                stats.skipped_days += 1
                current += timedelta(days=1)
                continue

            commit_count = self._rng.randint(min_commits, max_commits)
            logger.info(f"Processing {current} with {commit_count} commits")

            for _ in range(commit_count):
                try:
                    commit_time = datetime.combine(
                        current,
                        time(
                            BACKFILL_FIRST_HOUR + self._rng.randrange(BACKFILL_HOUR_SPAN),
                            self._rng.randrange(60),
                        ),
                        tzinfo=self.tz,
                    )
                    await self.producer.create_commit(commit_time)
                    stats.total_commits += 1

                    await self._sleep(backfill_cfg.delay_ms / 1000)
                except Exception as e:
                    stats.errors += 1
                    logger.error(f"Backfill commit failed: date={current} error={e}")

            stats.total_days += 1
            current += timedelta(days=1)

            if stats.total_days % BACKFILL_PROGRESS_DAYS == 0:
                logger.info(f"Backfill progress: {stats.model_dump()}")

        logger.info(f"Backfill completed: {stats.model_dump()}")
        return stats

    async def run_pattern(
        self,
        pattern_name: str,
        start_week_offset: int | None = None,
        intensity: int | None = None,
    ) -> RunResult:
        """Draw a named pattern, one commit per expanded timestamp, in order."""
        grid = get_pattern(pattern_name)
        start_week = (
            self.settings.pattern.start_week if start_week_offset is None else start_week_offset
        )
        intensity = self.settings.pattern.intensity if intensity is None else intensity

        timestamps = self.mapper.expand_pattern(grid, start_week, intensity)
        logger.info(
            f"Drawing pattern {pattern_name!r}: start_week={start_week} "
            f"cells={grid.active_cells} commits={len(timestamps)}"
        )

        result = RunResult()
        for i, stamp in enumerate(timestamps, 1):
            try:
                result.commits.append(await self.producer.create_commit(stamp))
            except Exception as e:
                result.errors += 1
                logger.error(
                    f"Pattern commit {i}/{len(timestamps)} failed: "
                    f"date={stamp:%Y-%m-%d} error={e}"
                )

        logger.info(
            f"Pattern {pattern_name!r} complete: created={result.commits_created} "
            f"errors={result.errors}"
        )
        return result

    async def run_random(self, count: int | None = None) -> RunResult:
        """Scatter commits over random graph positions."""
        pattern_cfg = self.settings.pattern
        count = pattern_cfg.random_count if count is None else count

        logger.info(f"Starting to create {count} random commits")

        result = RunResult()
        for i in range(count):
            week = self._rng.randint(0, pattern_cfg.weeks_range - 1)
            day = self._rng.randint(0, DAYS_PER_WEEK - 1)

            try:
                stamp = self.mapper.date_for_offset(week, day)
                result.commits.append(await self.producer.create_commit(stamp))
            except Exception as e:
                result.errors += 1
                logger.error(f"Random commit {i + 1}/{count} failed: error={e}")

            if (i + 1) % RANDOM_PROGRESS_COMMITS == 0:
                logger.info(f"Progress: {i + 1}/{count} commits")

        logger.info(f"Random fill complete: created={result.commits_created} errors={result.errors}")
        return result
