"""
Unit Tests: Run Orchestrator

Test cases:
- Daily commit count bounds and time spread
- Backfill day accounting, weekend skipping and error counting
- Pattern emission order
- Random fill
"""

import asyncio
import logging
import random
import sys
from datetime import date, datetime, timedelta, timezone
from pathlib import Path

import pytest

sys.path.insert(0, str(Path(__file__).parent.parent.parent))

from greenboard.config import BackfillConfig, CommitConfig, PatternConfig, Settings
from greenboard.patterns import CoordinateMapper, PatternNotFoundError
from greenboard.pipeline import RunOrchestrator
from greenboard.services.git import CommitResult

NOW = datetime(2026, 3, 15, 8, 0, tzinfo=timezone.utc)


class FakeProducer:
    def __init__(self, fail_on: set[int] | None = None):
        self.timestamps: list[datetime] = []
        self.attempts = 0
        self.fail_on = fail_on or set()

    async def create_commit(self, timestamp, message=None):
        self.attempts += 1
        if self.attempts in self.fail_on:
            raise RuntimeError("index.lock exists")
        self.timestamps.append(timestamp)
        return CommitResult(commit=f"sha{self.attempts}", date=timestamp, message="m")


def _settings(**sections) -> Settings:
    return Settings(_env_file=None, **sections)


def _orchestrator(producer, settings=None, seed=7):
    sleeps: list[float] = []

    async def fake_sleep(seconds):
        sleeps.append(seconds)

    settings = settings or _settings()
    mapper = CoordinateMapper(years_back=1, timezone="UTC", today=lambda: NOW.date())
    orchestrator = RunOrchestrator(
        producer,
        mapper,
        settings,
        rng=random.Random(seed),
        sleep=fake_sleep,
        now=lambda: NOW,
    )
    return orchestrator, sleeps


class TestRunToday:
    def test_fixed_count_when_min_equals_max(self):
        producer = FakeProducer()
        orchestrator, sleeps = _orchestrator(
            producer, _settings(commits=CommitConfig(min_per_day=3, max_per_day=3))
        )

        result = asyncio.run(orchestrator.run_today())

        assert result.commits_created == 3
        assert result.errors == 0
        assert sleeps == [0.1, 0.1, 0.1]

    @pytest.mark.parametrize("seed", range(20))
    def test_count_within_bounds(self, seed):
        producer = FakeProducer()
        orchestrator, _ = _orchestrator(
            producer, _settings(commits=CommitConfig(min_per_day=1, max_per_day=5)), seed=seed
        )

        result = asyncio.run(orchestrator.run_today())

        assert 1 <= result.commits_created <= 5

    def test_times_spread_over_twelve_hours(self):
        producer = FakeProducer()
        orchestrator, _ = _orchestrator(
            producer, _settings(commits=CommitConfig(min_per_day=10, max_per_day=10))
        )

        asyncio.run(orchestrator.run_today())

        for stamp in producer.timestamps:
            assert NOW <= stamp < NOW + timedelta(hours=12)

    def test_failed_commit_does_not_abort_batch(self):
        producer = FakeProducer(fail_on={2})
        orchestrator, _ = _orchestrator(
            producer, _settings(commits=CommitConfig(min_per_day=3, max_per_day=3))
        )

        result = asyncio.run(orchestrator.run_today())

        assert result.commits_created == 2
        assert result.errors == 1

    def test_zero_commits(self):
        producer = FakeProducer()
        orchestrator, _ = _orchestrator(
            producer, _settings(commits=CommitConfig(min_per_day=0, max_per_day=0))
        )

        result = asyncio.run(orchestrator.run_today())

        assert result.commits_created == 0
        assert producer.attempts == 0


class TestRunBackfill:
    def test_fixed_counts_over_three_days(self):
        producer = FakeProducer()
        orchestrator, sleeps = _orchestrator(producer)

        stats = asyncio.run(
            orchestrator.run_backfill(
                date(2025, 1, 1), date(2025, 1, 3), skip_weekends=False, min_commits=2, max_commits=2
            )
        )

        assert stats.total_days == 3
        assert stats.total_commits == 6
        assert stats.skipped_days == 0
        assert stats.errors == 0
        assert sleeps == [0.05] * 6

    def test_skip_weekends(self):
        producer = FakeProducer()
        orchestrator, _ = _orchestrator(producer)
        start, end = date(2025, 1, 1), date(2025, 1, 14)  # Wed .. Tue, 4 weekend days

        stats = asyncio.run(
            orchestrator.run_backfill(start, end, skip_weekends=True, min_commits=1, max_commits=3)
        )

        assert stats.skipped_days == 4
        assert stats.total_days + stats.skipped_days == (end - start).days + 1
        assert all(stamp.weekday() < 5 for stamp in producer.timestamps)

    def test_commit_times_between_nine_and_nine(self):
        producer = FakeProducer()
        orchestrator, _ = _orchestrator(producer)

        asyncio.run(
            orchestrator.run_backfill(date(2025, 2, 1), date(2025, 2, 10), min_commits=4, max_commits=4)
        )

        for stamp in producer.timestamps:
            assert 9 <= stamp.hour < 21
            assert date(2025, 2, 1) <= stamp.date() <= date(2025, 2, 10)

    def test_uses_configured_defaults(self):
        producer = FakeProducer()
        settings = _settings(
            backfill=BackfillConfig(skip_weekends=True, min_commits=1, max_commits=1)
        )
        orchestrator, _ = _orchestrator(producer, settings)

        stats = asyncio.run(orchestrator.run_backfill(date(2025, 1, 4), date(2025, 1, 6)))

        assert stats.skipped_days == 2
        assert stats.total_commits == 1

    def test_errors_counted_without_abort(self):
        producer = FakeProducer(fail_on={1, 4})
        orchestrator, _ = _orchestrator(producer)

        stats = asyncio.run(
            orchestrator.run_backfill(date(2025, 1, 1), date(2025, 1, 3), min_commits=2, max_commits=2)
        )

        assert stats.errors == 2
        assert stats.total_commits == 4
        assert stats.total_days == 3

    def test_progress_every_seven_days(self, caplog):
        orchestrator, _ = _orchestrator(FakeProducer())

        with caplog.at_level(logging.INFO, logger="greenboard.pipeline"):
            asyncio.run(
                orchestrator.run_backfill(date(2025, 3, 1), date(2025, 3, 14), min_commits=0, max_commits=0)
            )

        assert caplog.text.count("Backfill progress") == 2

    def test_rejects_reversed_range(self):
        orchestrator, _ = _orchestrator(FakeProducer())

        with pytest.raises(ValueError):
            asyncio.run(orchestrator.run_backfill(date(2025, 1, 5), date(2025, 1, 1)))


class TestRunPattern:
    def test_commits_follow_expansion_order(self):
        producer = FakeProducer()
        orchestrator, _ = _orchestrator(producer)

        result = asyncio.run(orchestrator.run_pattern("hi", start_week_offset=4, intensity=2))

        from greenboard.patterns import get_pattern

        expected = orchestrator.mapper.expand_pattern(get_pattern("hi"), 4, 2)
        assert producer.timestamps == expected
        assert result.commits_created == len(expected)

    def test_defaults_from_settings(self):
        producer = FakeProducer()
        settings = _settings(pattern=PatternConfig(intensity=1, start_week=0))
        orchestrator, _ = _orchestrator(producer, settings)

        asyncio.run(orchestrator.run_pattern("heart"))

        assert producer.timestamps[0] == orchestrator.mapper.date_for_offset(0, 1)

    def test_unknown_pattern_creates_nothing(self):
        producer = FakeProducer()
        orchestrator, _ = _orchestrator(producer)

        with pytest.raises(PatternNotFoundError):
            asyncio.run(orchestrator.run_pattern("spiral", 0))

        assert producer.attempts == 0


class TestRunRandom:
    def test_random_positions_inside_window(self):
        producer = FakeProducer()
        orchestrator, _ = _orchestrator(producer)

        result = asyncio.run(orchestrator.run_random(25))

        assert result.commits_created == 25
        origin = orchestrator.mapper.origin()
        for stamp in producer.timestamps:
            assert origin <= stamp.date() < origin + timedelta(weeks=54)
