"""
Unit Tests: Contribution Scheduler

Test cases:
- Overlapping runs are dropped, not queued
- Success / failure counters
- Cron and timezone validation
- Start / stop lifecycle and shutdown drain
"""

import asyncio
import sys
from pathlib import Path

import pytest

sys.path.insert(0, str(Path(__file__).parent.parent.parent))

from greenboard.config import ScheduleConfig
from greenboard.models import RunResult
from greenboard.scheduler import ContributionScheduler, SchedulerError, build_trigger
from greenboard.services.git import GitPushError, PullResult, PushOutcome, PushResult


class FakeGateway:
    def __init__(self, push_error: Exception | None = None):
        self.push_error = push_error
        self.calls: list[str] = []

    async def pull(self):
        self.calls.append("pull")
        return PullResult(pulled=True)

    async def push(self):
        self.calls.append("push")
        if self.push_error:
            raise self.push_error
        return PushResult(outcome=PushOutcome.PUSHED, remote="origin", branch="main", attempts=1)


class FakeOrchestrator:
    def __init__(self, gate: asyncio.Event | None = None, error: Exception | None = None):
        self.gate = gate
        self.error = error
        self.runs = 0

    async def run_today(self):
        self.runs += 1
        if self.gate is not None:
            await self.gate.wait()
        if self.error:
            raise self.error
        return RunResult()


def _scheduler(gateway=None, orchestrator=None, **config) -> ContributionScheduler:
    return ContributionScheduler(
        gateway or FakeGateway(),
        orchestrator or FakeOrchestrator(),
        ScheduleConfig(**config),
    )


class TestExecuteTask:
    def test_successful_run_updates_counters(self):
        gateway = FakeGateway()
        scheduler = _scheduler(gateway)

        ran = asyncio.run(scheduler.execute_task())

        stats = scheduler.status().stats
        assert ran is True
        assert stats.total_runs == 1
        assert stats.successful_runs == 1
        assert stats.failed_runs == 0
        assert gateway.calls == ["pull", "push"]
        assert scheduler.status().last_run is not None
        assert not scheduler.executing

    def test_push_failure_counts_as_failed_run(self):
        scheduler = _scheduler(FakeGateway(push_error=GitPushError("rejected", attempts=3)))

        asyncio.run(scheduler.execute_task())

        stats = scheduler.status().stats
        assert stats.total_runs == 1
        assert stats.failed_runs == 1
        assert stats.successful_runs == 0
        assert not scheduler.executing

    def test_orchestrator_failure_skips_push(self):
        gateway = FakeGateway()
        scheduler = _scheduler(gateway, FakeOrchestrator(error=RuntimeError("boom")))

        asyncio.run(scheduler.execute_task())

        assert gateway.calls == ["pull"]
        assert scheduler.status().stats.failed_runs == 1

    def test_concurrent_trigger_is_dropped(self):
        async def run():
            gate = asyncio.Event()
            orchestrator = FakeOrchestrator(gate=gate)
            scheduler = _scheduler(orchestrator=orchestrator)

            first = asyncio.create_task(scheduler.execute_task())
            await asyncio.sleep(0)
            assert scheduler.executing

            skipped = await scheduler.run_now()
            runs_during = scheduler.status().stats.total_runs

            gate.set()
            completed = await first
            return scheduler, orchestrator, skipped, runs_during, completed

        scheduler, orchestrator, skipped, runs_during, completed = asyncio.run(run())

        assert skipped is False
        assert completed is True
        assert runs_during == 1
        assert orchestrator.runs == 1
        assert scheduler.status().stats.total_runs == 1
        assert scheduler.status().stats.successful_runs == 1

    def test_trigger_runs_in_background(self):
        async def run():
            scheduler = _scheduler()
            task = scheduler.trigger()
            assert not task.done()
            return scheduler, await task

        scheduler, ran = asyncio.run(run())

        assert ran is True
        assert scheduler.status().stats.successful_runs == 1


class TestLifecycle:
    @pytest.mark.parametrize(
        "cron, tz",
        [
            ("not a cron", "UTC"),
            ("61 9 * * *", "UTC"),
            ("0 9 * * *", "Mars/Olympus_Mons"),
        ],
    )
    def test_invalid_schedule_rejected(self, cron, tz):
        with pytest.raises(SchedulerError):
            build_trigger(cron, tz)

    def test_start_rejects_invalid_cron_without_arming(self):
        scheduler = _scheduler()

        async def run():
            with pytest.raises(SchedulerError):
                scheduler.start(cron="every day")

        asyncio.run(run())

        assert not scheduler.running

    def test_start_and_stop(self):
        async def run():
            scheduler = _scheduler(cron="30 6 * * 1-5", timezone="Europe/Berlin")
            scheduler.start()
            status = scheduler.status()
            scheduler.stop()
            scheduler.stop()
            return scheduler, status

        scheduler, status = asyncio.run(run())

        assert status.running
        assert status.next_run is not None
        assert status.next_run.hour == 6 and status.next_run.minute == 30
        assert status.config.cron == "30 6 * * 1-5"
        assert status.config.timezone == "Europe/Berlin"
        assert not scheduler.running
        assert scheduler.next_run() is None

    def test_double_start_rejected(self):
        async def run():
            scheduler = _scheduler()
            scheduler.start()
            try:
                with pytest.raises(SchedulerError):
                    scheduler.start()
            finally:
                scheduler.stop()

        asyncio.run(run())

    def test_status_before_start(self):
        status = _scheduler().status()

        assert not status.running
        assert status.next_run is None
        assert status.last_run is None
        assert status.config.cron == "0 9 * * *"

    def test_shutdown_waits_for_running_task(self):
        async def run():
            gate = asyncio.Event()
            scheduler = _scheduler(orchestrator=FakeOrchestrator(gate=gate))
            scheduler.start()

            task = asyncio.create_task(scheduler.execute_task())
            await asyncio.sleep(0)
            asyncio.get_running_loop().call_later(0.05, gate.set)

            await scheduler.shutdown()
            finished = task.done()
            await task
            return scheduler, finished

        scheduler, finished = asyncio.run(run())

        assert finished
        assert not scheduler.running
        assert scheduler.status().stats.successful_runs == 1

    def test_shutdown_gives_up_after_drain_timeout(self):
        async def run():
            gate = asyncio.Event()
            scheduler = _scheduler(
                orchestrator=FakeOrchestrator(gate=gate), drain_timeout_seconds=0.01
            )

            task = asyncio.create_task(scheduler.execute_task())
            await asyncio.sleep(0)
            await scheduler.shutdown()
            still_running = scheduler.executing

            gate.set()
            await task
            return still_running

        assert asyncio.run(run()) is True
