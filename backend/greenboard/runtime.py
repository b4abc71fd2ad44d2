"""Composition root and run-mode entry points.

Each entry point initializes the repository, runs one orchestration mode
and pushes. run_scheduled() keeps the scheduler (and optionally the HTTP
control surface) alive until a shutdown signal arrives.
"""

import asyncio
import logging
import signal
from dataclasses import dataclass
from datetime import date

import uvicorn

from greenboard.api.server import create_app
from greenboard.config import Settings
from greenboard.models import BackfillStats, RunResult
from greenboard.patterns import CoordinateMapper, get_pattern
from greenboard.pipeline import RunOrchestrator
from greenboard.producer import CommitProducer
from greenboard.scheduler import ContributionScheduler
from greenboard.services.git import GitGateway, GitGatewayConfig

logger = logging.getLogger(__name__)


@dataclass
class Services:
    """Explicitly wired components shared by one process."""

    settings: Settings
    gateway: GitGateway
    orchestrator: RunOrchestrator
    scheduler: ContributionScheduler


def build_services(settings: Settings) -> Services:
    gateway = GitGateway(GitGatewayConfig.from_settings(settings))
    producer = CommitProducer(
        gateway,
        marker_path=settings.marker_path,
        message_kind=settings.commits.message_kind,
    )
    mapper = CoordinateMapper(
        years_back=settings.pattern.years_back,
        timezone=settings.schedule.timezone,
    )
    orchestrator = RunOrchestrator(producer, mapper, settings)
    scheduler = ContributionScheduler(gateway, orchestrator, settings.schedule)
    return Services(
        settings=settings,
        gateway=gateway,
        orchestrator=orchestrator,
        scheduler=scheduler,
    )


async def run_once(services: Services) -> RunResult:
    """Pull, create today's commits, push."""
    logger.info("Running in single execution mode")

    try:
        await services.gateway.initialize()
        await services.gateway.pull()
        result = await services.orchestrator.run_today()
        await services.gateway.push()
    except Exception as e:
        logger.error(f"Single execution failed: {e}")
        raise

    logger.info(
        f"Single execution completed successfully: "
        f"commits_created={result.commits_created} errors={result.errors}"
    )
    return result


async def run_backfill(
    services: Services,
    start_date: date | None = None,
    end_date: date | None = None,
    skip_weekends: bool | None = None,
    min_commits: int | None = None,
    max_commits: int | None = None,
) -> BackfillStats:
    """Fill a historical date range, then push."""
    start_date = start_date or services.settings.backfill.start_date
    end_date = end_date or services.settings.backfill.end_date

    if not start_date or not end_date:
        raise ValueError(
            "Backfill start and end dates are required "
            "(BACKFILL__START_DATE, BACKFILL__END_DATE)"
        )

    logger.info(f"Running in backfill mode: start={start_date} end={end_date}")

    try:
        await services.gateway.initialize()
        stats = await services.orchestrator.run_backfill(
            start_date,
            end_date,
            skip_weekends=skip_weekends,
            min_commits=min_commits,
            max_commits=max_commits,
        )
        await services.gateway.push()
    except Exception as e:
        logger.error(f"Backfill failed: {e}")
        raise

    logger.info(f"Backfill completed successfully: {stats.model_dump()}")
    return stats


async def run_pattern(
    services: Services,
    pattern_name: str,
    start_week: int | None = None,
    intensity: int | None = None,
) -> RunResult:
    """Draw a named pattern, then push."""
    # Fail on an unknown name before touching the repository
    get_pattern(pattern_name)

    try:
        await services.gateway.initialize()
        result = await services.orchestrator.run_pattern(pattern_name, start_week, intensity)
        await services.gateway.push()
    except Exception as e:
        logger.error(f"Pattern run failed: {e}")
        raise

    return result


async def run_random(services: Services, count: int | None = None) -> RunResult:
    """Scatter commits over random graph positions, then push."""
    try:
        await services.gateway.initialize()
        result = await services.orchestrator.run_random(count)
        await services.gateway.push()
    except Exception as e:
        logger.error(f"Random fill failed: {e}")
        raise

    return result


async def run_scheduled(
    services: Services,
    stop_event: asyncio.Event | None = None,
) -> None:
    """Start the scheduler and control surface; block until shutdown."""
    settings = services.settings
    scheduler = services.scheduler
    stop = stop_event or asyncio.Event()
    loop = asyncio.get_running_loop()

    logger.info("Running in scheduled mode")

    await services.gateway.initialize()
    scheduler.start()

    server: uvicorn.Server | None = None
    server_task: asyncio.Task | None = None
    if settings.health.enabled:
        app = create_app(scheduler, settings)
        server = uvicorn.Server(
            uvicorn.Config(
                app,
                host=settings.health.host,
                port=settings.health.port,
                log_level=settings.logging.level.lower(),
                log_config=None,
            )
        )
        server_task = asyncio.create_task(server.serve())
        logger.info(
            f"Control surface listening on {settings.health.host}:{settings.health.port} "
            "(/health, /status, POST /trigger)"
        )

    installed: list[signal.Signals] = []
    for sig in (signal.SIGINT, signal.SIGTERM):
        try:
            loop.add_signal_handler(sig, stop.set)
            installed.append(sig)
        except (NotImplementedError, RuntimeError):
            # Signal handlers are unavailable off the main thread and on Windows
            pass

    logger.info(
        f"Application started in scheduled mode: "
        f"schedule={settings.schedule.cron!r} timezone={settings.schedule.timezone}"
    )

    stop_waiter = asyncio.create_task(stop.wait())
    waiters: set[asyncio.Task] = {stop_waiter}
    if server_task is not None:
        waiters.add(server_task)

    try:
        await asyncio.wait(waiters, return_when=asyncio.FIRST_COMPLETED)
        logger.info("Shutting down gracefully...")
        await scheduler.shutdown()
    finally:
        stop_waiter.cancel()
        if server is not None and server_task is not None:
            server.should_exit = True
            await server_task
            logger.info("Control surface stopped")
        for sig in installed:
            loop.remove_signal_handler(sig)
