"""Greenboard CLI entry point."""

import argparse
import asyncio
import logging
import sys
from datetime import date

from dotenv import load_dotenv
from pydantic import ValidationError

from greenboard import __version__
from greenboard.config import ConfigError, Settings, get_settings, validate_settings
from greenboard.observability import configure_logging, initialize_logfire
from greenboard.patterns import PatternNotFoundError, list_patterns
from greenboard.runtime import (
    build_services,
    run_backfill,
    run_once,
    run_pattern,
    run_random,
    run_scheduled,
)
from greenboard.storage import read_marker

logger = logging.getLogger(__name__)


def _parse_date(value: str) -> date:
    try:
        return date.fromisoformat(value)
    except ValueError:
        raise argparse.ArgumentTypeError(f"Invalid date (expected YYYY-MM-DD): {value}")


def _bootstrap(args: argparse.Namespace) -> Settings | None:
    """Load settings, configure logging and validate. None means abort."""
    try:
        settings = get_settings()
    except (ValidationError, ConfigError) as e:
        print(f"\nConfiguration Error:\n{e}\n", file=sys.stderr)
        return None

    configure_logging(settings, debug=getattr(args, "debug", False))
    initialize_logfire(settings)

    errors = validate_settings(settings)
    if errors and settings.is_production:
        logger.error(f"Configuration validation failed: errors={errors}")
        return None
    if errors:
        logger.warning(f"Configuration warnings: errors={errors}")

    logger.info(
        f"Starting application: env={settings.environment} "
        f"dry_run={settings.app.dry_run} "
        f"schedule_enabled={settings.schedule.enabled} "
        f"backfill_enabled={settings.backfill.enabled}"
    )
    return settings


def cmd_once(args: argparse.Namespace) -> int:
    """Create today's contributions and push."""
    settings = _bootstrap(args)
    if settings is None:
        return 1

    try:
        result = asyncio.run(run_once(build_services(settings)))
    except Exception as e:
        logger.error(f"Application error: {e}", exc_info=True)
        return 1

    print(f"\n✓ Created {result.commits_created} commits ({result.errors} failed)\n")
    return 0


def cmd_backfill(args: argparse.Namespace) -> int:
    """Backfill a historical date range and push."""
    settings = _bootstrap(args)
    if settings is None:
        return 1

    try:
        stats = asyncio.run(
            run_backfill(
                build_services(settings),
                start_date=args.start,
                end_date=args.end,
                skip_weekends=True if args.skip_weekends else None,
                min_commits=args.min,
                max_commits=args.max,
            )
        )
    except Exception as e:
        logger.error(f"Application error: {e}", exc_info=True)
        return 1

    print("\n✓ Backfill complete\n")
    print(f"Days processed: {stats.total_days}")
    print(f"Commits created: {stats.total_commits}")
    print(f"Weekend days skipped: {stats.skipped_days}")
    print(f"Errors: {stats.errors}\n")
    return 0


def cmd_pattern(args: argparse.Namespace) -> int:
    """Draw a pattern on the contribution graph and push."""
    settings = _bootstrap(args)
    if settings is None:
        return 1

    try:
        result = asyncio.run(
            run_pattern(
                build_services(settings),
                args.name,
                start_week=args.start_week,
                intensity=args.intensity,
            )
        )
    except PatternNotFoundError as e:
        logger.error(str(e))
        return 1
    except Exception as e:
        logger.error(f"Application error: {e}", exc_info=True)
        return 1

    print(f"\n✓ Pattern {args.name!r}: {result.commits_created} commits ({result.errors} failed)\n")
    return 0


def cmd_random(args: argparse.Namespace) -> int:
    """Scatter random commits over the graph window and push."""
    settings = _bootstrap(args)
    if settings is None:
        return 1

    try:
        result = asyncio.run(run_random(build_services(settings), args.count))
    except Exception as e:
        logger.error(f"Application error: {e}", exc_info=True)
        return 1

    print(f"\n✓ Created {result.commits_created} random commits ({result.errors} failed)\n")
    return 0


def cmd_patterns(args: argparse.Namespace) -> int:
    """List the built-in patterns."""
    print("\nAvailable patterns:")
    for name in list_patterns():
        print(f"  • {name}")
    print()
    return 0


def cmd_schedule(args: argparse.Namespace) -> int:
    """Run the scheduler (and control surface) until interrupted."""
    settings = _bootstrap(args)
    if settings is None:
        return 1

    try:
        asyncio.run(run_scheduled(build_services(settings)))
    except KeyboardInterrupt:
        print("\n\nReceived interrupt signal. Shutting down...\n")
    except Exception as e:
        logger.error(f"Failed to start scheduled mode: {e}", exc_info=True)
        return 1

    return 0


def cmd_start(args: argparse.Namespace) -> int:
    """Pick the run mode from configuration: backfill, scheduled or once."""
    try:
        settings = get_settings()
    except (ValidationError, ConfigError) as e:
        print(f"\nConfiguration Error:\n{e}\n", file=sys.stderr)
        return 1

    if settings.backfill.enabled:
        args.start = args.end = args.min = args.max = None
        args.skip_weekends = False
        return cmd_backfill(args)
    if settings.schedule.enabled:
        return cmd_schedule(args)
    return cmd_once(args)


def cmd_config(args: argparse.Namespace) -> int:
    """Display merged configuration."""
    try:
        settings = get_settings()
    except ValidationError as e:
        print("\nConfiguration Error:\n")
        for error in e.errors():
            print(f"  • {'.'.join(str(x) for x in error['loc'])}: {error['msg']}")
        print()
        return 1
    except ConfigError as e:
        print(f"\nFailed to load configuration: {e}\n")
        return 1

    print("\n=== Greenboard Configuration ===\n")
    print(f"Environment: {settings.environment}")
    print(f"Dry Run: {settings.app.dry_run}\n")

    print("Git:")
    print(f"  Repository: {settings.git.repo_path}")
    print(f"  Author: {settings.git.user_name} <{settings.git.user_email}>")
    print(f"  Remote: {settings.git.remote_name} -> {settings.git.repo_url or '(not set)'}")
    print(f"  Branch: {settings.git.branch}\n")

    print("Commits:")
    print(f"  Per Day: {settings.commits.min_per_day}-{settings.commits.max_per_day}")
    print(f"  Marker File: {settings.marker_path}\n")

    print("Schedule:")
    print(f"  Enabled: {settings.schedule.enabled}")
    print(f"  Cron: {settings.schedule.cron} ({settings.schedule.timezone})\n")

    print("Backfill:")
    print(f"  Enabled: {settings.backfill.enabled}")
    print(f"  Range: {settings.backfill.start_date} -> {settings.backfill.end_date}")
    print(f"  Skip Weekends: {settings.backfill.skip_weekends}")
    print(f"  Per Day: {settings.backfill.min_commits}-{settings.backfill.max_commits}\n")

    print("Retry:")
    print(f"  Attempts: {settings.app.retry_attempts}")
    print(f"  Base Delay: {settings.app.retry_delay_ms}ms\n")

    errors = validate_settings(settings)
    if errors:
        print("Warnings:")
        for error in errors:
            print(f"  • {error}")
        print()

    return 0


def cmd_history(args: argparse.Namespace) -> int:
    """Show recent commits in the working repository."""
    settings = _bootstrap(args)
    if settings is None:
        return 1

    services = build_services(settings)
    try:
        entries = asyncio.run(services.gateway.log(args.limit))
    except Exception as e:
        logger.error(f"Failed to read history: {e}")
        return 1

    if not entries:
        print("\n(no commits yet)\n")
        return 0

    print()
    for entry in entries:
        print(f"{entry.hash[:12]}  {entry.author_date.isoformat()}  {entry.subject}")

    marker = read_marker(settings.marker_path)
    if marker:
        print(f"\nMarker: id={marker.get('id')} date={marker.get('date')}")
    print()
    return 0


def main() -> int:
    """Main CLI entry point."""
    load_dotenv()

    parser = argparse.ArgumentParser(
        description="Greenboard: scheduled contribution history generator",
        formatter_class=argparse.RawDescriptionHelpFormatter,
    )

    parser.add_argument(
        "--version",
        action="version",
        version=f"Greenboard {__version__}",
    )
    parser.add_argument(
        "--debug",
        action="store_true",
        help="Enable debug logging",
    )

    subparsers = parser.add_subparsers(dest="command", help="Available commands")

    parser_once = subparsers.add_parser(
        "once",
        help="Create today's contributions and push",
    )
    parser_once.set_defaults(func=cmd_once)

    parser_backfill = subparsers.add_parser(
        "backfill",
        help="Fill a historical date range (defaults from configuration)",
    )
    parser_backfill.add_argument("--start", type=_parse_date, help="First day (YYYY-MM-DD)")
    parser_backfill.add_argument("--end", type=_parse_date, help="Last day (YYYY-MM-DD)")
    parser_backfill.add_argument(
        "--skip-weekends",
        action="store_true",
        help="Do not create commits on Saturdays and Sundays",
    )
    parser_backfill.add_argument("--min", type=int, help="Minimum commits per day")
    parser_backfill.add_argument("--max", type=int, help="Maximum commits per day")
    parser_backfill.set_defaults(func=cmd_backfill)

    parser_pattern = subparsers.add_parser(
        "pattern",
        help="Draw a pattern on the contribution graph",
    )
    parser_pattern.add_argument("name", nargs="?", default="heart", help="Pattern name")
    parser_pattern.add_argument("--start-week", type=int, help="Week offset of the first column")
    parser_pattern.add_argument("--intensity", type=int, help="Commits per pixel")
    parser_pattern.set_defaults(func=cmd_pattern)

    parser_random = subparsers.add_parser(
        "random",
        help="Scatter random commits over the graph window",
    )
    parser_random.add_argument("--count", type=int, help="Number of commits")
    parser_random.set_defaults(func=cmd_random)

    parser_patterns = subparsers.add_parser(
        "patterns",
        help="List available patterns",
    )
    parser_patterns.set_defaults(func=cmd_patterns)

    parser_schedule = subparsers.add_parser(
        "schedule",
        help="Run on the configured cron schedule until interrupted",
    )
    parser_schedule.set_defaults(func=cmd_schedule)

    parser_start = subparsers.add_parser(
        "start",
        help="Choose backfill, scheduled or single run from configuration",
    )
    parser_start.set_defaults(func=cmd_start)

    parser_config = subparsers.add_parser(
        "config",
        help="Display merged configuration",
    )
    parser_config.set_defaults(func=cmd_config)

    parser_history = subparsers.add_parser(
        "history",
        help="Show recent commits in the working repository",
    )
    parser_history.add_argument("--limit", type=int, default=10, help="Number of commits")
    parser_history.set_defaults(func=cmd_history)

    args = parser.parse_args()

    if not hasattr(args, "func"):
        parser.print_help()
        return 1

    return args.func(args)


if __name__ == "__main__":
    sys.exit(main())
