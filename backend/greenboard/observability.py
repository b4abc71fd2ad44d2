"""Log sink setup and optional Logfire cloud observability."""

import logging
from logging.handlers import RotatingFileHandler

import logfire

from greenboard import __version__
from greenboard.config import Settings

logger = logging.getLogger(__name__)

LOG_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"
DATE_FORMAT = "%Y-%m-%d %H:%M:%S"


def configure_logging(settings: Settings, debug: bool = False) -> None:
    """
    Configure the root logger with console and rotating file sinks.

    Sinks:
    - console (stderr)
    - <logging.file> for all records at the configured level
    - <logging.file stem>.error.log for ERROR and above

    Args:
        settings: Application settings containing the logging section
        debug: Force DEBUG level regardless of configuration
    """
    level = logging.DEBUG if debug else getattr(logging, settings.logging.level)
    formatter = logging.Formatter(LOG_FORMAT, datefmt=DATE_FORMAT)

    root_logger = logging.getLogger()
    root_logger.setLevel(level)
    for handler in list(root_logger.handlers):
        root_logger.removeHandler(handler)
        handler.close()

    console = logging.StreamHandler()
    console.setFormatter(formatter)
    root_logger.addHandler(console)

    log_file = settings.logging.file
    try:
        log_file.parent.mkdir(parents=True, exist_ok=True)

        file_handler = RotatingFileHandler(
            log_file,
            maxBytes=settings.logging.max_bytes,
            backupCount=settings.logging.backup_count,
            encoding="utf-8",
        )
        file_handler.setFormatter(formatter)
        root_logger.addHandler(file_handler)

        error_handler = RotatingFileHandler(
            log_file.with_name(f"{log_file.stem}.error{log_file.suffix or '.log'}"),
            maxBytes=settings.logging.max_bytes,
            backupCount=settings.logging.backup_count,
            encoding="utf-8",
        )
        error_handler.setLevel(logging.ERROR)
        error_handler.setFormatter(formatter)
        root_logger.addHandler(error_handler)
    except OSError as e:
        logger.warning(f"File logging disabled ({log_file}): {e}")

    # APScheduler reports every job submission at INFO
    logging.getLogger("apscheduler").setLevel(max(level, logging.WARNING))


def initialize_logfire(settings: Settings) -> None:
    """
    Initialize Logfire and bridge Python logging into it.

    Must be called ONCE at application startup, after configure_logging().
    Observability is optional: a missing token or a failed setup only logs
    a message and the application keeps running.

    Args:
        settings: Application settings containing Logfire token
    """
    if not settings.logfire_token:
        logger.debug("Logfire token not set - observability disabled")
        return

    try:
        logfire.configure(
            token=settings.logfire_token,
            service_name="greenboard",
            service_version=__version__,
            environment="dry-run" if settings.app.dry_run else settings.environment,
        )

        logging.getLogger().addHandler(logfire.LogfireLoggingHandler())

        try:
            logfire.instrument_system_metrics()
        except Exception as metrics_error:
            logger.debug(f"System metrics instrumentation skipped: {metrics_error}")

        logger.info("Logfire cloud tracking initialized")

    except Exception as e:
        logger.warning(f"Failed to initialize Logfire: {e}")
