"""Commit producer: rewrites the marker file and commits it at a chosen date."""

import logging
import secrets
import time
from datetime import datetime
from pathlib import Path
from uuid import uuid4

from greenboard.models import CommitRecord
from greenboard.services.git import CommitResult, GitGateway
from greenboard.storage import write_marker

logger = logging.getLogger(__name__)


class CommitProducer:
    """Creates one dated commit per call."""

    def __init__(
        self,
        gateway: GitGateway,
        marker_path: Path,
        message_kind: str = "chore",
    ):
        self.gateway = gateway
        self.marker_path = marker_path
        self.message_kind = message_kind

    def generate_message(self, timestamp: datetime) -> str:
        """Message with a short random tag so same-time commits stay distinct."""
        tag = secrets.token_hex(4)
        return f"{self.message_kind}: contribution {timestamp:%Y-%m-%d %H:%M:%S} [{tag}]"

    def build_record(self, timestamp: datetime, message: str | None = None) -> CommitRecord:
        return CommitRecord(
            id=str(uuid4()),
            timestamp=timestamp,
            message=message or self.generate_message(timestamp),
            created_at_ms=time.time_ns() // 1_000_000,
        )

    async def create_commit(
        self,
        timestamp: datetime,
        message: str | None = None,
    ) -> CommitResult:
        """Write a fresh marker record and commit it dated at `timestamp`.

        Failures are logged with context and re-raised.
        """
        record = self.build_record(timestamp, message)

        try:
            if self.gateway.config.dry_run:
                logger.debug(f"[DRY RUN] Would write marker file {self.marker_path}")
            else:
                write_marker(self.marker_path, record.to_marker())

            result = await self.gateway.stage_and_commit(
                [self.marker_path], record.message, record.timestamp
            )
        except Exception as e:
            logger.error(
                f"Failed to create commit: date={timestamp.isoformat()} "
                f"message={record.message!r} error={e}"
            )
            raise

        logger.info(
            f"Commit created: date={timestamp.isoformat()} "
            f"message={record.message!r} commit={result.commit}"
        )
        return result
