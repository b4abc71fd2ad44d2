"""Pydantic models shared by the producer, orchestrator and scheduler."""

from datetime import datetime

from pydantic import BaseModel, ConfigDict, Field

from greenboard.services.git.models import CommitResult


# ============================================================================
# Commit Records
# ============================================================================


class CommitRecord(BaseModel):
    """One unit of fabricated history, serialized into the marker file."""

    model_config = ConfigDict(frozen=True)

    id: str
    timestamp: datetime  # Authored date of the commit, not wall-clock
    message: str
    created_at_ms: int  # Wall-clock epoch millis when the record was built

    def to_marker(self) -> dict:
        """Marker file payload: {date, message, timestamp, id}."""
        return {
            "date": self.timestamp.isoformat(),
            "message": self.message,
            "timestamp": self.created_at_ms,
            "id": self.id,
        }


# ============================================================================
# Run Results
# ============================================================================


class RunResult(BaseModel):
    """Outcome of one orchestrated batch (today, pattern or random fill)."""

    commits: list[CommitResult] = Field(default_factory=list)
    errors: int = 0

    @property
    def commits_created(self) -> int:
        return len(self.commits)


class BackfillStats(BaseModel):
    """Aggregate outcome of a backfill over a date range."""

    total_days: int = 0
    total_commits: int = 0
    skipped_days: int = 0
    errors: int = 0


# ============================================================================
# Scheduler State
# ============================================================================


class ScheduleStats(BaseModel):
    """Cumulative run counters."""

    total_runs: int = 0
    successful_runs: int = 0
    failed_runs: int = 0


class ScheduleState(BaseModel):
    """Process-wide scheduler state, mutated only by the scheduler."""

    running: bool = False
    executing: bool = False
    last_run_at: datetime | None = None
    stats: ScheduleStats = Field(default_factory=ScheduleStats)


class ScheduleSettingsView(BaseModel):
    cron: str
    timezone: str


class SchedulerStatus(BaseModel):
    """Read-only snapshot exposed to the control surface."""

    running: bool
    executing: bool
    last_run: datetime | None
    next_run: datetime | None
    stats: ScheduleStats
    config: ScheduleSettingsView
