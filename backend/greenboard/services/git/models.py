"""Git service models."""

from datetime import datetime
from enum import Enum

from pydantic import BaseModel, Field


class FailureKind(str, Enum):
    """Stable classification of git failures."""

    REMOTE_ABSENT = "remote_absent"  # Remote repository or branch missing/unreachable
    NOTHING_TO_PULL = "nothing_to_pull"  # No upstream ref to pull from yet
    LOCAL_CHANGES = "local_changes"  # Working tree blocks a rebase pull
    OTHER = "other"


class PushOutcome(str, Enum):
    PUSHED = "pushed"
    LOCAL_ONLY = "local_only"
    NOTHING_TO_PUSH = "nothing_to_push"


class CommitResult(BaseModel):
    """Result of a stage-and-commit call."""

    commit: str
    date: datetime
    message: str
    changes: int = 0
    dry_run: bool = False


class PushResult(BaseModel):
    """Result of a push call. Fatal failures raise GitPushError instead."""

    outcome: PushOutcome
    remote: str
    branch: str
    attempts: int = 0
    dry_run: bool = False
    reason: str | None = None

    @property
    def pushed(self) -> bool:
        return self.outcome == PushOutcome.PUSHED

    @property
    def local(self) -> bool:
        return self.outcome == PushOutcome.LOCAL_ONLY


class PullResult(BaseModel):
    """Result of a pull call. Skipped pulls carry the failure kind."""

    pulled: bool = False
    summary: str = ""
    skipped: FailureKind | None = None
    dry_run: bool = False


class LogEntry(BaseModel):
    """One commit from `git log`."""

    hash: str
    author_date: datetime
    subject: str = ""


class RepoStatus(BaseModel):
    """Porcelain working tree status."""

    branch: str | None = None
    changed: list[str] = Field(default_factory=list)

    @property
    def clean(self) -> bool:
        return not self.changed
