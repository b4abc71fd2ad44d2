"""Git version-control gateway."""

from .client import GitGateway, classify_failure
from .config import GitGatewayConfig
from .exceptions import GitCommandError, GitError, GitPushError, GitTimeoutError
from .models import (
    CommitResult,
    FailureKind,
    LogEntry,
    PullResult,
    PushOutcome,
    PushResult,
    RepoStatus,
)

__all__ = [
    "GitGateway",
    "classify_failure",
    "GitGatewayConfig",
    "CommitResult",
    "FailureKind",
    "LogEntry",
    "PullResult",
    "PushOutcome",
    "PushResult",
    "RepoStatus",
    "GitError",
    "GitCommandError",
    "GitPushError",
    "GitTimeoutError",
]
