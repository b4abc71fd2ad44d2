"""Async git gateway: init, stage/commit, push and pull with failure classification."""

from __future__ import annotations

import asyncio
import logging
import os
import re
from collections.abc import Awaitable, Callable, Sequence
from datetime import datetime
from pathlib import Path

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

logger = logging.getLogger(__name__)

# Matched case-insensitively against git's stderr (LC_ALL=C keeps it English)
_FAILURE_MARKERS: list[tuple[FailureKind, tuple[str, ...]]] = [
    (
        FailureKind.REMOTE_ABSENT,
        (
            "does not appear to be a git repository",
            "repository not found",
            "could not read from remote",
            # HTTP(S) transports report unreachable hosts differently
            "unable to access",
            "could not resolve host",
            "failed to connect to",
        ),
    ),
    (
        FailureKind.NOTHING_TO_PULL,
        (
            "no tracking information",
            "couldn't find remote ref",
        ),
    ),
    (
        FailureKind.LOCAL_CHANGES,
        ("unstaged changes",),
    ),
]

_PULL_RECOVERABLE = {
    FailureKind.REMOTE_ABSENT,
    FailureKind.NOTHING_TO_PULL,
    FailureKind.LOCAL_CHANGES,
}

_CHANGES_RE = re.compile(r"(\d+) files? changed")

# Single source of truth for git log field separation
_FIELD_SEP = "\x00"


def classify_failure(stderr: str) -> FailureKind:
    """Map git error output onto a FailureKind."""
    text = stderr.lower()
    for kind, markers in _FAILURE_MARKERS:
        if any(marker in text for marker in markers):
            return kind
    return FailureKind.OTHER


class GitGateway:
    """Async wrapper around the git CLI for one working tree.

    The gateway starts uninitialized; every operation calls
    ensure_initialized() first, so the repository is set up at most once.
    """

    def __init__(
        self,
        config: GitGatewayConfig | None = None,
        sleep: Callable[[float], Awaitable[None]] | None = None,
    ):
        self.config = config or GitGatewayConfig()
        self._sleep = sleep or asyncio.sleep
        self._initialized = False
        logger.info(
            f"Initialized GitGateway (repo={self.config.repo_path}, "
            f"dry_run={self.config.dry_run})"
        )

    @property
    def initialized(self) -> bool:
        return self._initialized

    # ------------------------------------------------------------------
    # Command execution
    # ------------------------------------------------------------------

    async def _run(self, *args: str) -> str:
        """Run a git command in the working tree and return stdout."""
        cmd = ["git", "-C", str(self.config.repo_path), *args]
        env = {**os.environ, "LC_ALL": "C", "GIT_TERMINAL_PROMPT": "0"}

        process = await asyncio.create_subprocess_exec(
            *cmd,
            stdout=asyncio.subprocess.PIPE,
            stderr=asyncio.subprocess.PIPE,
            env=env,
        )
        try:
            stdout, stderr = await asyncio.wait_for(
                process.communicate(), timeout=self.config.timeout_seconds
            )
        except asyncio.TimeoutError:
            process.kill()
            await process.wait()
            raise GitTimeoutError(
                f"git {' '.join(args)} timed out after {self.config.timeout_seconds}s"
            )

        out = stdout.decode("utf-8", errors="replace")
        err = stderr.decode("utf-8", errors="replace")

        if process.returncode != 0:
            # Some failures (e.g. "nothing to commit") are reported on stdout
            raise GitCommandError(list(args), process.returncode, err or out)

        return out.rstrip("\n")

    async def _is_repo(self) -> bool:
        try:
            result = await self._run("rev-parse", "--is-inside-work-tree")
        except GitCommandError:
            return False
        return result.strip() == "true"

    async def _has_commits(self) -> bool:
        try:
            await self._run("rev-parse", "--verify", "--quiet", "HEAD")
        except GitCommandError:
            return False
        return True

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    async def initialize(self) -> bool:
        """Create the repository if needed, apply identity and add the remote.

        Safe to call repeatedly.
        """
        try:
            logger.info("Initializing git repository...")
            Path(self.config.repo_path).mkdir(parents=True, exist_ok=True)

            if not await self._is_repo():
                logger.info(f"Creating new git repository at {self.config.repo_path}")
                await self._run("init")
                await self._run("symbolic-ref", "HEAD", f"refs/heads/{self.config.branch}")

            await self._run("config", "user.name", self.config.user_name)
            await self._run("config", "user.email", self.config.user_email)

            remotes = (await self._run("remote")).split()
            if self.config.remote_name not in remotes and self.config.repo_url:
                logger.info(f"Adding remote: {self.config.remote_name}")
                await self._run(
                    "remote", "add", self.config.remote_name, self.config.repo_url
                )

            self._initialized = True
            logger.info("Git repository initialized successfully")
            return True

        except GitError as e:
            logger.error(f"Failed to initialize git repository: {e}")
            raise

    async def ensure_initialized(self) -> None:
        if not self._initialized:
            await self.initialize()

    # ------------------------------------------------------------------
    # Operations
    # ------------------------------------------------------------------

    async def stage_and_commit(
        self,
        paths: Sequence[Path | str],
        message: str,
        date: datetime,
    ) -> CommitResult:
        """Stage paths and commit them with an explicit authored date."""
        await self.ensure_initialized()

        commit_date = date.replace(microsecond=0)

        if self.config.dry_run:
            logger.info(
                f"[DRY RUN] Would commit: message={message!r} "
                f"date={commit_date.isoformat()}"
            )
            return CommitResult(
                commit="dry-run",
                date=commit_date,
                message=message,
                changes=0,
                dry_run=True,
            )

        try:
            await self._run("add", "--", *[str(p) for p in paths])
            output = await self._run(
                "commit", "-m", message, f"--date={commit_date.isoformat()}"
            )
            sha = await self._run("rev-parse", "HEAD")
        except GitError as e:
            logger.error(f"Failed to create commit: message={message!r} error={e}")
            raise

        match = _CHANGES_RE.search(output)
        result = CommitResult(
            commit=sha.strip(),
            date=commit_date,
            message=message,
            changes=int(match.group(1)) if match else 0,
        )
        logger.debug(f"Commit created: message={message!r} commit={result.commit}")
        return result

    async def push(
        self,
        remote: str | None = None,
        branch: str | None = None,
    ) -> PushResult:
        """Push with linear backoff.

        A branch without commits yields NOTHING_TO_PUSH and a missing or
        unreachable remote yields LOCAL_ONLY. Any other failure is retried
        and raised as GitPushError once attempts run out.
        """
        await self.ensure_initialized()

        remote = remote or self.config.remote_name
        branch = branch or self.config.branch
        max_retries = self.config.max_retries

        if self.config.dry_run:
            logger.info(f"[DRY RUN] Would push to {remote}/{branch}")
            return PushResult(
                outcome=PushOutcome.PUSHED, remote=remote, branch=branch, dry_run=True
            )

        if not await self._has_commits():
            logger.info(f"No commits on {branch} yet, skipping push")
            return PushResult(
                outcome=PushOutcome.NOTHING_TO_PUSH,
                remote=remote,
                branch=branch,
                reason="branch has no commits",
            )

        for attempt in range(1, max_retries + 1):
            logger.info(f"Pushing to {remote}/{branch} (attempt {attempt}/{max_retries})")

            try:
                await self._run("push", "--set-upstream", remote, branch)
            except GitError as e:
                detail = e.stderr or str(e)

                if classify_failure(detail) == FailureKind.REMOTE_ABSENT:
                    logger.warning(
                        "Remote repository not available. Commits saved locally. "
                        f"error={detail.strip()!r} "
                        f"hint='create the remote and run: git push -u {remote} {branch}'"
                    )
                    return PushResult(
                        outcome=PushOutcome.LOCAL_ONLY,
                        remote=remote,
                        branch=branch,
                        attempts=attempt,
                        reason=detail.strip(),
                    )

                logger.warning(f"Push attempt {attempt} failed: {e}")

                if attempt == max_retries:
                    logger.error(f"All push attempts failed: {e}")
                    raise GitPushError(
                        f"Push to {remote}/{branch} failed after {attempt} attempts: {e}",
                        attempts=attempt,
                        stderr=e.stderr,
                    ) from e

                await self._sleep(self.config.retry_delay_seconds * attempt)
                continue

            logger.info("Push successful")
            return PushResult(
                outcome=PushOutcome.PUSHED, remote=remote, branch=branch, attempts=attempt
            )

        # max_retries >= 1 is enforced by configuration
        raise GitPushError(f"Push to {remote}/{branch} was not attempted", attempts=0)

    async def pull(
        self,
        remote: str | None = None,
        branch: str | None = None,
    ) -> PullResult:
        """Rebase-pull; missing upstream or blocking local changes are skipped."""
        await self.ensure_initialized()

        remote = remote or self.config.remote_name
        branch = branch or self.config.branch

        if self.config.dry_run:
            logger.info(f"[DRY RUN] Would pull from {remote}/{branch}")
            return PullResult(dry_run=True)

        try:
            output = await self._run("pull", "--rebase", remote, branch)
        except GitCommandError as e:
            kind = classify_failure(e.stderr)
            if kind in _PULL_RECOVERABLE:
                logger.debug(
                    f"Remote not available or local changes, skipping pull: "
                    f"reason={kind.value} detail={e.stderr.strip()!r}"
                )
                return PullResult(skipped=kind)
            logger.error(f"Failed to pull: {e}")
            raise

        summary = output.strip().splitlines()[-1] if output.strip() else ""
        logger.info(f"Pull successful: {summary}")
        return PullResult(pulled=True, summary=summary)

    async def status(self) -> RepoStatus:
        """Return branch name and changed paths from porcelain status."""
        await self.ensure_initialized()

        output = await self._run("status", "--porcelain=v1", "--branch")
        branch: str | None = None
        changed: list[str] = []

        for line in output.splitlines():
            if line.startswith("## "):
                head = line[3:]
                if head.startswith("No commits yet on "):
                    head = head[len("No commits yet on "):]
                branch = head.split("...", 1)[0].strip()
            elif line.strip():
                changed.append(line[3:])

        return RepoStatus(branch=branch, changed=changed)

    async def log(self, limit: int = 10) -> list[LogEntry]:
        """Return up to `limit` recent commits, oldest first."""
        await self.ensure_initialized()

        try:
            raw_log = await self._run(
                "log",
                f"--max-count={limit}",
                "--date=iso-strict",
                "--pretty=format:%H%x00%ad%x00%s",
            )
        except GitCommandError as e:
            # A fresh repository has no HEAD yet
            if "does not have any commits" in e.stderr or "bad default revision" in e.stderr:
                return []
            raise

        entries: list[LogEntry] = []
        for line in raw_log.splitlines():
            parts = line.split(_FIELD_SEP)
            if len(parts) != 3:
                raise GitError(f"Malformed git log line: {line!r}")
            commit_hash, author_str, subject = parts
            entries.append(
                LogEntry(
                    hash=commit_hash,
                    author_date=datetime.fromisoformat(author_str),
                    subject=subject,
                )
            )

        entries.reverse()
        return entries
