"""Git service exceptions."""


class GitError(Exception):
    """Base git exception."""

    def __init__(self, message: str, stderr: str = ""):
        super().__init__(message)
        self.stderr = stderr


class GitCommandError(GitError):
    """A git subprocess exited with a non-zero status."""

    def __init__(self, args: list[str], returncode: int, stderr: str):
        detail = stderr.strip() or "git command failed"
        super().__init__(f"git {' '.join(args)}: {detail}", stderr=stderr)
        self.args_list = args
        self.returncode = returncode


class GitTimeoutError(GitError):
    """A git subprocess exceeded the configured timeout."""

    pass


class GitPushError(GitError):
    """Push failed on every attempt."""

    def __init__(self, message: str, attempts: int, stderr: str = ""):
        super().__init__(message, stderr=stderr)
        self.attempts = attempts
