"""Git service config."""

from pathlib import Path

from pydantic import BaseModel

from greenboard.config import Settings


class GitGatewayConfig(BaseModel):
    """Configuration for the git gateway."""

    repo_path: Path = Path(".")
    user_name: str = "GitHub Contributor"
    user_email: str = "contributor@example.com"
    remote_name: str = "origin"
    branch: str = "main"
    repo_url: str = ""
    dry_run: bool = False
    max_retries: int = 3
    retry_delay_seconds: float = 1.0
    timeout_seconds: float | None = 30.0

    @classmethod
    def from_settings(cls, settings: Settings) -> "GitGatewayConfig":
        return cls(
            repo_path=settings.git.repo_path,
            user_name=settings.git.user_name,
            user_email=settings.git.user_email,
            remote_name=settings.git.remote_name,
            branch=settings.git.branch,
            repo_url=settings.git.repo_url,
            dry_run=settings.app.dry_run,
            max_retries=settings.app.retry_attempts,
            retry_delay_seconds=settings.app.retry_delay_ms / 1000,
            timeout_seconds=settings.git.command_timeout_seconds or None,
        )
