"""Configuration management using Pydantic Settings."""

import logging
from datetime import date
from functools import lru_cache
from pathlib import Path
from typing import Literal

import yaml
from pydantic import BaseModel, Field, field_validator, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

logger = logging.getLogger(__name__)

DEFAULT_USER_EMAIL = "contributor@example.com"


class ConfigError(RuntimeError):
    """Raised when the YAML overlay cannot be read or parsed."""


class GitConfig(BaseModel):
    """Git identity and remote settings."""

    user_name: str = "GitHub Contributor"
    user_email: str = DEFAULT_USER_EMAIL
    remote_name: str = "origin"
    branch: str = "main"
    repo_url: str = ""
    repo_path: Path = Path(".")
    command_timeout_seconds: float = 30.0


class CommitConfig(BaseModel):
    """Daily commit cardinality and marker file."""

    min_per_day: int = Field(default=1, ge=0)
    max_per_day: int = Field(default=5, ge=0)
    data_file: Path = Path("data.json")  # Relative paths resolve against git.repo_path
    message_kind: str = "chore"
    delay_ms: int = Field(default=100, ge=0)

    @model_validator(mode="after")
    def check_bounds(self) -> "CommitConfig":
        if self.min_per_day > self.max_per_day:
            raise ValueError("commits.min_per_day must be <= commits.max_per_day")
        return self


class ScheduleConfig(BaseModel):
    """Cron schedule for the recurring run."""

    enabled: bool = False
    cron: str = "0 9 * * *"  # 9 AM daily
    timezone: str = "UTC"
    drain_timeout_seconds: float = 60.0


class BackfillConfig(BaseModel):
    """Historical date range filling."""

    enabled: bool = False
    start_date: date | None = None
    end_date: date | None = None
    skip_weekends: bool = False
    min_commits: int = Field(default=1, ge=0)
    max_commits: int = Field(default=8, ge=0)
    delay_ms: int = Field(default=50, ge=0)

    @field_validator("start_date", "end_date", mode="before")
    @classmethod
    def empty_date_is_none(cls, v):
        """Treat empty strings from the environment as unset."""
        if isinstance(v, str) and not v.strip():
            return None
        return v

    @model_validator(mode="after")
    def check_bounds(self) -> "BackfillConfig":
        if self.min_commits > self.max_commits:
            raise ValueError("backfill.min_commits must be <= backfill.max_commits")
        return self


class PatternConfig(BaseModel):
    """Contribution graph addressing and pattern drawing."""

    years_back: int = Field(default=1, ge=0)
    intensity: int = Field(default=5, ge=1)  # Commits per pixel
    start_week: int = 10
    weeks_range: int = Field(default=54, ge=1)
    random_count: int = Field(default=50, ge=0)


class LoggingConfig(BaseModel):
    """Console and file log sinks."""

    level: str = "INFO"
    file: Path = Path("logs/app.log")
    max_bytes: int = 10 * 1024 * 1024
    backup_count: int = 5

    @field_validator("level")
    @classmethod
    def normalize_level(cls, v: str) -> str:
        level = v.strip().upper()
        if not isinstance(logging.getLevelName(level), int):
            raise ValueError(f"Unknown log level: {v}")
        return level


class AppConfig(BaseModel):
    """Runtime behaviour."""

    dry_run: bool = False
    retry_attempts: int = Field(default=3, ge=1)
    retry_delay_ms: int = Field(default=1000, ge=0)


class HealthConfig(BaseModel):
    """HTTP control surface."""

    enabled: bool = False
    host: str = "0.0.0.0"
    port: int = 3000


class Settings(BaseSettings):
    """Main configuration class."""

    environment: Literal["development", "production"] = "development"

    # Paths
    data_dir: Path = Path("data")

    logfire_token: str = ""

    # Nested configuration sections
    git: GitConfig = Field(default_factory=GitConfig)
    commits: CommitConfig = Field(default_factory=CommitConfig)
    schedule: ScheduleConfig = Field(default_factory=ScheduleConfig)
    backfill: BackfillConfig = Field(default_factory=BackfillConfig)
    pattern: PatternConfig = Field(default_factory=PatternConfig)
    logging: LoggingConfig = Field(default_factory=LoggingConfig)
    app: AppConfig = Field(default_factory=AppConfig)
    health: HealthConfig = Field(default_factory=HealthConfig)

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        env_nested_delimiter="__",
        case_sensitive=False,
        extra="ignore",
    )

    @field_validator("data_dir", mode="after")
    @classmethod
    def resolve_data_dir(cls, v: Path) -> Path:
        """Resolve data directory to absolute path."""
        return v.resolve()

    @property
    def is_production(self) -> bool:
        return self.environment == "production"

    @property
    def marker_path(self) -> Path:
        """Absolute path of the marker file rewritten before every commit."""
        data_file = self.commits.data_file
        if data_file.is_absolute():
            return data_file
        return (self.git.repo_path / data_file).resolve()

    def load_yaml_config(self) -> None:
        """Load and merge YAML configuration."""
        config_path = self.data_dir / "config.yaml"

        if not config_path.exists():
            logger.debug(f"Config file not found: {config_path}. Using defaults.")
            return

        try:
            with open(config_path, "r", encoding="utf-8") as f:
                yaml_config = yaml.safe_load(f)
        except (OSError, yaml.YAMLError) as e:
            logger.error(f"Failed to load config: {e}")
            raise ConfigError(f"Failed to load config: {config_path}") from e

        if not yaml_config:
            logger.warning(f"Empty config file: {config_path}")
            return

        if not isinstance(yaml_config, dict):
            raise ConfigError(f"Config must be a mapping at top level: {config_path}")

        for section_name in [
            "git",
            "commits",
            "schedule",
            "backfill",
            "pattern",
            "logging",
            "app",
            "health",
        ]:
            if section_name in yaml_config:
                section = getattr(self, section_name)
                section_dict = section.model_dump()
                section_dict.update(yaml_config[section_name] or {})
                setattr(self, section_name, section.__class__(**section_dict))

        logger.info(f"Loaded configuration from {config_path}")


def validate_settings(settings: Settings) -> list[str]:
    """Return a list of configuration problems. Empty means valid."""
    errors: list[str] = []

    email = settings.git.user_email.strip()
    if not email or email == DEFAULT_USER_EMAIL:
        errors.append("git.user_email is required (GIT__USER_EMAIL)")

    if not settings.git.repo_url and settings.is_production:
        errors.append("git.repo_url is required in production (GIT__REPO_URL)")

    return errors


@lru_cache()
def get_settings() -> Settings:
    """Get singleton Settings instance for the CLI composition root."""
    settings = Settings()
    settings.load_yaml_config()
    return settings
