"""Configuration management for campus_planner."""

from pathlib import Path

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # Storage Configuration
    storage_prefix: str = Field(
        default="campusLifePlanner",
        description="Namespace prefix for every persisted key (State, Backup_*, AutoBackup)",
    )
    data_dir: Path = Field(
        default=Path.home() / ".campus_planner",
        description="Directory backing the file key/value store",
    )

    # Seed Configuration
    seed_source: str | None = Field(
        default=None,
        description="Path or http(s) URL of an export envelope used when the store is empty",
    )
    seed_fetch_timeout_seconds: float = Field(default=10.0, description="Timeout for fetching a remote seed file")

    # Application Identity
    application_name: str = Field(default="Campus Life Planner", description="Name written into export envelopes")
    app_slug: str = Field(default="campus-life-planner", description="Slug used for export file names")

    # Backup Configuration
    backup_retention: int = Field(default=5, description="Number of backups kept in the backup ring")
    auto_backup_throttle_seconds: float = Field(
        default=5.0, description="Minimum interval between automatic backups when auto-backup is enabled"
    )

    # Search Configuration
    max_regex_length: int = Field(default=200, description="Longest regex pattern compiled for search")

    # Pydantic Logfire Configuration (optional)
    logfire_token: str | None = Field(default=None, description="Pydantic Logfire token for observability")
    environment: str = Field(default="development", description="Deployment environment reported to Logfire")

    @property
    def state_key(self) -> str:
        """Key holding the persisted state triple."""
        return f"{self.storage_prefix}State"

    @property
    def backup_prefix(self) -> str:
        """Prefix shared by every backup key."""
        return f"{self.storage_prefix}Backup_"

    @property
    def auto_backup_key(self) -> str:
        """Key holding the auto-backup flag."""
        return f"{self.storage_prefix}AutoBackup"


# Application Constants
class Constants:
    """Application-wide constants."""

    # Task limits
    MAX_DURATION_MINUTES: int = 1440  # 24 hours
    MAX_DURATION_HOURS: int = 24
    MAX_TAG_LENGTH: int = 50
    MAX_DURATION_DECIMALS: int = 2

    # Settings limits
    MAX_WEEKLY_HOUR_TARGET: int = 168  # 24 hours * 7 days
    MAX_DEFAULT_TAG_LENGTH: int = 50

    # Import / Export
    EXPORT_VERSION: str = "1.0"
    EXPORT_FORMAT: str = "JSON"
    EXPORT_MIME_TYPE: str = "application/json"
    EXPORT_INDENT: int = 2
    MAX_DETAILED_IMPORT_ERRORS: int = 5

    # Search
    MIN_SUGGESTION_QUERY_LENGTH: int = 2
    MAX_SEARCH_SUGGESTIONS: int = 10
    MAX_SEARCH_MATCHES: int = 1000

    # Task ids
    TASK_ID_RANDOM_LENGTH: int = 9

    # Calendar
    DAYS_PER_WEEK: int = 7
    MINUTES_PER_HOUR: int = 60


def get_settings() -> Settings:
    """Get application settings (singleton pattern)."""
    return Settings()


# Global settings instance
settings = get_settings()
constants = Constants()
