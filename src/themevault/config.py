"""
themevault Configuration.

Centralized configuration management using Pydantic Settings.
Loads configuration from environment variables.
"""

import os
from pathlib import Path

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


def get_xdg_data_dir() -> str:
    """
    Get XDG-compliant data directory for themevault.

    Follows XDG Base Directory Specification:
    - Uses $XDG_DATA_HOME/themevault if XDG_DATA_HOME is set
    - Falls back to $HOME/.local/share/themevault if not set
    - Returns relative path .themevault if HOME not available (dev/testing)

    Returns:
        str: Path to data directory
    """
    xdg_data_home = os.getenv("XDG_DATA_HOME")
    if xdg_data_home:
        return str(Path(xdg_data_home) / "themevault")

    home = os.getenv("HOME")
    if home:
        return str(Path(home) / ".local" / "share" / "themevault")

    # Fallback for development/testing environments without HOME
    return ".themevault"


def get_xdg_state_dir() -> str:
    """
    Get XDG-compliant state directory for themevault logs.

    Follows XDG Base Directory Specification:
    - Uses $XDG_STATE_HOME/themevault if XDG_STATE_HOME is set
    - Falls back to $HOME/.local/state/themevault if not set
    - Returns relative path ./logs if HOME not available (dev/testing)

    Returns:
        str: Path to state/logs directory
    """
    xdg_state_home = os.getenv("XDG_STATE_HOME")
    if xdg_state_home:
        return str(Path(xdg_state_home) / "themevault" / "logs")

    home = os.getenv("HOME")
    if home:
        return str(Path(home) / ".local" / "state" / "themevault" / "logs")

    return "./logs"


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
        populate_by_name=True,
    )

    # Database
    postgres_db: str = "themevault"
    postgres_user: str = "themevault"
    postgres_password: str = "themevault_dev_password"
    postgres_host: str = "localhost"
    postgres_port: int = 5432
    database_url_override: str = Field(default="", alias="DATABASE_URL")

    db_pool_size: int = 5
    db_pool_max_overflow: int = 5
    db_pool_timeout: int = 30
    db_pool_recycle: int = 1800
    sqlite_busy_timeout: float = 15.0  # Seconds a SQLite writer waits for the lock

    @property
    def database_url(self) -> str:
        """Construct database URL from components unless DATABASE_URL is set."""
        if self.database_url_override:
            return self.database_url_override
        return (
            f"postgresql://{self.postgres_user}:{self.postgres_password}"
            f"@{self.postgres_host}:{self.postgres_port}/{self.postgres_db}"
        )

    # Themes
    themes_path: str = ""  # Root directory holding one sub-directory per theme
    manifest_relative_path: str = "config/theme.json"
    default_actor: str = "system"  # Attributed on versions when no actor is given

    # Activation
    activation_max_retries: int = 3
    activation_retry_backoff: float = 0.05  # Seconds, doubled on every retry

    # Application
    environment: str = "development"

    # Logging
    log_level: str = "INFO"
    log_dir: str = ""  # XDG-compliant log directory (defaults to XDG state dir if empty)
    log_format: str = "standard"  # standard or json
    log_console_enabled: bool = True
    log_file_enabled: bool = True
    log_max_bytes: int = 10_485_760  # 10MB per log file
    log_backup_count: int = 5
    log_to_stdout: bool = True  # Log INFO/DEBUG to stdout
    log_to_stderr: bool = True  # Log WARNING/ERROR/CRITICAL to stderr

    @property
    def log_directory(self) -> Path:
        """Get the log directory path, using XDG default if not specified."""
        if self.log_dir:
            return Path(self.log_dir).expanduser()
        return Path(get_xdg_state_dir())

    @property
    def themes_directory(self) -> Path:
        """Get the theme root directory, defaulting to the XDG data dir."""
        if self.themes_path:
            return Path(self.themes_path).expanduser()
        return Path(get_xdg_data_dir()) / "themes"


# Global settings instance
settings = Settings()
