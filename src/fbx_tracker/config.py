"""Configuration system using pydantic-settings with environment variable loading."""

from decimal import Decimal

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class ScraperSettings(BaseSettings):
    """Freightos terminal scraping parameters."""

    model_config = SettingsConfigDict(env_prefix="SCRAPER_")

    base_url: str = "https://www.freightos.com/enterprise/terminal"
    user_agent: str = (
        "Mozilla/5.0 (Windows NT 10.0; Win64; x64) AppleWebKit/537.36"
    )
    accept: str = "text/html,application/xhtml+xml,application/xml;q=0.9,*/*;q=0.8"
    request_timeout: float = 15.0  # seconds per GET
    pacing_delay: float = 2.0  # seconds to wait after every route request
    anchor_phrase: str = "Current FBX"
    min_rate: Decimal = Decimal("0")  # exclusive
    max_rate: Decimal = Decimal("50000")  # exclusive


class StorageSettings(BaseSettings):
    """Flat-file persistence for the current snapshot and history log."""

    model_config = SettingsConfigDict(env_prefix="STORAGE_")

    data_dir: str = "data"
    current_file: str = "fbx_rates.json"
    history_file: str = "fbx_history.json"
    history_limit: int = 90


class ScheduleSettings(BaseSettings):
    """Recurring scrape cadence.

    Runs are aligned to UTC hours divisible by ``interval_hours``
    (the default of 6 fires at 00:00, 06:00, 12:00 and 18:00).
    """

    model_config = SettingsConfigDict(env_prefix="SCHEDULE_")

    enabled: bool = True
    interval_hours: int = 6
    stale_after_hours: float = 7.0
    refresh_on_startup: bool = True


class ServerSettings(BaseSettings):
    """HTTP server configuration."""

    model_config = SettingsConfigDict(env_prefix="SERVER_")

    host: str = "0.0.0.0"
    port: int = 3001
    cors_origins: list[str] = ["*"]


class AppSettings(BaseSettings):
    """Root application settings, composing all sub-settings."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        env_nested_delimiter="__",
    )

    log_level: str = "INFO"
    # Each group reads its own prefixed variables when AppSettings is built.
    scraper: ScraperSettings = Field(default_factory=ScraperSettings)
    storage: StorageSettings = Field(default_factory=StorageSettings)
    schedule: ScheduleSettings = Field(default_factory=ScheduleSettings)
    server: ServerSettings = Field(default_factory=ServerSettings)
