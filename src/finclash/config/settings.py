"""Application settings and configuration."""

from decimal import Decimal
from pathlib import Path
from typing import Optional

from pydantic import field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from finclash.domain.models.enums import DataType


# Calls per window allowed by each supported quote provider (free tiers)
PROVIDER_RATE_LIMITS: dict[str, tuple[int, float]] = {
    "finnhub": (60, 60.0),
    "alphavantage": (5, 60.0),
}

PROVIDER_BASE_URLS: dict[str, str] = {
    "finnhub": "https://finnhub.io/api/v1",
    "alphavantage": "https://www.alphavantage.co/query",
}

DEFAULT_TTL_SECONDS: dict[DataType, int] = {
    DataType.QUOTE: 60,
    DataType.CANDLES: 5 * 60,
    DataType.NEWS: 15 * 60,
    DataType.FUNDAMENTALS: 24 * 60 * 60,
    DataType.COMPANY: 7 * 24 * 60 * 60,
    DataType.SEARCH: 30 * 60,
    DataType.SOCIAL: 15 * 60,
}


def get_default_data_dir() -> Path:
    """Return the default data directory."""
    return Path.home() / ".finclash"


class Settings(BaseSettings):
    """Application configuration loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        env_prefix="FINCLASH_",
        extra="ignore",
    )

    app_name: str = "FinClash"
    app_version: str = "0.1.0"

    # Data directory (SQLite database lives here)
    data_dir: Optional[Path] = None

    # Database URL (derived from data_dir if not set explicitly)
    database_url: Optional[str] = None

    log_level: str = "INFO"

    # Quote API
    api_provider: str = "finnhub"
    api_base_url: Optional[str] = None
    api_token: str = ""
    api_timeout_seconds: float = 10.0
    use_stub_api: bool = True

    # Rate limiting (falls back to the provider preset when unset)
    rate_limit_max_requests: Optional[int] = None
    rate_limit_window_seconds: Optional[float] = None

    # Cache
    cache_max_size: int = 500
    cache_ttl_overrides: dict[DataType, int] = {}
    cache_durable_types: list[DataType] = [DataType.FUNDAMENTALS, DataType.COMPANY]
    cache_cleanup_interval_seconds: float = 5 * 60
    single_flight: bool = False

    # Game
    starting_cash: Decimal = Decimal("100000")

    @field_validator("api_provider")
    @classmethod
    def known_provider(cls, v: str) -> str:
        v = v.lower()
        if v not in PROVIDER_BASE_URLS:
            raise ValueError(f"Unknown API provider: {v}")
        return v

    def get_data_dir(self) -> Path:
        """Get the data directory, creating it if needed."""
        data_dir = self.data_dir or get_default_data_dir()
        data_dir.mkdir(parents=True, exist_ok=True)
        return data_dir

    def get_database_url(self) -> str:
        """Get database URL, deriving from data_dir if not set."""
        if self.database_url:
            return self.database_url
        db_path = self.get_data_dir() / "finclash.db"
        return f"sqlite:///{db_path}"

    def get_api_base_url(self) -> str:
        """Get the quote API base URL for the configured provider."""
        return self.api_base_url or PROVIDER_BASE_URLS[self.api_provider]

    def get_rate_limit(self) -> tuple[int, float]:
        """Return (max_requests, window_seconds) for the quote API."""
        preset_max, preset_window = PROVIDER_RATE_LIMITS[self.api_provider]
        max_requests = (
            self.rate_limit_max_requests
            if self.rate_limit_max_requests is not None
            else preset_max
        )
        window = (
            self.rate_limit_window_seconds
            if self.rate_limit_window_seconds is not None
            else preset_window
        )
        return max_requests, window

    def get_ttl_table(self) -> dict[DataType, int]:
        """Default TTL table with any configured overrides applied."""
        table = dict(DEFAULT_TTL_SECONDS)
        table.update(self.cache_ttl_overrides)
        return table


# Global settings instance (can be replaced at runtime)
_settings: Optional[Settings] = None


def get_settings() -> Settings:
    """Return the current settings instance."""
    global _settings
    if _settings is None:
        _settings = Settings()
    return _settings


def set_settings(settings: Settings) -> None:
    """Set the global settings instance."""
    global _settings
    _settings = settings


def reset_settings() -> None:
    """Reset settings to force reload."""
    global _settings
    _settings = None
