"""Environment and CLI runtime configuration."""

from __future__ import annotations

import os
from dataclasses import dataclass, replace
from datetime import tzinfo
from typing import Self
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

from dotenv import load_dotenv

from stockwatch.data.finnhub import DEFAULT_BASE_URL
from stockwatch.errors import ConfigError

DATA_SOURCES = {"finnhub", "yfinance", "csv"}
LOG_LEVELS = {"DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"}


def parse_positive_int(value: str | None, default: int, *, field_name: str) -> int:
    """Parse positive integer values from env strings."""
    if value is None:
        return default
    text = value.strip()
    if not text:
        return default
    parsed = int(text)
    if parsed <= 0:
        raise ConfigError(f"{field_name} must be positive")
    return parsed


@dataclass(frozen=True)
class Settings:
    """Immutable runtime settings."""

    finnhub_api_key: str = ""
    finnhub_base_url: str = DEFAULT_BASE_URL
    data_source: str = "finnhub"
    resolution: str = "1"
    lookback_days: int = 7
    news_lookback_days: int = 7
    state_db_path: str = "state/stockwatch.db"
    csv_data_dir: str = "historical_data"
    request_timeout: int = 20
    max_retries: int = 3
    market_timezone: str = ""
    log_level: str = "INFO"
    max_passes: int = 1
    interval_seconds: int = 60

    @classmethod
    def from_env(cls) -> Self:
        """Create settings from environment variables."""
        load_dotenv()
        raw = cls(
            finnhub_api_key=str(os.getenv("FINNHUB_API_KEY", "")).strip(),
            finnhub_base_url=str(os.getenv("FINNHUB_BASE_URL", DEFAULT_BASE_URL)).strip(),
            data_source=str(os.getenv("DATA_SOURCE", "finnhub")).strip().lower(),
            resolution=str(os.getenv("RESOLUTION", "1")).strip(),
            lookback_days=parse_positive_int(
                os.getenv("LOOKBACK_DAYS"), 7, field_name="lookback_days"
            ),
            news_lookback_days=parse_positive_int(
                os.getenv("NEWS_LOOKBACK_DAYS"), 7, field_name="news_lookback_days"
            ),
            state_db_path=str(os.getenv("STATE_DB_PATH", "state/stockwatch.db")).strip(),
            csv_data_dir=str(os.getenv("CSV_DATA_DIR", "historical_data")).strip(),
            request_timeout=parse_positive_int(
                os.getenv("REQUEST_TIMEOUT"), 20, field_name="request_timeout"
            ),
            max_retries=parse_positive_int(os.getenv("MAX_RETRIES"), 3, field_name="max_retries"),
            market_timezone=str(os.getenv("MARKET_TIMEZONE", "")).strip(),
            log_level=str(os.getenv("LOG_LEVEL", "INFO")).strip().upper(),
            max_passes=parse_positive_int(os.getenv("MAX_PASSES"), 1, field_name="max_passes"),
            interval_seconds=parse_positive_int(
                os.getenv("INTERVAL_SECONDS"), 60, field_name="interval_seconds"
            ),
        )
        return raw.validate()

    def with_overrides(self, **kwargs: object) -> Self:
        """Return a new settings object with updated values."""
        updated = replace(self, **kwargs)
        return updated.validate()

    def timezone(self) -> tzinfo | None:
        """Return the zone used to compare bar calendar dates, if configured."""
        if not self.market_timezone:
            return None
        return ZoneInfo(self.market_timezone)

    def validate(self) -> Self:
        """Validate settings fields."""
        if self.data_source not in DATA_SOURCES:
            raise ConfigError("data_source must be one of finnhub, yfinance, csv")
        if not self.resolution:
            raise ConfigError("resolution must not be blank")
        if self.lookback_days <= 0:
            raise ConfigError("lookback_days must be positive")
        if self.news_lookback_days <= 0:
            raise ConfigError("news_lookback_days must be positive")
        if self.request_timeout <= 0:
            raise ConfigError("request_timeout must be positive")
        if self.max_retries <= 0:
            raise ConfigError("max_retries must be positive")
        if self.max_passes <= 0:
            raise ConfigError("max_passes must be positive")
        if self.interval_seconds <= 0:
            raise ConfigError("interval_seconds must be positive")
        if self.log_level not in LOG_LEVELS:
            raise ConfigError(f"log_level must be one of {', '.join(sorted(LOG_LEVELS))}")
        if self.market_timezone:
            try:
                ZoneInfo(self.market_timezone)
            except (ZoneInfoNotFoundError, ValueError) as exc:
                raise ConfigError(f"Unknown market_timezone '{self.market_timezone}'") from exc
        return self
