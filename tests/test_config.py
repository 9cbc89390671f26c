from __future__ import annotations

from zoneinfo import ZoneInfo

import pytest

from stockwatch.config import Settings, parse_positive_int
from stockwatch.errors import ConfigError

ENV_KEYS = [
    "FINNHUB_API_KEY",
    "FINNHUB_BASE_URL",
    "DATA_SOURCE",
    "RESOLUTION",
    "LOOKBACK_DAYS",
    "NEWS_LOOKBACK_DAYS",
    "STATE_DB_PATH",
    "CSV_DATA_DIR",
    "REQUEST_TIMEOUT",
    "MAX_RETRIES",
    "MARKET_TIMEZONE",
    "LOG_LEVEL",
    "MAX_PASSES",
    "INTERVAL_SECONDS",
]


def _clear_env(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setattr("stockwatch.config.load_dotenv", lambda *args, **kwargs: None)
    for key in ENV_KEYS:
        monkeypatch.delenv(key, raising=False)


def test_from_env_defaults(monkeypatch: pytest.MonkeyPatch) -> None:
    _clear_env(monkeypatch)

    settings = Settings.from_env()

    assert settings == Settings()
    assert settings.data_source == "finnhub"
    assert settings.lookback_days == 7
    assert settings.timezone() is None


def test_from_env_reads_values(monkeypatch: pytest.MonkeyPatch) -> None:
    _clear_env(monkeypatch)
    monkeypatch.setenv("FINNHUB_API_KEY", " secret ")
    monkeypatch.setenv("DATA_SOURCE", "YFinance")
    monkeypatch.setenv("RESOLUTION", "D")
    monkeypatch.setenv("LOOKBACK_DAYS", "30")
    monkeypatch.setenv("MARKET_TIMEZONE", "America/New_York")
    monkeypatch.setenv("LOG_LEVEL", "debug")
    monkeypatch.setenv("MAX_PASSES", "2")

    settings = Settings.from_env()

    assert settings.finnhub_api_key == "secret"
    assert settings.data_source == "yfinance"
    assert settings.resolution == "D"
    assert settings.lookback_days == 30
    assert settings.timezone() == ZoneInfo("America/New_York")
    assert settings.log_level == "DEBUG"
    assert settings.max_passes == 2


def test_from_env_does_not_require_api_key_for_offline_sources(
    monkeypatch: pytest.MonkeyPatch,
) -> None:
    _clear_env(monkeypatch)
    monkeypatch.setenv("DATA_SOURCE", "csv")

    assert Settings.from_env().finnhub_api_key == ""


@pytest.mark.parametrize(
    ("key", "value"),
    [
        ("DATA_SOURCE", "bloomberg"),
        ("LOOKBACK_DAYS", "0"),
        ("MAX_RETRIES", "-1"),
        ("LOG_LEVEL", "LOUD"),
        ("MARKET_TIMEZONE", "Mars/Olympus"),
    ],
)
def test_from_env_rejects_invalid_values(
    monkeypatch: pytest.MonkeyPatch, key: str, value: str
) -> None:
    _clear_env(monkeypatch)
    monkeypatch.setenv(key, value)

    with pytest.raises(ConfigError):
        Settings.from_env()


def test_parse_positive_int_uses_default_for_blank() -> None:
    assert parse_positive_int(None, 5, field_name="x") == 5
    assert parse_positive_int("  ", 5, field_name="x") == 5
    assert parse_positive_int("12", 5, field_name="x") == 12


def test_with_overrides_validates() -> None:
    settings = Settings().with_overrides(data_source="csv", csv_data_dir="data")

    assert settings.data_source == "csv"
    with pytest.raises(ConfigError, match="resolution"):
        Settings().with_overrides(resolution="")
