from __future__ import annotations

import asyncio
from datetime import UTC, datetime
from pathlib import Path

import pandas as pd
import pytest

from stockwatch.data.csv_data import CsvQuoteSource
from stockwatch.errors import DecodeError, QuoteSourceError


def _write_csv(path: Path) -> None:
    frame = pd.DataFrame(
        {
            "date": [
                "2025-01-01",
                "2025-01-02",
                "2025-01-03",
                "2025-01-04",
            ],
            "open": [100.0, 101.0, 102.0, 103.0],
            "high": [101.0, 102.0, 103.0, 104.0],
            "low": [99.0, 100.0, 101.0, 102.0],
            "close": [100.5, 101.5, 102.5, 103.5],
            "volume": [1000.0, 1100.0, 1200.0, 1300.0],
        }
    )
    frame.to_csv(path, index=False)


def test_csv_source_filters_window_newest_first(tmp_path: Path) -> None:
    _write_csv(tmp_path / "SPY.csv")
    source = CsvQuoteSource(data_dir=str(tmp_path))

    bars = asyncio.run(
        source.fetch_bars(
            "SPY",
            datetime(2025, 1, 2, tzinfo=UTC),
            datetime(2025, 1, 3, tzinfo=UTC),
            "D",
        )
    )

    assert [bar.close for bar in bars] == [102.5, 101.5]


def test_csv_source_accepts_naive_bounds(tmp_path: Path) -> None:
    _write_csv(tmp_path / "spy.csv")
    source = CsvQuoteSource(data_dir=str(tmp_path))

    bars = source.get_bars("SPY", datetime(2025, 1, 1), datetime(2025, 1, 31))

    assert len(bars) == 4
    assert bars[0].close == 103.5


def test_csv_source_normalizes_mixed_timezone_offsets_to_utc(tmp_path: Path) -> None:
    frame = pd.DataFrame(
        {
            "date": [
                "2025-01-02T09:30:00-05:00",
                "2025-07-02T09:30:00-04:00",
            ],
            "open": [100.0, 101.0],
            "high": [101.0, 102.0],
            "low": [99.0, 100.0],
            "close": [100.5, 101.5],
        }
    )
    frame.to_csv(tmp_path / "SPY.csv", index=False)
    source = CsvQuoteSource(data_dir=str(tmp_path))

    bars = source.get_bars("SPY", datetime(2025, 1, 1, tzinfo=UTC), datetime(2025, 12, 31, tzinfo=UTC))

    assert bars[0].timestamp == datetime(2025, 7, 2, 13, 30, tzinfo=UTC)
    assert bars[1].timestamp.tzinfo is not None


def test_csv_source_missing_file_and_empty_window_fail(tmp_path: Path) -> None:
    _write_csv(tmp_path / "SPY.csv")
    source = CsvQuoteSource(data_dir=str(tmp_path))

    with pytest.raises(QuoteSourceError, match="No CSV found"):
        source.get_bars("QQQ", datetime(2025, 1, 1), datetime(2025, 1, 31))
    with pytest.raises(QuoteSourceError, match="no CSV rows"):
        source.get_bars("SPY", datetime(2026, 1, 1), datetime(2026, 1, 31))


def test_csv_source_requires_ohlc_columns(tmp_path: Path) -> None:
    pd.DataFrame({"date": ["2025-01-01"], "close": [1.0]}).to_csv(
        tmp_path / "SPY.csv", index=False
    )
    source = CsvQuoteSource(data_dir=str(tmp_path))

    with pytest.raises(DecodeError, match="missing required column 'open'"):
        source.get_bars("SPY", datetime(2025, 1, 1), datetime(2025, 1, 31))
