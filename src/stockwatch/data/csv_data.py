"""CSV-backed quote source."""

from __future__ import annotations

import asyncio
from datetime import datetime
from pathlib import Path

import pandas as pd

from stockwatch.data.yfinance_data import frame_to_bars
from stockwatch.domain.models import PriceBar
from stockwatch.errors import DecodeError, InvalidRequestError, QuoteSourceError


class CsvQuoteSource:
    """Load OHLC bars from local ``<SYMBOL>.csv`` files."""

    date_column_candidates = ("date", "datetime", "timestamp")

    def __init__(self, data_dir: str) -> None:
        self.data_dir = Path(data_dir)
        self._bars_cache: dict[str, pd.DataFrame] = {}

    async def fetch_bars(
        self,
        symbol: str,
        start: datetime,
        end: datetime,
        resolution: str,
    ) -> list[PriceBar]:
        _ = resolution
        return await asyncio.to_thread(self.get_bars, symbol, start, end)

    def get_bars(self, symbol: str, start: datetime, end: datetime) -> list[PriceBar]:
        frame = self._load_bars(symbol)
        lower = _utc_timestamp(start)
        upper = _utc_timestamp(end)
        window = frame[(frame.index >= lower) & (frame.index <= upper)]
        if window.empty:
            raise QuoteSourceError(f"{symbol}: no CSV rows between {start} and {end}")
        return frame_to_bars(window)

    def _load_bars(self, symbol: str) -> pd.DataFrame:
        cached = self._bars_cache.get(symbol)
        if cached is not None:
            return cached

        path = self._resolve_path(symbol)
        if path is None:
            raise QuoteSourceError(f"No CSV found for {symbol} under {self.data_dir}")
        frame = pd.read_csv(path)
        normalized = self._normalize_csv(frame, symbol)
        self._bars_cache[symbol] = normalized
        return normalized

    def _resolve_path(self, symbol: str) -> Path | None:
        bare_symbol = symbol.strip()
        if not bare_symbol:
            raise InvalidRequestError("symbol must not be blank")
        candidates = [
            self.data_dir / f"{bare_symbol}.csv",
            self.data_dir / f"{bare_symbol.upper()}.csv",
            self.data_dir / f"{bare_symbol.lower()}.csv",
        ]
        for candidate in candidates:
            if candidate.exists():
                return candidate
        return None

    def _normalize_csv(self, frame: pd.DataFrame, symbol: str) -> pd.DataFrame:
        lower_to_original = {column.strip().lower(): column for column in frame.columns}
        date_column = self._pick_date_column(lower_to_original)
        rename_map = self._build_ohlc_rename_map(lower_to_original, symbol)
        normalized = frame.rename(columns=rename_map)
        normalized.index = pd.to_datetime(normalized[date_column], utc=True)
        normalized = normalized.sort_index()
        normalized = normalized[["open", "high", "low", "close"]].copy()
        normalized = normalized.apply(pd.to_numeric, errors="coerce")
        normalized = normalized.dropna()
        if normalized.empty:
            raise DecodeError(f"{symbol}: data has no valid OHLC rows")
        return normalized

    def _pick_date_column(self, lower_to_original: dict[str, str]) -> str:
        for candidate in self.date_column_candidates:
            if candidate in lower_to_original:
                return lower_to_original[candidate]
        candidates = ", ".join(self.date_column_candidates)
        raise DecodeError(f"CSV missing date column. Expected one of: {candidates}")

    @staticmethod
    def _build_ohlc_rename_map(
        lower_to_original: dict[str, str],
        symbol: str,
    ) -> dict[str, str]:
        rename_map: dict[str, str] = {}
        for name in ("open", "high", "low", "close"):
            source = lower_to_original.get(name)
            if source is None:
                raise DecodeError(f"{symbol}: CSV missing required column '{name}'")
            rename_map[source] = name
        return rename_map


def _utc_timestamp(value: datetime) -> pd.Timestamp:
    stamp = pd.Timestamp(value)
    if stamp.tzinfo is None:
        return stamp.tz_localize("UTC")
    return stamp.tz_convert("UTC")
