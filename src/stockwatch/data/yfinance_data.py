"""Yahoo Finance quote source."""

from __future__ import annotations

import asyncio
import re
from datetime import UTC, datetime
from typing import Any

import pandas as pd
import yfinance as yf

from stockwatch.data.base import bars_newest_first
from stockwatch.domain.models import PriceBar
from stockwatch.errors import DecodeError, InvalidRequestError, QuoteSourceError


class YFinanceQuoteSource:
    """Fetch OHLC bars from Yahoo Finance via yfinance."""

    async def fetch_bars(
        self,
        symbol: str,
        start: datetime,
        end: datetime,
        resolution: str,
    ) -> list[PriceBar]:
        return await asyncio.to_thread(self.get_bars, symbol, start, end, resolution)

    def get_bars(
        self,
        symbol: str,
        start: datetime,
        end: datetime,
        resolution: str,
    ) -> list[PriceBar]:
        ticker = symbol.strip()
        if not ticker:
            raise InvalidRequestError("symbol must not be blank")
        interval = self._normalize_interval(resolution)
        try:
            history = yf.Ticker(ticker).history(
                start=start,
                end=end,
                interval=interval,
                auto_adjust=False,
                actions=False,
            )
        except Exception as exc:
            raise QuoteSourceError(f"yfinance request failed for {symbol}: {exc}") from exc

        frame = self._normalize_history(history, symbol)
        if frame.empty:
            raise QuoteSourceError(f"yfinance returned no rows for {symbol}")
        return frame_to_bars(frame)

    @staticmethod
    def _normalize_history(history: Any, symbol: str) -> pd.DataFrame:
        if history is None:
            raise QuoteSourceError(f"yfinance returned no rows for {symbol}")
        frame = pd.DataFrame(history).copy()
        if frame.empty:
            raise QuoteSourceError(f"yfinance returned no rows for {symbol}")

        open_column = YFinanceQuoteSource._pick_column(frame, "open")
        high_column = YFinanceQuoteSource._pick_column(frame, "high")
        low_column = YFinanceQuoteSource._pick_column(frame, "low")
        close_column = YFinanceQuoteSource._pick_column(frame, "close")
        if close_column is None:
            close_column = YFinanceQuoteSource._pick_column(frame, "adj_close")

        if open_column is None or high_column is None or low_column is None or close_column is None:
            raise DecodeError(f"yfinance payload missing OHLC columns for {symbol}")

        normalized = pd.DataFrame(index=pd.to_datetime(frame.index, utc=True))
        normalized["open"] = pd.to_numeric(frame[open_column].to_numpy(), errors="coerce")
        normalized["high"] = pd.to_numeric(frame[high_column].to_numpy(), errors="coerce")
        normalized["low"] = pd.to_numeric(frame[low_column].to_numpy(), errors="coerce")
        normalized["close"] = pd.to_numeric(frame[close_column].to_numpy(), errors="coerce")
        normalized = normalized.dropna(subset=["open", "high", "low", "close"])
        return normalized

    @staticmethod
    def _pick_column(frame: pd.DataFrame, field: str) -> Any | None:
        for column in frame.columns:
            key = YFinanceQuoteSource._column_key(column)
            if key == field or key.startswith(f"{field}_"):
                return column
        return None

    @staticmethod
    def _column_key(value: Any) -> str:
        if isinstance(value, tuple):
            text = "_".join(str(part) for part in value if part is not None)
        else:
            text = str(value)
        return re.sub(r"[^a-zA-Z0-9]+", "_", text).strip("_").lower()

    @staticmethod
    def _normalize_interval(value: str) -> str:
        mapping = {
            "1": "1m",
            "5": "5m",
            "15": "15m",
            "30": "30m",
            "60": "60m",
            "d": "1d",
            "w": "1wk",
            "m": "1mo",
        }
        normalized = value.strip().lower()
        return mapping.get(normalized, "1d")


def frame_to_bars(frame: pd.DataFrame) -> list[PriceBar]:
    """Convert a UTC-indexed OHLC frame to newest-first bars."""
    bars = [
        PriceBar(
            timestamp=_to_utc(timestamp),
            open=float(row.open),
            high=float(row.high),
            low=float(row.low),
            close=float(row.close),
        )
        for timestamp, row in zip(frame.index, frame.itertuples(index=False))
    ]
    return bars_newest_first(bars)


def _to_utc(value: Any) -> datetime:
    stamp = pd.Timestamp(value)
    if stamp.tzinfo is None:
        stamp = stamp.tz_localize(UTC)
    return stamp.tz_convert(UTC).to_pydatetime()
