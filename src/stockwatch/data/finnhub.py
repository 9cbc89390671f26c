"""Finnhub REST client for quotes, fundamentals, news and symbol search."""

from __future__ import annotations

import asyncio
import logging
from datetime import UTC, datetime, timedelta
from time import sleep
from typing import Any

import requests

from stockwatch.data.base import bars_newest_first
from stockwatch.domain.models import (
    FinancialMetrics,
    NewsKind,
    NewsStory,
    PriceBar,
    SearchResult,
)
from stockwatch.errors import DecodeError, InvalidRequestError, QuoteSourceError

DEFAULT_BASE_URL = "https://finnhub.io/api/v1"

METRIC_FIELDS = {
    "52WeekHigh": "week52_high",
    "52WeekLow": "week52_low",
    "52WeekPriceReturnDaily": "week52_price_return_daily",
    "beta": "beta",
    "10DayAverageTradingVolume": "ten_day_average_trading_volume",
}


class FinnhubClient:
    """Fetch candles, metrics, news and search results from Finnhub."""

    def __init__(
        self,
        api_key: str,
        base_url: str = DEFAULT_BASE_URL,
        timeout: int = 20,
        max_retries: int = 3,
        news_lookback_days: int = 7,
        session: Any | None = None,
    ) -> None:
        self.api_key = api_key
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout
        self.max_retries = max_retries
        self.news_lookback_days = news_lookback_days
        self.session = session if session is not None else requests.Session()
        self.logger = logging.getLogger("stockwatch.data.finnhub")

    async def fetch_bars(
        self,
        symbol: str,
        start: datetime,
        end: datetime,
        resolution: str,
    ) -> list[PriceBar]:
        return await asyncio.to_thread(self.market_data, symbol, start, end, resolution)

    async def fetch_financial_metrics(self, symbol: str) -> FinancialMetrics:
        return await asyncio.to_thread(self.financial_metrics, symbol)

    def market_data(
        self,
        symbol: str,
        start: datetime,
        end: datetime,
        resolution: str = "1",
    ) -> list[PriceBar]:
        """Return candles for ``symbol`` between ``start`` and ``end``, newest first."""
        normalized_symbol = self._require_symbol(symbol)
        if start >= end:
            raise InvalidRequestError(f"{symbol}: start must be before end")
        payload = self._request_with_retry(
            path="/stock/candle",
            params={
                "symbol": normalized_symbol,
                "resolution": resolution,
                "from": str(int(start.timestamp())),
                "to": str(int(end.timestamp())),
            },
        )
        bars = self._candles_to_bars(normalized_symbol, payload)
        if not bars:
            raise QuoteSourceError(f"No bars returned for {symbol}")
        return bars

    def financial_metrics(self, symbol: str) -> FinancialMetrics:
        normalized_symbol = self._require_symbol(symbol)
        payload = self._request_with_retry(
            path="/stock/metric",
            params={"symbol": normalized_symbol, "metric": "all"},
        )
        if not isinstance(payload, dict):
            raise DecodeError(f"{symbol}: metric payload is not an object")
        metric = payload.get("metric")
        if not isinstance(metric, dict):
            raise DecodeError(f"{symbol}: metric payload missing 'metric' object")
        values = {
            attribute: self._as_float(metric.get(key))
            for key, attribute in METRIC_FIELDS.items()
        }
        return FinancialMetrics(**values, raw=dict(metric))

    def search(self, query: str) -> list[SearchResult]:
        """Return symbol matches for a free-text query."""
        text = query.strip()
        if not text:
            return []
        payload = self._request_with_retry(path="/search", params={"q": text})
        if not isinstance(payload, dict):
            raise DecodeError("search payload is not an object")
        raw_results = payload.get("result", [])
        if not isinstance(raw_results, list):
            raise DecodeError("search payload 'result' is not a list")
        results: list[SearchResult] = []
        for item in raw_results:
            if not isinstance(item, dict):
                raise DecodeError("search result entry is not an object")
            results.append(
                SearchResult(
                    description=str(item.get("description") or ""),
                    display_symbol=str(item.get("displaySymbol") or ""),
                    symbol=str(item.get("symbol") or ""),
                    type=str(item.get("type") or ""),
                )
            )
        return results

    def news(self, kind: NewsKind, symbol: str | None = None) -> list[NewsStory]:
        """Return top stories or the last week of news for one company."""
        if kind == NewsKind.TOP_STORIES:
            payload = self._request_with_retry(path="/news", params={"category": "general"})
        else:
            if symbol is None:
                raise InvalidRequestError("company news requires a symbol")
            normalized_symbol = self._require_symbol(symbol)
            today = datetime.now(tz=UTC)
            week_back = today - timedelta(days=self.news_lookback_days)
            payload = self._request_with_retry(
                path="/company-news",
                params={
                    "symbol": normalized_symbol,
                    "from": week_back.strftime("%Y-%m-%d"),
                    "to": today.strftime("%Y-%m-%d"),
                },
            )
        if not isinstance(payload, list):
            raise DecodeError("news payload is not a list")
        return [self._story_from_payload(item) for item in payload]

    def _request_with_retry(self, path: str, params: dict[str, str]) -> Any:
        url = f"{self.base_url}{path}"
        query = {**params, "token": self.api_key}
        for attempt in range(1, self.max_retries + 1):
            try:
                response = self.session.get(url, params=query, timeout=self.timeout)
            except requests.RequestException as exc:
                if attempt == self.max_retries:
                    raise QuoteSourceError(f"Finnhub request failed: {exc}") from exc
                self.logger.warning(
                    "Finnhub request failed (attempt %s/%s): %s", attempt, self.max_retries, exc
                )
                sleep(float(attempt))
                continue
            if response.status_code == 429:
                if attempt == self.max_retries:
                    raise QuoteSourceError("Finnhub rate limit exceeded")
                sleep(float(attempt))
                continue
            if response.status_code >= 500:
                if attempt == self.max_retries:
                    raise QuoteSourceError(f"Finnhub server error: {response.status_code}")
                sleep(float(attempt))
                continue
            if response.status_code >= 400:
                detail = response.text.strip() or "No response body"
                raise QuoteSourceError(f"Finnhub error {response.status_code}: {detail}")
            try:
                payload = response.json()
            except ValueError as exc:
                raise DecodeError(f"Finnhub returned invalid JSON for {path}") from exc
            if isinstance(payload, dict) and "error" in payload:
                raise QuoteSourceError(f"Finnhub error: {payload['error']}")
            return payload
        raise QuoteSourceError("Finnhub request exhausted retries")

    @staticmethod
    def _candles_to_bars(symbol: str, payload: Any) -> list[PriceBar]:
        if not isinstance(payload, dict):
            raise DecodeError(f"{symbol}: candle payload is not an object")
        if payload.get("s") == "no_data":
            return []
        required = ("o", "h", "l", "c", "t")
        missing = [key for key in required if not isinstance(payload.get(key), list)]
        if missing:
            raise DecodeError(f"{symbol}: candle payload missing fields {missing}")
        lengths = {len(payload[key]) for key in required}
        if len(lengths) != 1:
            raise DecodeError(f"{symbol}: candle arrays have mismatched lengths")
        try:
            bars = [
                PriceBar(
                    timestamp=datetime.fromtimestamp(float(ts), tz=UTC),
                    open=float(open_),
                    high=float(high),
                    low=float(low),
                    close=float(close),
                )
                for open_, high, low, close, ts in zip(
                    payload["o"], payload["h"], payload["l"], payload["c"], payload["t"]
                )
            ]
        except (TypeError, ValueError, OverflowError, OSError) as exc:
            raise DecodeError(f"{symbol}: candle payload has invalid values") from exc
        return bars_newest_first(bars)

    @staticmethod
    def _story_from_payload(item: Any) -> NewsStory:
        if not isinstance(item, dict):
            raise DecodeError("news entry is not an object")
        try:
            published = float(item.get("datetime") or 0)
        except (TypeError, ValueError) as exc:
            raise DecodeError("news entry has a non-numeric datetime") from exc
        return NewsStory(
            category=str(item.get("category") or ""),
            datetime=published,
            headline=str(item.get("headline") or ""),
            image=str(item.get("image") or ""),
            related=str(item.get("related") or ""),
            source=str(item.get("source") or ""),
            summary=str(item.get("summary") or ""),
            url=str(item.get("url") or ""),
        )

    @staticmethod
    def _require_symbol(symbol: str) -> str:
        normalized = symbol.strip()
        if not normalized:
            raise InvalidRequestError("symbol must not be blank")
        return normalized

    @staticmethod
    def _as_float(value: Any) -> float | None:
        if value is None or isinstance(value, bool):
            return None
        if isinstance(value, (int, float)):
            return float(value)
        text = str(value).strip()
        if not text:
            return None
        try:
            return float(text)
        except ValueError:
            return None
