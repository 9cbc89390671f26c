"""Concurrent quote aggregation with an all-settled join."""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Callable, Iterable
from datetime import UTC, datetime, timedelta

from stockwatch.data.base import QuoteSource
from stockwatch.domain.models import PriceBar, SymbolQuoteSet

DEFAULT_LOOKBACK_DAYS = 7

logger = logging.getLogger("stockwatch.aggregation")


def unique_symbols(symbols: Iterable[str]) -> list[str]:
    """Remove duplicate symbols while preserving order."""
    deduped: list[str] = []
    seen: set[str] = set()
    for symbol in symbols:
        if symbol in seen:
            continue
        seen.add(symbol)
        deduped.append(symbol)
    return deduped


class QuoteAggregator:
    """Fetch missing symbols' bars concurrently into a shared cache.

    The cache only ever holds symbols whose fetch produced at least one bar.
    Failed or empty fetches leave the symbol absent so the next pass retries
    it. Passes are not cancelled: a fetch that resolves after a newer pass
    started still writes its result.
    """

    def __init__(
        self,
        source: QuoteSource,
        resolution: str = "1",
        lookback_days: int = DEFAULT_LOOKBACK_DAYS,
        clock: Callable[[], datetime] | None = None,
        cache: SymbolQuoteSet | None = None,
    ) -> None:
        if lookback_days <= 0:
            raise ValueError("lookback_days must be positive")
        self.source = source
        self.resolution = resolution
        self.lookback = timedelta(days=lookback_days)
        self._clock = clock or (lambda: datetime.now(tz=UTC))
        self._cache: SymbolQuoteSet = {
            symbol: list(bars) for symbol, bars in (cache or {}).items() if bars
        }
        self._lock = asyncio.Lock()
        self.last_failures: dict[str, str] = {}

    def snapshot(self) -> SymbolQuoteSet:
        """Return a copy of the cache that later writes do not affect."""
        return dict(self._cache)

    def evict(self, symbol: str) -> None:
        self._cache.pop(symbol, None)

    def missing(self, symbols: Iterable[str]) -> list[str]:
        return [symbol for symbol in unique_symbols(symbols) if symbol not in self._cache]

    async def aggregate(
        self,
        symbols: Iterable[str],
        on_complete: Callable[[SymbolQuoteSet], None] | None = None,
    ) -> SymbolQuoteSet:
        """Run one aggregation pass and return the resulting cache snapshot.

        ``on_complete`` is called exactly once, after every issued fetch has
        either succeeded or failed.
        """
        pending = self.missing(symbols)
        end = self._clock()
        start = end - self.lookback
        failures: dict[str, str] = {}

        if pending:
            logger.debug("fetching %s symbols: %s", len(pending), ", ".join(pending))
        outcomes = await asyncio.gather(
            *(self._fetch_one(symbol, start, end) for symbol in pending),
            return_exceptions=True,
        )
        for symbol, outcome in zip(pending, outcomes):
            if isinstance(outcome, BaseException):
                failures[symbol] = str(outcome) or type(outcome).__name__

        self.last_failures = failures
        result = self.snapshot()
        if on_complete is not None:
            on_complete(result)
        return result

    async def _fetch_one(self, symbol: str, start: datetime, end: datetime) -> None:
        try:
            bars = await self.source.fetch_bars(symbol, start, end, self.resolution)
        except Exception as exc:
            logger.debug("fetch failed for %s: %s", symbol, exc)
            raise
        if not bars:
            logger.debug("fetch returned no bars for %s", symbol)
            raise LookupError(f"no bars returned for {symbol}")
        await self._store(symbol, list(bars))

    async def _store(self, symbol: str, bars: list[PriceBar]) -> None:
        async with self._lock:
            self._cache[symbol] = bars
