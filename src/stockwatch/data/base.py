"""Quote source contract."""

from __future__ import annotations

from datetime import datetime
from typing import Protocol

from stockwatch.domain.models import PriceBar


class QuoteSource(Protocol):
    """Interface for price bar retrieval."""

    async def fetch_bars(
        self,
        symbol: str,
        start: datetime,
        end: datetime,
        resolution: str,
    ) -> list[PriceBar]:
        """Return non-empty newest-first bars, raising on any failure."""


def bars_newest_first(bars: list[PriceBar]) -> list[PriceBar]:
    """Order bars by timestamp, newest first."""
    return sorted(bars, key=lambda bar: bar.timestamp, reverse=True)
