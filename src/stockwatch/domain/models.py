"""Core watchlist domain models."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from enum import StrEnum
from typing import Any

SymbolQuoteSet = dict[str, list["PriceBar"]]


class NewsKind(StrEnum):
    """Supported news feeds."""

    TOP_STORIES = "top_stories"
    COMPANY = "company"


@dataclass(frozen=True)
class PriceBar:
    """One OHLC sample for a fixed interval."""

    timestamp: datetime
    open: float
    high: float
    low: float
    close: float


@dataclass(frozen=True)
class DerivedMetrics:
    """Display figures computed from a symbol's bars."""

    latest_close: float | None
    percent_change: float

    @property
    def price_text(self) -> str:
        """Two-decimal latest close, or an empty string without data."""
        if self.latest_close is None:
            return ""
        return f"{self.latest_close:.2f}"


@dataclass(frozen=True)
class WatchlistEntry:
    """Watched symbol with its company name."""

    symbol: str
    display_name: str


@dataclass(frozen=True)
class SearchResult:
    """Single symbol lookup match."""

    description: str
    display_symbol: str
    symbol: str
    type: str


@dataclass(frozen=True)
class NewsStory:
    """News article as returned by the news endpoints."""

    category: str
    datetime: float
    headline: str
    image: str
    related: str
    source: str
    summary: str
    url: str


@dataclass(frozen=True)
class FinancialMetrics:
    """Subset of fundamental metrics shown on the details view."""

    week52_high: float | None = None
    week52_low: float | None = None
    week52_price_return_daily: float | None = None
    beta: float | None = None
    ten_day_average_trading_volume: float | None = None
    raw: dict[str, Any] = field(default_factory=dict)
