"""Domain models."""

from .models import (
    DerivedMetrics,
    FinancialMetrics,
    NewsKind,
    NewsStory,
    PriceBar,
    SearchResult,
    SymbolQuoteSet,
    WatchlistEntry,
)

__all__ = [
    "DerivedMetrics",
    "FinancialMetrics",
    "NewsKind",
    "NewsStory",
    "PriceBar",
    "SearchResult",
    "SymbolQuoteSet",
    "WatchlistEntry",
]
