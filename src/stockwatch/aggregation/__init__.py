"""Quote aggregation."""

from .aggregator import DEFAULT_LOOKBACK_DAYS, QuoteAggregator, unique_symbols

__all__ = ["DEFAULT_LOOKBACK_DAYS", "QuoteAggregator", "unique_symbols"]
