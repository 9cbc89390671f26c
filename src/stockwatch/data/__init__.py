"""Quote source implementations."""

from .base import QuoteSource, bars_newest_first
from .csv_data import CsvQuoteSource
from .finnhub import FinnhubClient
from .yfinance_data import YFinanceQuoteSource

__all__ = [
    "QuoteSource",
    "bars_newest_first",
    "CsvQuoteSource",
    "FinnhubClient",
    "YFinanceQuoteSource",
]
