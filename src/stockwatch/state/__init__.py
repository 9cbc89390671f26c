"""Watchlist store interfaces and implementations."""

from .sqlite_store import SqliteWatchlistStore
from .store import DEFAULT_WATCHLIST, WatchlistStore

__all__ = ["DEFAULT_WATCHLIST", "WatchlistStore", "SqliteWatchlistStore"]
