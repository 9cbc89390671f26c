"""Watchlist store contract used by runtime."""

from __future__ import annotations

from typing import Protocol

from stockwatch.domain.models import WatchlistEntry

DEFAULT_WATCHLIST: dict[str, str] = {
    "MSFT": "Microsoft Corporation",
    "SNAP": "Snap Inc.",
    "GOOG": "Alphabet",
    "AMZN": "Amazon.com Inc.",
    "NVDA": "NVidia Inc.",
    "NKE": "Nike",
    "PINS": "Pinterest Inc.",
}


class WatchlistStore(Protocol):
    """Persistence API for the user's watchlist."""

    def get_watchlist(self) -> list[str]:
        """Return watched symbols in insertion order."""

    def entries(self) -> list[WatchlistEntry]:
        """Return watched symbols with their company names."""

    def add_to_watchlist(self, symbol: str, display_name: str) -> None:
        """Persist a symbol and its company name."""

    def remove_from_watchlist(self, symbol: str) -> None:
        """Drop a symbol and its company name."""

    def contains(self, symbol: str) -> bool:
        """Return true when the symbol is watched."""

    def display_name(self, symbol: str) -> str | None:
        """Return the stored company name for a symbol."""

    def close(self) -> None:
        """Close persistence resources."""
