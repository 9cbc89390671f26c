"""Concise human-readable console logger."""

from __future__ import annotations

import logging

from stockwatch.domain.models import SearchResult
from stockwatch.view_models import MetricRow, NewsRow, WatchlistRow


class HumanLogger:
    """Console logger with fixed line types."""

    def __init__(self, level: str = "INFO") -> None:
        self._logger = logging.getLogger("stockwatch")
        self._logger.setLevel(getattr(logging, level.upper(), logging.INFO))
        self._logger.propagate = False
        if not self._logger.handlers:
            handler = logging.StreamHandler()
            formatter = logging.Formatter("%(asctime)s | %(message)s", "%Y-%m-%d %H:%M:%S")
            handler.setFormatter(formatter)
            self._logger.addHandler(handler)

    def watchlist_row(self, row: WatchlistRow, stale: bool = False) -> None:
        parts = [f"row | {row.symbol} | {row.company_name}"]
        parts.append(f"price ${row.price}" if row.price else "price -")
        parts.append(f"change {row.change_percentage} ({row.change_color})")
        if stale:
            parts.append("stale")
        self._logger.info(" | ".join(parts))

    def pass_summary(self, requested: int, fetched: int, failed: list[str]) -> None:
        if failed:
            self._logger.info(
                "refresh | requested %s | fetched %s | failed %s",
                requested,
                fetched,
                ", ".join(failed),
            )
            return
        self._logger.info("refresh | requested %s | fetched %s", requested, fetched)

    def fetch_failed(self, symbol: str, reason: str) -> None:
        self._logger.warning("fetch_failed | %s | %s", symbol, reason)

    def metric(self, row: MetricRow) -> None:
        self._logger.info("metric | %s | %s", row.name, row.value)

    def news(self, row: NewsRow) -> None:
        self._logger.info("news | %s | %s | %s", row.date_text, row.source, row.headline)

    def search_result(self, result: SearchResult) -> None:
        self._logger.info(
            "search | %s | %s | %s",
            result.display_symbol,
            result.description,
            result.type or "-",
        )

    def watchlist_changed(self, action: str, symbol: str) -> None:
        self._logger.info("watchlist | %s | %s", action, symbol)

    def info(self, message: str) -> None:
        self._logger.info(message)

    def error(self, message: str) -> None:
        self._logger.error("error | %s", message)
