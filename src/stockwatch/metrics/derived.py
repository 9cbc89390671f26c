"""Derived price figures computed from newest-first bar sequences."""

from __future__ import annotations

from collections.abc import Sequence
from datetime import date, tzinfo

from stockwatch.domain.models import DerivedMetrics, PriceBar


def latest_close(bars: Sequence[PriceBar]) -> float | None:
    """Return the close of the newest bar, or None without data."""
    if not bars:
        return None
    return bars[0].close


def latest_closing_price(bars: Sequence[PriceBar]) -> str:
    """Return the newest close formatted for display, or an empty string."""
    value = latest_close(bars)
    if value is None:
        return ""
    return format_price(value)


def percent_change(bars: Sequence[PriceBar], tz: tzinfo | None = None) -> float:
    """Return the fractional change against the most recent prior trading day.

    Bars are expected newest-first. The prior close comes from the first bar
    whose calendar date differs from the newest bar's date, so same-day
    intraday bars are skipped. The result is ``1 - prior_close / latest_close``
    and is 0.0 when no earlier day is present.
    """
    if not bars:
        return 0.0
    latest = bars[0]
    latest_day = _calendar_date(latest, tz)
    prior = next((bar for bar in bars if _calendar_date(bar, tz) != latest_day), None)
    if prior is None or latest.close == 0:
        return 0.0
    return 1 - (prior.close / latest.close)


def compute_metrics(bars: Sequence[PriceBar], tz: tzinfo | None = None) -> DerivedMetrics:
    """Compute the display metrics for one symbol."""
    return DerivedMetrics(
        latest_close=latest_close(bars),
        percent_change=percent_change(bars, tz=tz),
    )


def format_price(value: float) -> str:
    return f"{value:.2f}"


def format_percentage(value: float) -> str:
    return f"{value * 100:.2f}%"


def _calendar_date(bar: PriceBar, tz: tzinfo | None) -> date:
    timestamp = bar.timestamp
    if tz is not None and timestamp.tzinfo is not None:
        timestamp = timestamp.astimezone(tz)
    return timestamp.date()
