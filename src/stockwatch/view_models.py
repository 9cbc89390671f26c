"""Display records assembled from aggregated quotes and derived metrics."""

from __future__ import annotations

from collections.abc import Callable, Iterable, Sequence
from dataclasses import dataclass
from datetime import UTC, datetime, tzinfo

from stockwatch.domain.models import FinancialMetrics, NewsStory, PriceBar, SymbolQuoteSet
from stockwatch.metrics.derived import compute_metrics, format_percentage

NEGATIVE_COLOR = "red"
NON_NEGATIVE_COLOR = "green"
DEFAULT_COMPANY_NAME = "Company"


@dataclass(frozen=True)
class ChartSeries:
    """Close prices oldest-first plus chart presentation flags."""

    data: list[float]
    show_legend: bool
    show_axis: bool
    fill_color: str


@dataclass(frozen=True)
class WatchlistRow:
    symbol: str
    company_name: str
    price: str
    change_color: str
    change_percentage: str
    percent_change: float
    chart: ChartSeries


@dataclass(frozen=True)
class MetricRow:
    name: str
    value: str


@dataclass(frozen=True)
class NewsRow:
    source: str
    headline: str
    date_text: str
    url: str
    image_url: str | None


def change_color(percent_change: float) -> str:
    return NEGATIVE_COLOR if percent_change < 0 else NON_NEGATIVE_COLOR


def build_chart(
    bars: Sequence[PriceBar],
    percent_change: float,
    show_legend: bool = False,
    show_axis: bool = False,
) -> ChartSeries:
    """Build a chart series from newest-first bars."""
    return ChartSeries(
        data=[bar.close for bar in reversed(bars)],
        show_legend=show_legend,
        show_axis=show_axis,
        fill_color=change_color(percent_change),
    )


def build_watchlist_row(
    symbol: str,
    bars: Sequence[PriceBar],
    company_name: str | None,
    tz: tzinfo | None = None,
) -> WatchlistRow:
    metrics = compute_metrics(bars, tz=tz)
    return WatchlistRow(
        symbol=symbol,
        company_name=company_name or DEFAULT_COMPANY_NAME,
        price=metrics.price_text,
        change_color=change_color(metrics.percent_change),
        change_percentage=format_percentage(metrics.percent_change),
        percent_change=metrics.percent_change,
        chart=build_chart(bars, metrics.percent_change),
    )


def build_watchlist_rows(
    symbols: Iterable[str],
    quotes: SymbolQuoteSet,
    company_name: Callable[[str], str | None],
    tz: tzinfo | None = None,
) -> list[WatchlistRow]:
    """Build rows in watchlist order for every symbol that has bars."""
    rows: list[WatchlistRow] = []
    for symbol in symbols:
        bars = quotes.get(symbol)
        if not bars:
            continue
        rows.append(build_watchlist_row(symbol, bars, company_name(symbol), tz=tz))
    return rows


def build_metric_rows(metrics: FinancialMetrics | None) -> list[MetricRow]:
    if metrics is None:
        return []
    values = [
        ("52W High", metrics.week52_high),
        ("52W Low", metrics.week52_low),
        ("52W Return", metrics.week52_price_return_daily),
        ("Beta", metrics.beta),
        ("10D Vol.", metrics.ten_day_average_trading_volume),
    ]
    return [MetricRow(name=name, value=_metric_text(value)) for name, value in values]


def build_news_row(story: NewsStory) -> NewsRow:
    published = datetime.fromtimestamp(story.datetime, tz=UTC)
    return NewsRow(
        source=story.source,
        headline=story.headline,
        date_text=published.strftime("%b %d, %Y"),
        url=story.url,
        image_url=story.image or None,
    )


def _metric_text(value: float | None) -> str:
    if value is None:
        return "-"
    return f"{value}"
