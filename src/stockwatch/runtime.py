"""Runtime wiring for watchlist refresh, details, news and search."""

from __future__ import annotations

import asyncio
from dataclasses import replace
from datetime import tzinfo

from stockwatch.aggregation.aggregator import QuoteAggregator
from stockwatch.config import Settings
from stockwatch.data.base import QuoteSource
from stockwatch.data.csv_data import CsvQuoteSource
from stockwatch.data.finnhub import FinnhubClient
from stockwatch.data.yfinance_data import YFinanceQuoteSource
from stockwatch.domain.models import FinancialMetrics, NewsKind, SearchResult
from stockwatch.errors import ConfigError, StockwatchError
from stockwatch.logging.logger import HumanLogger
from stockwatch.logging.report import generate_chart_report
from stockwatch.state.sqlite_store import SqliteWatchlistStore
from stockwatch.state.store import WatchlistStore
from stockwatch.view_models import (
    WatchlistRow,
    build_chart,
    build_metric_rows,
    build_news_row,
    build_watchlist_row,
    build_watchlist_rows,
)


def refresh_watchlist(
    settings: Settings,
    report_path: str | None = None,
    quote_source: QuoteSource | None = None,
    store: WatchlistStore | None = None,
) -> int:
    """Refresh the watchlist for the configured number of passes."""
    human_logger = HumanLogger(level=settings.log_level)
    exit_code = 0
    try:
        source = quote_source or build_quote_source(settings)
        watchlist = store or build_watchlist_store(settings)
    except StockwatchError as exc:
        human_logger.error(str(exc))
        return 1

    aggregator = QuoteAggregator(
        source,
        resolution=settings.resolution,
        lookback_days=settings.lookback_days,
    )
    try:
        rows = asyncio.run(
            run_passes(
                aggregator=aggregator,
                store=watchlist,
                human_logger=human_logger,
                passes=settings.max_passes,
                interval_seconds=settings.interval_seconds,
                tz=settings.timezone(),
            )
        )
        if report_path:
            generate_chart_report(rows, report_path)
            human_logger.info(f"report | {report_path}")
    except KeyboardInterrupt:
        exit_code = 0
    except StockwatchError as exc:
        human_logger.error(str(exc))
        exit_code = 1
    finally:
        watchlist.close()
    return exit_code


async def run_passes(
    aggregator: QuoteAggregator,
    store: WatchlistStore,
    human_logger: HumanLogger,
    passes: int = 1,
    interval_seconds: int = 0,
    tz: tzinfo | None = None,
) -> list[WatchlistRow]:
    rows: list[WatchlistRow] = []
    for index in range(passes):
        if index:
            await asyncio.sleep(float(interval_seconds))
        rows = await refresh_once(aggregator, store, human_logger, tz=tz)
    return rows


async def refresh_once(
    aggregator: QuoteAggregator,
    store: WatchlistStore,
    human_logger: HumanLogger,
    tz: tzinfo | None = None,
) -> list[WatchlistRow]:
    """Run one aggregation pass, rendering cached rows first and fresh rows after."""
    symbols = store.get_watchlist()
    watched = set(symbols)
    for symbol in aggregator.snapshot():
        if symbol not in watched:
            aggregator.evict(symbol)

    stale_rows = build_watchlist_rows(symbols, aggregator.snapshot(), store.display_name, tz=tz)
    for row in stale_rows:
        human_logger.watchlist_row(row, stale=True)

    requested = len(aggregator.missing(symbols))
    quotes = await aggregator.aggregate(symbols)
    failures = aggregator.last_failures
    for symbol, reason in failures.items():
        human_logger.fetch_failed(symbol, reason)

    rows = build_watchlist_rows(symbols, quotes, store.display_name, tz=tz)
    for row in rows:
        human_logger.watchlist_row(row)
    human_logger.pass_summary(requested, requested - len(failures), sorted(failures))
    return rows


def show_details(
    settings: Settings,
    symbol: str,
    client: FinnhubClient | None = None,
    quote_source: QuoteSource | None = None,
) -> int:
    """Print chart summary, fundamentals and company news for one symbol."""
    human_logger = HumanLogger(level=settings.log_level)
    try:
        finnhub = client or build_finnhub_client(settings)
        source = quote_source or build_quote_source(settings, client=finnhub)
        row, metrics = asyncio.run(
            load_details(settings, symbol, finnhub, source, human_logger)
        )
    except StockwatchError as exc:
        human_logger.error(str(exc))
        return 1

    if row is not None:
        human_logger.watchlist_row(row)
        human_logger.info(
            f"chart | {symbol} | {len(row.chart.data)} points | {row.chart.fill_color}"
        )
    for metric_row in build_metric_rows(metrics):
        human_logger.metric(metric_row)
    return show_news(settings, symbol=symbol, client=finnhub)


async def load_details(
    settings: Settings,
    symbol: str,
    client: FinnhubClient,
    source: QuoteSource,
    human_logger: HumanLogger,
) -> tuple[WatchlistRow | None, FinancialMetrics | None]:
    """Fetch bars and fundamentals concurrently and wait for both to settle."""
    aggregator = QuoteAggregator(
        source,
        resolution=settings.resolution,
        lookback_days=settings.lookback_days,
    )
    quotes, metrics = await asyncio.gather(
        aggregator.aggregate([symbol]),
        client.fetch_financial_metrics(symbol),
        return_exceptions=True,
    )
    for failed_symbol, reason in aggregator.last_failures.items():
        human_logger.fetch_failed(failed_symbol, reason)
    if isinstance(metrics, BaseException):
        human_logger.fetch_failed(symbol, f"metrics: {metrics}")
        metrics = None
    if isinstance(quotes, BaseException):
        raise quotes

    bars = quotes.get(symbol)
    if not bars:
        return None, metrics
    row = build_watchlist_row(symbol, bars, None, tz=settings.timezone())
    detail_chart = build_chart(bars, row.percent_change, show_legend=True, show_axis=True)
    return replace(row, chart=detail_chart), metrics


def show_news(
    settings: Settings,
    symbol: str | None = None,
    client: FinnhubClient | None = None,
) -> int:
    """Print top stories, or company news when a symbol is given."""
    human_logger = HumanLogger(level=settings.log_level)
    kind = NewsKind.TOP_STORIES if symbol is None else NewsKind.COMPANY
    try:
        finnhub = client or build_finnhub_client(settings)
        stories = finnhub.news(kind, symbol=symbol)
    except StockwatchError as exc:
        human_logger.error(str(exc))
        return 1
    for story in stories:
        human_logger.news(build_news_row(story))
    return 0


def search_symbols(
    settings: Settings,
    query: str,
    client: FinnhubClient | None = None,
) -> int:
    human_logger = HumanLogger(level=settings.log_level)
    try:
        finnhub = client or build_finnhub_client(settings)
        results = finnhub.search(query)
    except StockwatchError as exc:
        human_logger.error(str(exc))
        return 1
    for result in results:
        human_logger.search_result(result)
    return 0


def add_symbol(
    settings: Settings,
    symbol: str,
    display_name: str | None = None,
    store: WatchlistStore | None = None,
    client: FinnhubClient | None = None,
) -> int:
    """Add a symbol, resolving its company name through search when not given."""
    human_logger = HumanLogger(level=settings.log_level)
    watchlist = store or build_watchlist_store(settings)
    try:
        name = display_name
        if not name and (client is not None or settings.finnhub_api_key):
            finnhub = client or build_finnhub_client(settings)
            name = resolve_display_name(finnhub.search(symbol), symbol)
        watchlist.add_to_watchlist(symbol, name or symbol)
    except StockwatchError as exc:
        human_logger.error(str(exc))
        return 1
    finally:
        watchlist.close()
    human_logger.watchlist_changed("added", symbol)
    return 0


def remove_symbol(
    settings: Settings,
    symbol: str,
    store: WatchlistStore | None = None,
) -> int:
    human_logger = HumanLogger(level=settings.log_level)
    watchlist = store or build_watchlist_store(settings)
    try:
        if not watchlist.contains(symbol):
            human_logger.error(f"{symbol} is not on the watchlist")
            return 1
        watchlist.remove_from_watchlist(symbol)
    finally:
        watchlist.close()
    human_logger.watchlist_changed("removed", symbol)
    return 0


def resolve_display_name(results: list[SearchResult], symbol: str) -> str | None:
    """Return the description of the search result matching ``symbol`` exactly."""
    for result in results:
        if symbol in {result.display_symbol, result.symbol}:
            return result.description or None
    return None


def build_finnhub_client(settings: Settings) -> FinnhubClient:
    if not settings.finnhub_api_key:
        raise ConfigError("FINNHUB_API_KEY is required for Finnhub requests")
    return FinnhubClient(
        api_key=settings.finnhub_api_key,
        base_url=settings.finnhub_base_url,
        timeout=settings.request_timeout,
        max_retries=settings.max_retries,
        news_lookback_days=settings.news_lookback_days,
    )


def build_quote_source(
    settings: Settings,
    client: FinnhubClient | None = None,
) -> QuoteSource:
    source = settings.data_source
    if source == "csv":
        return CsvQuoteSource(data_dir=settings.csv_data_dir)
    if source == "yfinance":
        return YFinanceQuoteSource()
    return client or build_finnhub_client(settings)


def build_watchlist_store(settings: Settings) -> WatchlistStore:
    return SqliteWatchlistStore(settings.state_db_path)
