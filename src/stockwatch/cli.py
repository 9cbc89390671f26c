"""Command-line interface for the stockwatch runtime."""

from __future__ import annotations

import argparse
import sys

from stockwatch.config import DATA_SOURCES, Settings
from stockwatch.runtime import (
    add_symbol,
    refresh_watchlist,
    remove_symbol,
    search_symbols,
    show_details,
    show_news,
)

TOP_STORIES = "__top__"
ACTION_FLAGS = ("search", "news", "details", "add", "remove")


def build_parser() -> argparse.ArgumentParser:
    """Build CLI parser."""
    parser = argparse.ArgumentParser(description="Stock watchlist, news and symbol search")
    parser.add_argument("--search", type=str, help="Search for ticker symbols")
    parser.add_argument(
        "--news",
        nargs="?",
        const=TOP_STORIES,
        metavar="SYMBOL",
        help="Show top stories, or company news for SYMBOL",
    )
    parser.add_argument("--details", type=str, metavar="SYMBOL", help="Show symbol details")
    parser.add_argument("--add", type=str, metavar="SYMBOL", help="Add a symbol to the watchlist")
    parser.add_argument("--name", type=str, help="Company name used with --add")
    parser.add_argument(
        "--remove", type=str, metavar="SYMBOL", help="Remove a symbol from the watchlist"
    )
    parser.add_argument("--data-source", choices=sorted(DATA_SOURCES), help="Quote source")
    parser.add_argument("--lookback-days", type=int, help="Days of price history to fetch")
    parser.add_argument("--resolution", type=str, help="Bar resolution, e.g. 1, 5, D")
    parser.add_argument("--max-passes", type=int, help="Number of watchlist refresh passes")
    parser.add_argument("--interval-seconds", type=int, help="Seconds between refresh passes")
    parser.add_argument("--state-db", type=str, help="SQLite watchlist database path")
    parser.add_argument("--csv-dir", type=str, help="CSV historical data directory")
    parser.add_argument("--report", type=str, help="Write a Plotly HTML chart report")
    parser.add_argument(
        "--log-level",
        choices=["DEBUG", "INFO", "WARNING", "ERROR"],
        help="Console log level",
    )
    return parser


def apply_cli_overrides(settings: Settings, args: argparse.Namespace) -> Settings:
    """Apply CLI values onto environment-derived settings."""
    actions = [flag for flag in ACTION_FLAGS if getattr(args, flag) is not None]
    if len(actions) > 1:
        joined = ", ".join(f"--{flag}" for flag in actions)
        raise ValueError(f"Use only one action flag: {joined}")
    if args.name is not None and args.add is None:
        raise ValueError("--name requires --add")
    if args.report and actions:
        raise ValueError("--report only applies to a watchlist refresh")

    overrides: dict[str, object] = {}
    if args.data_source:
        overrides["data_source"] = args.data_source
    if args.lookback_days is not None:
        overrides["lookback_days"] = args.lookback_days
    if args.resolution:
        overrides["resolution"] = args.resolution
    if args.max_passes is not None:
        overrides["max_passes"] = args.max_passes
    if args.interval_seconds is not None:
        overrides["interval_seconds"] = args.interval_seconds
    if args.state_db:
        overrides["state_db_path"] = args.state_db
    if args.csv_dir:
        overrides["csv_data_dir"] = args.csv_dir
    if args.log_level:
        overrides["log_level"] = args.log_level
    return settings.with_overrides(**overrides)


def main(argv: list[str] | None = None) -> int:
    """CLI entrypoint."""
    parser = build_parser()
    args = parser.parse_args(argv)
    try:
        settings = apply_cli_overrides(Settings.from_env(), args)
    except ValueError as exc:
        print(f"Configuration error: {exc}")
        return 2
    if args.search is not None:
        return search_symbols(settings, args.search)
    if args.news is not None:
        symbol = None if args.news == TOP_STORIES else args.news
        return show_news(settings, symbol=symbol)
    if args.details is not None:
        return show_details(settings, args.details)
    if args.add is not None:
        return add_symbol(settings, args.add, display_name=args.name)
    if args.remove is not None:
        return remove_symbol(settings, args.remove)
    return refresh_watchlist(settings, report_path=args.report)


if __name__ == "__main__":
    sys.exit(main())
