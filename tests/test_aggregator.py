from __future__ import annotations

import asyncio
import logging
import random
from datetime import UTC, datetime, timedelta

import pytest

from stockwatch.aggregation.aggregator import QuoteAggregator, unique_symbols
from stockwatch.domain.models import PriceBar
from stockwatch.errors import QuoteSourceError

NOW = datetime(2024, 1, 10, 21, 0, tzinfo=UTC)


def _bars(close: float) -> list[PriceBar]:
    return [
        PriceBar(timestamp=NOW, open=close, high=close, low=close, close=close),
        PriceBar(
            timestamp=NOW - timedelta(days=1),
            open=close - 1,
            high=close - 1,
            low=close - 1,
            close=close - 1,
        ),
    ]


class FakeQuoteSource:
    def __init__(
        self,
        delays: dict[str, float] | None = None,
        failing: set[str] | None = None,
        empty: set[str] | None = None,
    ) -> None:
        self.delays = delays or {}
        self.failing = failing or set()
        self.empty = empty or set()
        self.calls: list[tuple[str, datetime, datetime, str]] = []
        self.completed: list[str] = []

    async def fetch_bars(
        self,
        symbol: str,
        start: datetime,
        end: datetime,
        resolution: str,
    ) -> list[PriceBar]:
        self.calls.append((symbol, start, end, resolution))
        await asyncio.sleep(self.delays.get(symbol, 0.0))
        self.completed.append(symbol)
        if symbol in self.failing:
            raise QuoteSourceError(f"boom {symbol}")
        if symbol in self.empty:
            return []
        return _bars(100.0)


def test_unique_symbols_preserves_order() -> None:
    assert unique_symbols(["B", "A", "B", "C", "A"]) == ["B", "A", "C"]


def test_completion_fires_once_after_all_fetches_settle() -> None:
    symbols = ["S1", "S2", "S3", "S4", "S5"]
    order = list(range(1, 6))
    random.Random(7).shuffle(order)
    delays = {symbol: rank * 0.01 for symbol, rank in zip(symbols, order)}
    source = FakeQuoteSource(delays=delays)
    aggregator = QuoteAggregator(source, clock=lambda: NOW)
    completions: list[dict[str, list[PriceBar]]] = []

    def on_complete(result: dict[str, list[PriceBar]]) -> None:
        assert sorted(source.completed) == sorted(symbols)
        completions.append(result)

    result = asyncio.run(aggregator.aggregate(symbols, on_complete=on_complete))

    assert len(completions) == 1
    assert set(completions[0]) == set(symbols)
    assert result == completions[0]
    assert sorted(source.completed, key=lambda s: delays[s]) == source.completed


def test_fetch_window_uses_lookback_and_resolution() -> None:
    source = FakeQuoteSource()
    aggregator = QuoteAggregator(source, resolution="5", lookback_days=3, clock=lambda: NOW)

    asyncio.run(aggregator.aggregate(["AAPL"]))

    assert source.calls == [("AAPL", NOW - timedelta(days=3), NOW, "5")]


def test_failed_symbol_is_absent_and_batch_continues() -> None:
    source = FakeQuoteSource(failing={"B"})
    aggregator = QuoteAggregator(source, clock=lambda: NOW)
    completions: list[dict[str, list[PriceBar]]] = []

    result = asyncio.run(aggregator.aggregate(["A", "B", "C"], on_complete=completions.append))

    assert set(result) == {"A", "C"}
    assert "B" not in result
    assert len(completions) == 1
    assert set(completions[0]) == {"A", "C"}
    assert "boom B" in aggregator.last_failures["B"]


def test_empty_fetch_is_treated_as_absent() -> None:
    source = FakeQuoteSource(empty={"B"})
    aggregator = QuoteAggregator(source, clock=lambda: NOW)

    result = asyncio.run(aggregator.aggregate(["A", "B"]))

    assert "B" not in result
    assert "B" in aggregator.last_failures


def test_failed_symbol_is_retried_and_cached_symbols_are_not() -> None:
    source = FakeQuoteSource(failing={"B"})
    aggregator = QuoteAggregator(source, clock=lambda: NOW)

    asyncio.run(aggregator.aggregate(["A", "B", "C"]))
    source.failing.clear()
    source.calls.clear()
    result = asyncio.run(aggregator.aggregate(["A", "B", "C"]))

    assert [call[0] for call in source.calls] == ["B"]
    assert set(result) == {"A", "B", "C"}
    assert aggregator.last_failures == {}


def test_duplicate_symbols_fetch_once() -> None:
    source = FakeQuoteSource()
    aggregator = QuoteAggregator(source, clock=lambda: NOW)

    asyncio.run(aggregator.aggregate(["A", "A", "B", "A"]))

    assert [call[0] for call in source.calls] == ["A", "B"]


def test_nothing_missing_still_completes_once() -> None:
    source = FakeQuoteSource()
    aggregator = QuoteAggregator(source, clock=lambda: NOW, cache={"A": _bars(5.0)})
    completions: list[dict[str, list[PriceBar]]] = []

    result = asyncio.run(aggregator.aggregate(["A"], on_complete=completions.append))

    assert source.calls == []
    assert len(completions) == 1
    assert result["A"][0].close == 5.0


def test_seed_cache_drops_empty_entries() -> None:
    aggregator = QuoteAggregator(FakeQuoteSource(), cache={"A": [], "B": _bars(1.0)})

    assert set(aggregator.snapshot()) == {"B"}


def test_snapshot_is_isolated_from_later_writes() -> None:
    source = FakeQuoteSource()
    aggregator = QuoteAggregator(source, clock=lambda: NOW)
    before = aggregator.snapshot()

    asyncio.run(aggregator.aggregate(["A"]))

    assert before == {}
    assert set(aggregator.snapshot()) == {"A"}


def test_evict_forces_refetch() -> None:
    source = FakeQuoteSource()
    aggregator = QuoteAggregator(source, clock=lambda: NOW)
    asyncio.run(aggregator.aggregate(["A"]))

    aggregator.evict("A")
    aggregator.evict("missing")
    asyncio.run(aggregator.aggregate(["A"]))

    assert [call[0] for call in source.calls] == ["A", "A"]


def test_symbols_are_case_sensitive() -> None:
    source = FakeQuoteSource()
    aggregator = QuoteAggregator(source, clock=lambda: NOW)

    result = asyncio.run(aggregator.aggregate(["aapl", "AAPL"]))

    assert set(result) == {"aapl", "AAPL"}


def test_lookback_must_be_positive() -> None:
    with pytest.raises(ValueError, match="lookback_days"):
        QuoteAggregator(FakeQuoteSource(), lookback_days=0)


class SlowFirstQuoteSource:
    def __init__(self) -> None:
        self.calls = 0

    async def fetch_bars(
        self,
        symbol: str,
        start: datetime,
        end: datetime,
        resolution: str,
    ) -> list[PriceBar]:
        self.calls += 1
        if self.calls == 1:
            await asyncio.sleep(0.05)
            return _bars(1.0)
        return _bars(2.0)


def test_late_fetch_from_earlier_pass_still_writes() -> None:
    source = SlowFirstQuoteSource()
    aggregator = QuoteAggregator(source, clock=lambda: NOW)

    async def _overlapping_passes() -> tuple[dict, dict]:
        first = asyncio.create_task(aggregator.aggregate(["A"]))
        await asyncio.sleep(0)
        second = await aggregator.aggregate(["A"])
        first_result = await first
        return first_result, second

    first_result, second_result = asyncio.run(_overlapping_passes())

    assert source.calls == 2
    assert second_result["A"][0].close == 2.0
    assert first_result["A"][0].close == 1.0
    assert aggregator.snapshot()["A"][0].close == 1.0


class RecordingHandler(logging.Handler):
    def __init__(self) -> None:
        super().__init__(level=logging.DEBUG)
        self.records: list[logging.LogRecord] = []

    def emit(self, record: logging.LogRecord) -> None:
        self.records.append(record)


def test_fetch_failures_are_logged_below_warning() -> None:
    source = FakeQuoteSource(failing={"B"}, empty={"C"})
    aggregator = QuoteAggregator(source, clock=lambda: NOW)
    aggregation_logger = logging.getLogger("stockwatch.aggregation")
    handler = RecordingHandler()
    previous_level = aggregation_logger.level
    aggregation_logger.addHandler(handler)
    aggregation_logger.setLevel(logging.DEBUG)
    try:
        asyncio.run(aggregator.aggregate(["A", "B", "C"]))
    finally:
        aggregation_logger.removeHandler(handler)
        aggregation_logger.setLevel(previous_level)

    assert set(aggregator.last_failures) == {"B", "C"}
    assert all(record.levelno < logging.WARNING for record in handler.records)
    messages = [record.getMessage() for record in handler.records]
    assert any("fetch failed for B" in message for message in messages)
    assert any("no bars for C" in message for message in messages)
