"""
tests/test_market_data.py
──────────────────────────
``MarketDataService.latest``: window filtering and latest-per-symbol.
"""

from datetime import timedelta

import pytest

from conftest import NOW, InMemoryQuoteLog, quote_row
from core.exceptions import QueryError
from data_engine.market_data import MarketDataService


def _service(rows, clock) -> MarketDataService:
    return MarketDataService(InMemoryQuoteLog(rows), clock=clock)


def test_latest_row_per_symbol_wins(clock) -> None:
    rows = [
        quote_row("NSE:TCS-EQ", NOW - timedelta(hours=30), price=1.0),
        quote_row("NSE:TCS-EQ", NOW - timedelta(hours=3), price=3.0, rs_ratio=104.0),
        quote_row("NSE:TCS-EQ", NOW - timedelta(hours=12), price=2.0),
    ]
    result = _service(rows, clock).latest("weekly")

    assert len(result) == 1
    assert result[0].symbol == "NSE:TCS-EQ"
    assert result[0].price == 3.0
    assert result[0].rs_ratio == 104.0
    assert result[0].visible is True


def test_daily_window_excludes_older_rows(clock) -> None:
    rows = [
        quote_row("NSE:OLD-EQ", NOW - timedelta(hours=48)),
        quote_row("NSE:NEW-EQ", NOW - timedelta(hours=2)),
    ]
    result = _service(rows, clock).latest("daily")
    assert [r.symbol for r in result] == ["NSE:NEW-EQ"]


@pytest.mark.parametrize(
    "timeframe, expected",
    [("daily", 1), ("weekly", 2), ("monthly", 3)],
)
def test_window_lengths(clock, timeframe: str, expected: int) -> None:
    rows = [
        quote_row("NSE:A-EQ", NOW - timedelta(hours=23)),
        quote_row("NSE:B-EQ", NOW - timedelta(days=6)),
        quote_row("NSE:C-EQ", NOW - timedelta(days=29)),
        quote_row("NSE:D-EQ", NOW - timedelta(days=31)),
    ]
    assert len(_service(rows, clock).latest(timeframe)) == expected


def test_default_timeframe_is_weekly(clock) -> None:
    rows = [
        quote_row("NSE:B-EQ", NOW - timedelta(days=6)),
        quote_row("NSE:C-EQ", NOW - timedelta(days=8)),
    ]
    assert [r.symbol for r in _service(rows, clock).latest()] == ["NSE:B-EQ"]


def test_rows_are_newest_symbol_first(clock) -> None:
    rows = [
        quote_row("NSE:A-EQ", NOW - timedelta(hours=5)),
        quote_row("NSE:B-EQ", NOW - timedelta(hours=1)),
    ]
    assert [r.symbol for r in _service(rows, clock).latest()] == ["NSE:B-EQ", "NSE:A-EQ"]


def test_presentation_labels(clock) -> None:
    row = _service([quote_row("NSE:A-EQ", NOW)], clock).latest()[0]
    dumped = row.model_dump(by_alias=True)
    assert dumped["RS-Ratio"] == 100.0
    assert dumped["RS-Momentum"] == 100.25
    assert dumped["visible"] is True
    assert "rs_ratio" not in dumped


def test_empty_window_is_empty_list(clock) -> None:
    assert _service([], clock).latest("daily") == []


def test_unknown_timeframe_rejected(clock) -> None:
    with pytest.raises(ValueError):
        _service([], clock).latest("hourly")


def test_read_failure_propagates(clock) -> None:
    log = InMemoryQuoteLog()
    log.fail_with = QueryError("connection reset")
    with pytest.raises(QueryError):
        MarketDataService(log, clock=clock).latest()
