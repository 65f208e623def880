from datetime import date, datetime, timedelta
from decimal import Decimal

import pytest

from app.models.earning import Currency, Earning
from app.utils.aggregator import (
    EarningsAggregator,
    currency_totals,
    filter_month,
    month_bounds,
    month_tiles,
    month_view_window,
    sort_newest_first,
    total_in_reporting_currency,
)


def make(earning_id, amount, currency, when):
    return Earning(
        earning_id=earning_id,
        user_id="u1",
        amount=Decimal(str(amount)),
        currency=Currency(currency),
        task=f"task {earning_id}",
        date=when,
    )


sample_earnings = [
    make("a", 100, "USD", datetime(2025, 3, 1, 9, 0)),
    make("b", 2500, "UAH", datetime(2025, 3, 20, 18, 0)),
    make("c", 40.5, "USD", datetime(2025, 3, 10, 12, 0)),
    make("d", 999, "UAH", datetime(2025, 4, 2, 8, 0)),
]


def test_month_bounds_cover_whole_month():
    start, end = month_bounds(2024, 2)
    assert start == datetime(2024, 2, 1, 0, 0, 0)
    assert end == datetime(2024, 2, 29, 23, 59, 59, 999000)


@pytest.mark.parametrize("month", [0, 13])
def test_month_bounds_rejects_invalid_month(month):
    with pytest.raises(ValueError):
        month_bounds(2025, month)


def test_filter_includes_boundaries_and_excludes_one_millisecond_outside():
    start, end = month_bounds(2025, 3)
    one_ms = timedelta(milliseconds=1)
    records = [
        make("first", 1, "UAH", start),
        make("last", 1, "UAH", end),
        make("before", 1, "UAH", start - one_ms),
        make("after", 1, "UAH", end + one_ms),
    ]
    kept = {r.earning_id for r in filter_month(records, 2025, 3)}
    assert kept == {"first", "last"}


def test_sort_newest_first_is_non_increasing():
    ordered = sort_newest_first(sample_earnings)
    dates = [r.date for r in ordered]
    assert dates == sorted(dates, reverse=True)


def test_sort_keeps_store_order_for_equal_dates():
    when = datetime(2025, 3, 5)
    records = [make("x", 1, "UAH", when), make("y", 2, "UAH", when), make("z", 3, "UAH", when)]
    assert [r.earning_id for r in sort_newest_first(records)] == ["x", "y", "z"]


def test_currency_totals():
    totals = currency_totals(sample_earnings[:3])
    assert totals[Currency.USD] == Decimal("140.5")
    assert totals[Currency.UAH] == Decimal("2500")


def test_total_in_reporting_currency_empty_is_zero():
    assert total_in_reporting_currency([], 41.0) == 0
    assert currency_totals([]) == {Currency.USD: 0, Currency.UAH: 0}


def test_total_in_reporting_currency_converts_usd():
    total = total_in_reporting_currency(sample_earnings[:3], 41.0)
    assert total == Decimal("2500") + Decimal("140.5") * Decimal("41.0")


def test_month_records_filters_then_sorts():
    records = EarningsAggregator().month_records(sample_earnings, 2025, 3)
    assert [r.earning_id for r in records] == ["b", "c", "a"]


def test_summarize():
    aggregator = EarningsAggregator()
    records = aggregator.month_records(sample_earnings, 2025, 3)
    summary = aggregator.summarize(records, 41.0)
    assert summary.usd_total == Decimal("140.50")
    assert summary.uah_total == Decimal("2500.00")
    assert summary.usd_in_uah == Decimal("5760.50")
    assert summary.total_in_uah == Decimal("8260.50")
    assert summary.record_count == 3
    data = summary.to_dict()
    assert data["total_in_uah_display"] == "₴8260.50"
    assert data["usd_total_display"] == "$140.50"


def test_adding_usd_record_increases_total_by_converted_amount():
    aggregator = EarningsAggregator()
    records = aggregator.month_records(sample_earnings, 2025, 3)
    before = aggregator.summarize(records, 41.0).total_in_uah
    records.append(make("new", 100, "USD", datetime(2025, 3, 1)))
    after = aggregator.summarize(records, 41.0).total_in_uah
    assert after - before == Decimal("4100.00")


def test_month_view_window_defaults_to_today_in_current_month():
    window = month_view_window(2025, 3, date(2025, 3, 15))
    assert window.min_date == date(2025, 3, 1)
    assert window.max_date == date(2025, 3, 31)
    assert window.default_date == date(2025, 3, 15)


def test_month_view_window_defaults_to_first_day_in_other_month():
    window = month_view_window(2025, 2, date(2025, 3, 15))
    assert window.default_date == date(2025, 2, 1)
    assert window.to_dict()["max_date"] == "2025-02-28"


def test_month_tiles():
    tiles = month_tiles(2025)
    assert len(tiles) == 12
    assert tiles[0] == {"number": 1, "name": "January", "year": 2025, "path": "/month/1"}
    assert tiles[11]["path"] == "/month/12"


def test_summary_total_matches_reporting_currency_total():
    summary = EarningsAggregator().summarize(sample_earnings, 39.75)
    assert summary.total_in_uah == total_in_reporting_currency(sample_earnings, 39.75).quantize(Decimal("0.01"))
