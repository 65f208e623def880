from __future__ import annotations

import calendar
from dataclasses import dataclass, asdict
from datetime import date, datetime
from decimal import Decimal
from typing import Any, Dict, Iterable, List, Tuple

from app.models.earning import Currency, Earning
from app.utils.currency import format_uah, format_usd

MONTH_NAMES = list(calendar.month_name)[1:]

CENT = Decimal("0.01")


def month_bounds(year: int, month: int) -> Tuple[datetime, datetime]:
    """First and last instant (millisecond precision) of a calendar month."""
    if not 1 <= month <= 12:
        raise ValueError(f"Month must be between 1 and 12, got {month}")
    last_day = calendar.monthrange(year, month)[1]
    return (
        datetime(year, month, 1, 0, 0, 0),
        datetime(year, month, last_day, 23, 59, 59, 999000),
    )


def filter_month(records: Iterable[Earning], year: int, month: int) -> List[Earning]:
    start, end = month_bounds(year, month)
    return [record for record in records if start <= record.date <= end]


def sort_newest_first(records: Iterable[Earning]) -> List[Earning]:
    # sorted() is stable, so equal dates keep the store's enumeration order
    return sorted(records, key=lambda record: record.date, reverse=True)


def currency_totals(records: Iterable[Earning]) -> Dict[Currency, Decimal]:
    totals = {currency: Decimal("0") for currency in Currency}
    for record in records:
        totals[record.currency] += record.amount
    return totals


def total_in_reporting_currency(records: Iterable[Earning], rate: float) -> Decimal:
    totals = currency_totals(records)
    return totals[Currency.UAH] + totals[Currency.USD] * Decimal(str(rate))


@dataclass
class MonthWindow:
    """Date limits offered to the create form of a month view."""

    min_date: date
    max_date: date
    default_date: date

    def to_dict(self) -> Dict[str, str]:
        return {key: value.isoformat() for key, value in asdict(self).items()}


def month_view_window(year: int, month: int, today: date) -> MonthWindow:
    start, end = month_bounds(year, month)
    if today.year == year and today.month == month:
        default = today
    else:
        default = start.date()
    return MonthWindow(min_date=start.date(), max_date=end.date(), default_date=default)


@dataclass
class EarningsSummary:
    usd_total: Decimal
    uah_total: Decimal
    usd_in_uah: Decimal
    total_in_uah: Decimal
    rate: float
    record_count: int

    def to_dict(self) -> Dict[str, Any]:
        """JSON-ready summary; money values are floats rounded to cents."""
        data = {
            key: float(value) if isinstance(value, Decimal) else value
            for key, value in asdict(self).items()
        }
        data.update(
            {
                "usd_total_display": format_usd(self.usd_total),
                "uah_total_display": format_uah(self.uah_total),
                "usd_in_uah_display": format_uah(self.usd_in_uah),
                "total_in_uah_display": format_uah(self.total_in_uah),
            }
        )
        return data


class EarningsAggregator:
    """
    Month pipeline over a user's records: filter to the month, order newest
    first, and total per currency and in the reporting currency.
    """

    def month_records(self, records: Iterable[Earning], year: int, month: int) -> List[Earning]:
        return sort_newest_first(filter_month(records, year, month))

    def summarize(self, records: List[Earning], rate: float) -> EarningsSummary:
        totals = currency_totals(records)
        usd_in_uah = totals[Currency.USD] * Decimal(str(rate))
        return EarningsSummary(
            usd_total=totals[Currency.USD].quantize(CENT),
            uah_total=totals[Currency.UAH].quantize(CENT),
            usd_in_uah=usd_in_uah.quantize(CENT),
            total_in_uah=total_in_reporting_currency(records, rate).quantize(CENT),
            rate=rate,
            record_count=len(records),
        )


def month_tiles(year: int) -> List[Dict[str, Any]]:
    return [
        {"number": number, "name": name, "year": year, "path": f"/month/{number}"}
        for number, name in enumerate(MONTH_NAMES, start=1)
    ]
