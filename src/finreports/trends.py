"""Monthly time series built from raw transaction lists."""

import calendar
from collections.abc import Iterable
from dataclasses import dataclass
from datetime import date
from decimal import Decimal
from typing import Any

from finreports.models import Expense, Invoice, Payment, ReportPeriod

ZERO = Decimal("0")

Transaction = Invoice | Payment | Expense


@dataclass(frozen=True)
class MonthlyAmount:
    """Amount and record count for one calendar month."""

    month_label: str
    year: int
    month: int
    amount: Decimal
    count: int

    def to_dict(self) -> dict[str, Any]:
        return {
            "month": self.month_label,
            "year": self.year,
            "amount": float(self.amount),
            "count": self.count,
        }


def shift_month(year: int, month: int, offset: int) -> tuple[int, int]:
    """Move (year, month) by ``offset`` months in either direction."""
    index = year * 12 + (month - 1) + offset
    return index // 12, index % 12 + 1


def _totals_by_month(records: Iterable[Transaction]) -> dict[tuple[int, int], tuple[Decimal, int]]:
    totals: dict[tuple[int, int], tuple[Decimal, int]] = {}
    for record in records:
        if record.txn_date is None:
            continue
        key = (record.txn_date.year, record.txn_date.month)
        amount, count = totals.get(key, (ZERO, 0))
        totals[key] = (amount + record.total_amount, count + 1)
    return totals


def _series(
    months: list[tuple[int, int]], totals: dict[tuple[int, int], tuple[Decimal, int]]
) -> list[MonthlyAmount]:
    series = []
    for year, month in months:
        amount, count = totals.get((year, month), (ZERO, 0))
        series.append(
            MonthlyAmount(
                month_label=calendar.month_abbr[month],
                year=year,
                month=month,
                amount=amount,
                count=count,
            )
        )
    return series


def trailing_monthly_series(
    records: Iterable[Transaction], today: date, months: int = 12
) -> list[MonthlyAmount]:
    """Return exactly ``months`` entries, oldest first, ending at today's month.

    Records without a date are skipped; empty months emit zero entries.
    """
    if months < 1:
        raise ValueError(f"months must be positive, got {months}")
    window = [shift_month(today.year, today.month, -offset) for offset in range(months - 1, -1, -1)]
    return _series(window, _totals_by_month(records))


def period_monthly_series(records: Iterable[Transaction], period: ReportPeriod) -> list[MonthlyAmount]:
    """One entry per calendar month touching the period.

    Only records dated inside the period are counted.
    """
    in_period = [
        record
        for record in records
        if record.txn_date is not None
        and period.start_date <= record.txn_date <= period.end_date
    ]
    window = []
    year, month = period.start_date.year, period.start_date.month
    while (year, month) <= (period.end_date.year, period.end_date.month):
        window.append((year, month))
        year, month = shift_month(year, month, 1)
    return _series(window, _totals_by_month(in_period))


def profit_series(
    revenue: list[MonthlyAmount], expenses: list[MonthlyAmount]
) -> list[MonthlyAmount]:
    """Month-wise revenue minus expenses over two aligned series."""
    if [(r.year, r.month) for r in revenue] != [(e.year, e.month) for e in expenses]:
        raise ValueError("revenue and expense series cover different months")
    return [
        MonthlyAmount(
            month_label=r.month_label,
            year=r.year,
            month=r.month,
            amount=r.amount - e.amount,
            count=r.count + e.count,
        )
        for r, e in zip(revenue, expenses)
    ]
