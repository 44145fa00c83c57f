"""Tests for monthly trend series."""

from datetime import date
from decimal import Decimal

import pytest

from finreports.models import Expense, Invoice, ReportPeriod
from finreports.trends import (
    period_monthly_series,
    profit_series,
    shift_month,
    trailing_monthly_series,
)


def _invoice(txn_date, amount, invoice_id="1"):
    return Invoice(
        id=invoice_id,
        doc_number=invoice_id,
        customer_ref=None,
        txn_date=txn_date,
        due_date=None,
        total_amount=Decimal(str(amount)),
        balance=Decimal("0"),
    )


@pytest.mark.parametrize(
    "year, month, offset, expected",
    [
        (2026, 10, -1, (2026, 9)),
        (2026, 1, -1, (2025, 12)),
        (2025, 12, 1, (2026, 1)),
        (2026, 10, -11, (2025, 11)),
        (2026, 5, 0, (2026, 5)),
    ],
)
def test_shift_month(year, month, offset, expected):
    assert shift_month(year, month, offset) == expected


class TestTrailingMonthlySeries:
    """Tests for trailing_monthly_series."""

    def test_twelve_months_ending_today(self):
        series = trailing_monthly_series([], date(2026, 10, 18))

        assert len(series) == 12
        assert (series[0].year, series[0].month) == (2025, 11)
        assert (series[-1].year, series[-1].month) == (2026, 10)
        keys = [(p.year, p.month) for p in series]
        assert keys == sorted(keys)
        assert all(p.amount == 0 and p.count == 0 for p in series)

    def test_buckets_by_month(self):
        invoices = [
            _invoice(date(2026, 3, 2), 100, "1"),
            _invoice(date(2026, 3, 30), 50, "2"),
            _invoice(date(2026, 10, 1), 20, "3"),
        ]

        series = trailing_monthly_series(invoices, date(2026, 10, 18))
        by_month = {(p.year, p.month): p for p in series}

        assert by_month[(2026, 3)].amount == Decimal("150")
        assert by_month[(2026, 3)].count == 2
        assert by_month[(2026, 3)].month_label == "Mar"
        assert by_month[(2026, 10)].amount == Decimal("20")

    def test_fifteen_invoices_in_three_months(self):
        days = [date(2026, 2, 3), date(2026, 6, 17), date(2026, 9, 28)]
        invoices = [
            _invoice(day, 40, f"{day.month}-{n}") for day in days for n in range(5)
        ]

        series = trailing_monthly_series(invoices, date(2026, 10, 18))

        assert len(series) == 12
        assert sum(1 for p in series if p.amount == 0 and p.count == 0) == 9
        assert [(p.month, p.count, p.amount) for p in series if p.count] == [
            (2, 5, Decimal("200")),
            (6, 5, Decimal("200")),
            (9, 5, Decimal("200")),
        ]

    def test_records_outside_window_and_undated_ignored(self):
        invoices = [
            _invoice(date(2025, 10, 31), 999, "old"),
            _invoice(None, 500, "undated"),
        ]

        series = trailing_monthly_series(invoices, date(2026, 10, 18))

        assert sum(p.amount for p in series) == 0

    def test_year_wrap_in_january(self):
        series = trailing_monthly_series([], date(2027, 1, 5))

        assert [p.month_label for p in series[:2]] == ["Feb", "Mar"]
        assert (series[-2].year, series[-2].month) == (2026, 12)
        assert (series[-1].year, series[-1].month) == (2027, 1)

    def test_custom_length(self):
        assert len(trailing_monthly_series([], date(2026, 10, 18), months=3)) == 3

    def test_rejects_non_positive_length(self):
        with pytest.raises(ValueError):
            trailing_monthly_series([], date(2026, 10, 18), months=0)


class TestPeriodMonthlySeries:
    """Tests for period_monthly_series."""

    def test_one_entry_per_month_in_period(self):
        period = ReportPeriod(start_date=date(2026, 1, 15), end_date=date(2026, 4, 2))

        series = period_monthly_series([], period)

        assert [(p.year, p.month) for p in series] == [
            (2026, 1),
            (2026, 2),
            (2026, 3),
            (2026, 4),
        ]

    def test_only_in_period_records_counted(self):
        period = ReportPeriod(start_date=date(2026, 1, 15), end_date=date(2026, 1, 31))
        invoices = [
            _invoice(date(2026, 1, 14), 100, "before"),
            _invoice(date(2026, 1, 15), 10, "first"),
            _invoice(date(2026, 1, 31), 5, "last"),
        ]

        series = period_monthly_series(invoices, period)

        assert len(series) == 1
        assert series[0].amount == Decimal("15")
        assert series[0].count == 2


class TestProfitSeries:
    def test_revenue_minus_expenses(self):
        today = date(2026, 10, 18)
        revenue = trailing_monthly_series([_invoice(date(2026, 10, 1), 300)], today)
        expenses = trailing_monthly_series(
            [Expense(id="e1", txn_date=date(2026, 10, 2), total_amount=Decimal("120"))], today
        )

        profit = profit_series(revenue, expenses)

        assert profit[-1].amount == Decimal("180")
        assert profit[0].amount == 0

    def test_misaligned_series_rejected(self):
        revenue = trailing_monthly_series([], date(2026, 10, 18))
        expenses = trailing_monthly_series([], date(2026, 9, 18))

        with pytest.raises(ValueError):
            profit_series(revenue, expenses)


def test_to_dict_shape():
    point = trailing_monthly_series([_invoice(date(2026, 10, 1), 12.5)], date(2026, 10, 18))[-1]

    assert point.to_dict() == {"month": "Oct", "year": 2026, "amount": 12.5, "count": 1}
