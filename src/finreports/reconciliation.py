"""Compare locally computed statements with the provider's native reports.

Locally computed figures are canonical. Native reports are only read here,
to surface variances; reconciliation never alters a report.
"""

from collections.abc import Iterator
from dataclasses import dataclass
from decimal import Decimal, InvalidOperation
from typing import Any

import structlog

from finreports.reports import BalanceSheetReport, ProfitLossReport

logger = structlog.get_logger(__name__)

# local metric -> native report row groups summed to match it
# Local expenses include COGS; the native P&L reports COGS as its own group
PROFIT_LOSS_GROUPS = {
    "total_revenue": ("Income",),
    "total_expenses": ("COGS", "Expenses"),
    "net_income": ("NetIncome",),
}
BALANCE_SHEET_GROUPS = {
    "total_assets": ("TotalAssets",),
    "total_liabilities": ("Liabilities",),
    "total_equity": ("Equity",),
}


@dataclass(frozen=True)
class ReconciliationLine:
    metric: str
    local: Decimal
    native: Decimal | None

    @property
    def variance(self) -> Decimal | None:
        if self.native is None:
            return None
        return self.local - self.native

    def to_dict(self) -> dict[str, Any]:
        variance = self.variance
        return {
            "metric": self.metric,
            "local": float(self.local),
            "native": float(self.native) if self.native is not None else None,
            "variance": float(variance) if variance is not None else None,
        }


def _rows(node: Any) -> Iterator[dict[str, Any]]:
    """Depth-first walk over a report's nested ``Rows.Row`` lists."""
    if not isinstance(node, dict):
        return
    rows = node.get("Rows")
    children = rows.get("Row") if isinstance(rows, dict) else None
    if not isinstance(children, list):
        return
    for child in children:
        if isinstance(child, dict):
            yield child
            yield from _rows(child)


def extract_native_total(report: dict[str, Any] | None, group: str) -> Decimal | None:
    """Return the summary amount of the first row group named ``group``.

    The amount is the last column of the group's summary line. Returns None
    when the report, group or a parseable amount is missing.
    """
    if not report:
        return None
    for row in _rows(report):
        if row.get("group") != group:
            continue
        summary = row.get("Summary")
        columns = summary.get("ColData") if isinstance(summary, dict) else None
        if not isinstance(columns, list) or not columns:
            return None
        value = columns[-1].get("value") if isinstance(columns[-1], dict) else None
        try:
            return Decimal(str(value).replace(",", "")) if value not in (None, "") else None
        except InvalidOperation:
            return None
    return None


def _native_sum(report: dict[str, Any] | None, groups: tuple[str, ...]) -> Decimal | None:
    """Sum the groups present in the report; None when none of them is."""
    found = [
        total
        for total in (extract_native_total(report, group) for group in groups)
        if total is not None
    ]
    return sum(found, Decimal("0")) if found else None


def _reconcile(
    name: str,
    local: dict[str, Decimal],
    groups: dict[str, tuple[str, ...]],
    native: dict[str, Any] | None,
) -> list[ReconciliationLine]:
    lines = [
        ReconciliationLine(metric, local[metric], _native_sum(native, metric_groups))
        for metric, metric_groups in groups.items()
    ]
    for line in lines:
        if line.variance:
            logger.warning(
                "reconciliation_variance",
                report=name,
                metric=line.metric,
                local=str(line.local),
                native=str(line.native),
            )
    return lines


def reconcile_profit_loss(report: ProfitLossReport) -> list[ReconciliationLine]:
    """Variance of revenue, expenses and net income against the native P&L."""
    local = {
        "total_revenue": report.total_revenue,
        "total_expenses": report.total_expenses,
        "net_income": report.net_income,
    }
    return _reconcile("profit_loss", local, PROFIT_LOSS_GROUPS, report.native_report)


def reconcile_balance_sheet(report: BalanceSheetReport) -> list[ReconciliationLine]:
    """Variance of assets, liabilities and equity against the native balance sheet."""
    local = {
        "total_assets": report.total_assets,
        "total_liabilities": report.total_liabilities,
        "total_equity": report.total_equity,
    }
    return _reconcile("balance_sheet", local, BALANCE_SHEET_GROUPS, report.native_report)
