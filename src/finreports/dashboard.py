"""Dashboard summary combining totals, taxes, trends and ranked views."""

from collections import Counter
from dataclasses import dataclass, field
from datetime import date, datetime
from decimal import Decimal
from typing import Any

import structlog

from finreports.classifier import classify_accounts
from finreports.config import TaxPolicy
from finreports.metrics import FinancialMetrics, aggregate
from finreports.models import Customer, Invoice, Item, ItemType, ProviderSnapshot
from finreports.taxes import TaxSummary, calculate_taxes
from finreports.trends import MonthlyAmount, trailing_monthly_series

logger = structlog.get_logger(__name__)

RECENT_TRANSACTION_LIMIT = 10
TOP_CUSTOMER_LIMIT = 5
TOP_ITEM_LIMIT = 5
RANKED_ITEM_TYPES = frozenset({ItemType.INVENTORY, ItemType.SERVICE})


@dataclass(frozen=True)
class RecentTransaction:
    type: str
    id: str
    description: str
    amount: Decimal
    date: date | None
    status: str

    def to_dict(self) -> dict[str, Any]:
        return {
            "type": self.type,
            "id": self.id,
            "description": self.description,
            "amount": float(self.amount),
            "date": self.date.isoformat() if self.date else None,
            "status": self.status,
        }


@dataclass(frozen=True)
class TopCustomer:
    id: str
    name: str
    total_revenue: Decimal
    balance: Decimal
    invoices: int

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "name": self.name,
            "total_revenue": float(self.total_revenue),
            "balance": float(self.balance),
            "invoices": self.invoices,
        }


@dataclass(frozen=True)
class TopItem:
    id: str
    name: str
    sku: str
    unit_price: Decimal
    qty_on_hand: Decimal
    type: ItemType

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "name": self.name,
            "sku": self.sku,
            "unit_price": float(self.unit_price),
            "qty_on_hand": float(self.qty_on_hand),
            "type": self.type.value,
        }


@dataclass(frozen=True)
class DashboardMetrics:
    """Everything the dashboard shows, recomputed per request."""

    metrics: FinancialMetrics
    taxes: TaxSummary
    efris_vat: Decimal
    efris_income: Decimal
    efris_withholding: Decimal
    total_customers: int
    total_invoices: int
    total_items: int
    overdue_invoices: int
    recent_transactions: list[RecentTransaction]
    top_customers: list[TopCustomer]
    top_items: list[TopItem]
    monthly_revenue: list[MonthlyAmount]
    monthly_expenses: list[MonthlyAmount]
    native_reports: dict[str, dict[str, Any] | None] = field(default_factory=dict)

    def to_dict(self) -> dict[str, Any]:
        m = self.metrics
        return {
            "total_revenue": float(m.total_revenue),
            "total_expenses": float(m.total_expenses),
            "net_income": float(m.net_income),
            "gross_profit": float(m.gross_profit),
            "operating_expenses": float(m.operating_expenses),
            "accounts_receivable": float(m.accounts_receivable),
            "accounts_payable": float(m.accounts_payable),
            "cash_balance": float(m.cash_balance),
            "total_assets": float(m.total_assets),
            "total_liabilities": float(m.total_liabilities),
            "equity": float(m.equity),
            "working_capital": float(m.working_capital),
            "debt_to_equity": float(m.debt_to_equity),
            "vat_collected": float(self.taxes.vat_collected),
            "vat_paid": float(self.taxes.vat_paid),
            "net_vat": float(self.taxes.net_vat),
            "efris_vat": float(self.efris_vat),
            "efris_income": float(self.efris_income),
            "efris_withholding": float(self.efris_withholding),
            "total_customers": self.total_customers,
            "total_invoices": self.total_invoices,
            "total_items": self.total_items,
            "overdue_invoices": self.overdue_invoices,
            "recent_transactions": [t.to_dict() for t in self.recent_transactions],
            "top_customers": [c.to_dict() for c in self.top_customers],
            "top_items": [i.to_dict() for i in self.top_items],
            "monthly_revenue": [p.to_dict() for p in self.monthly_revenue],
            "monthly_expenses": [p.to_dict() for p in self.monthly_expenses],
            "profit_loss_data": self.native_reports.get("profit_loss"),
            "balance_sheet_data": self.native_reports.get("balance_sheet"),
            "cash_flow_data": self.native_reports.get("cash_flow"),
        }


def recent_transactions(
    snapshot: ProviderSnapshot, limit: int = RECENT_TRANSACTION_LIMIT
) -> list[RecentTransaction]:
    """Newest invoices, payments and expenses merged by date; undated last."""
    rows = [
        RecentTransaction(
            type="Invoice",
            id=inv.id,
            description=f"Invoice {inv.doc_number}",
            amount=inv.total_amount,
            date=inv.txn_date,
            status="Outstanding" if inv.balance > 0 else "Paid",
        )
        for inv in snapshot.invoices
    ]
    rows += [
        RecentTransaction(
            type="Payment",
            id=pay.id,
            description=f"Payment {pay.reference_number}",
            amount=pay.total_amount,
            date=pay.txn_date,
            status="Completed",
        )
        for pay in snapshot.payments
    ]
    rows += [
        RecentTransaction(
            type="Expense",
            id=exp.id,
            description=f"Expense {exp.id}",
            amount=exp.total_amount,
            date=exp.txn_date,
            status="Recorded",
        )
        for exp in snapshot.expenses
    ]
    # Stable sort keeps provider order among same-day rows
    dated = sorted(
        (r for r in rows if r.date is not None),
        key=lambda r: r.date or date.min,
        reverse=True,
    )
    undated = [r for r in rows if r.date is None]
    return (dated + undated)[:limit]


def top_customers(
    customers: tuple[Customer, ...],
    invoices: tuple[Invoice, ...],
    limit: int = TOP_CUSTOMER_LIMIT,
) -> list[TopCustomer]:
    """Highest-revenue customers with their invoice counts.

    Customers without positive revenue are never ranked.
    """
    invoice_counts = Counter(inv.customer_ref for inv in invoices if inv.customer_ref)
    ranked = sorted(
        (c for c in customers if c.total_revenue > 0),
        key=lambda c: c.total_revenue,
        reverse=True,
    )
    return [
        TopCustomer(
            id=c.id,
            name=c.display_name,
            total_revenue=c.total_revenue,
            balance=c.balance,
            invoices=invoice_counts.get(c.id, 0),
        )
        for c in ranked[:limit]
    ]


def top_items(items: tuple[Item, ...], limit: int = TOP_ITEM_LIMIT) -> list[TopItem]:
    """Most expensive inventory/service items."""
    ranked = sorted(
        (item for item in items if item.type in RANKED_ITEM_TYPES),
        key=lambda item: item.unit_price,
        reverse=True,
    )
    return [
        TopItem(
            id=item.id,
            name=item.name,
            sku=item.sku,
            unit_price=item.unit_price,
            qty_on_hand=item.quantity_on_hand,
            type=item.type,
        )
        for item in ranked[:limit]
    ]


def count_overdue(invoices: tuple[Invoice, ...], today: date) -> int:
    """Invoices with an open balance whose due date has passed."""
    return sum(
        1
        for inv in invoices
        if inv.balance > 0 and inv.due_date is not None and inv.due_date < today
    )


def compose_dashboard(
    snapshot: ProviderSnapshot,
    policy: TaxPolicy | None = None,
    now: datetime | None = None,
) -> DashboardMetrics:
    """Fold a snapshot into dashboard metrics.

    ``now`` defaults to the current time read at call time; overdue counts
    and trend windows are relative to it.
    """
    policy = policy or TaxPolicy.default()
    today = (now or datetime.now()).date()

    metrics = aggregate(classify_accounts(snapshot.accounts))
    taxes = calculate_taxes(metrics, policy)

    dashboard = DashboardMetrics(
        metrics=metrics,
        taxes=taxes,
        efris_vat=metrics.total_revenue * policy.vat_rate,
        efris_income=metrics.net_income * policy.income_tax_rate,
        efris_withholding=metrics.total_revenue * policy.withholding_rate,
        total_customers=len(snapshot.customers),
        total_invoices=len(snapshot.invoices),
        total_items=len(snapshot.items),
        overdue_invoices=count_overdue(snapshot.invoices, today),
        recent_transactions=recent_transactions(snapshot),
        top_customers=top_customers(snapshot.customers, snapshot.invoices),
        top_items=top_items(snapshot.items),
        monthly_revenue=trailing_monthly_series(snapshot.invoices, today),
        monthly_expenses=trailing_monthly_series(snapshot.expenses, today),
        native_reports=dict(snapshot.native_reports),
    )
    logger.info(
        "dashboard_composed",
        invoices=dashboard.total_invoices,
        customers=dashboard.total_customers,
        overdue_invoices=dashboard.overdue_invoices,
    )
    return dashboard
