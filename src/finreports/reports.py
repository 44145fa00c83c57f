"""Financial statement assembly.

Each builder is a pure function of a ``ProviderSnapshot``: it classifies
the chart of accounts, aggregates totals, applies the tax policy and
formats the result. Nothing is cached; calling a builder twice on the same
snapshot returns equal reports.

Percentages in every breakdown are relative to that breakdown's own total,
so they sum to 100 when the total is nonzero and are all zero otherwise.
"""

from collections.abc import Iterable
from dataclasses import dataclass, field
from datetime import datetime
from decimal import Decimal
from typing import Any

import structlog

from finreports.classifier import classify_accounts
from finreports.config import TaxPolicy
from finreports.metrics import HUNDRED, ZERO, aggregate, safe_ratio, sum_balances
from finreports.models import Account, CompanyInfo, ProviderSnapshot, ReportPeriod
from finreports.taxes import TaxSummary, calculate_taxes
from finreports.trends import MonthlyAmount, period_monthly_series, profit_series

logger = structlog.get_logger(__name__)


def _money(value: Decimal) -> float:
    return float(value)


def _rate_label(rate: Decimal) -> str:
    return f"{(rate * HUNDRED).normalize():f}%"


# =============================================================================
# BREAKDOWNS
# =============================================================================


@dataclass(frozen=True)
class BreakdownLine:
    """One account's share of a statement section."""

    account: str
    amount: Decimal
    percentage: Decimal

    def to_dict(self) -> dict[str, Any]:
        return {
            "account": self.account,
            "amount": _money(self.amount),
            "percentage": _money(self.percentage),
        }


def build_breakdown(accounts: Iterable[Account], negate: bool = False) -> list[BreakdownLine]:
    """Per-account amounts sorted descending, with percentage of their total."""
    accounts = list(accounts)
    total = sum_balances(accounts, negate=negate)
    lines = []
    for account in accounts:
        amount = -account.current_balance if negate else account.current_balance
        lines.append(
            BreakdownLine(
                account=account.name,
                amount=amount,
                percentage=safe_ratio(amount, total) * HUNDRED,
            )
        )
    return sorted(lines, key=lambda line: line.amount, reverse=True)


# =============================================================================
# PROFIT & LOSS
# =============================================================================


@dataclass(frozen=True)
class ProfitLossReport:
    """Income statement for a period."""

    company: CompanyInfo
    period: ReportPeriod
    total_revenue: Decimal
    revenue_breakdown: list[BreakdownLine]
    total_expenses: Decimal
    expense_breakdown: list[BreakdownLine]
    taxes: TaxSummary
    gross_profit: Decimal
    operating_income: Decimal
    net_income: Decimal
    margin: Decimal
    charts: dict[str, list[MonthlyAmount]] = field(default_factory=dict)
    native_report: dict[str, Any] | None = None

    def to_dict(self) -> dict[str, Any]:
        return {
            "company_info": {**self.company.to_dict(), "period": self.period.label},
            "revenue": {
                "total": _money(self.total_revenue),
                "breakdown": [line.to_dict() for line in self.revenue_breakdown],
            },
            "expenses": {
                "total": _money(self.total_expenses),
                "breakdown": [line.to_dict() for line in self.expense_breakdown],
            },
            "taxes": self.taxes.to_dict(),
            "summary": {
                "gross_profit": _money(self.gross_profit),
                "operating_income": _money(self.operating_income),
                "net_income": _money(self.net_income),
                "margin": _money(self.margin),
            },
            "charts": {
                name: [point.to_dict() for point in series]
                for name, series in self.charts.items()
            },
            "native_report": self.native_report,
        }


def build_profit_loss(
    snapshot: ProviderSnapshot,
    period: ReportPeriod,
    policy: TaxPolicy | None = None,
) -> ProfitLossReport:
    """Assemble the P&L from the snapshot's accounts and transactions."""
    buckets = classify_accounts(snapshot.accounts)
    metrics = aggregate(buckets)
    taxes = calculate_taxes(metrics, policy)

    revenue_chart = period_monthly_series(snapshot.invoices, period)
    expense_chart = period_monthly_series(snapshot.expenses, period)

    report = ProfitLossReport(
        company=snapshot.company,
        period=period,
        total_revenue=metrics.total_revenue,
        revenue_breakdown=build_breakdown(buckets.revenue),
        total_expenses=metrics.total_expenses,
        expense_breakdown=build_breakdown(buckets.expenses, negate=True),
        taxes=taxes,
        gross_profit=metrics.gross_profit,
        operating_income=metrics.operating_income,
        net_income=metrics.net_income,
        margin=metrics.net_margin,
        charts={
            "revenue": revenue_chart,
            "expenses": expense_chart,
            "profit": profit_series(revenue_chart, expense_chart),
        },
        native_report=snapshot.native_reports.get("profit_loss"),
    )
    logger.info(
        "report_generated",
        report="profit_loss",
        period=period.label,
        revenue_accounts=len(buckets.revenue),
        expense_accounts=len(buckets.expenses),
    )
    return report


# =============================================================================
# BALANCE SHEET
# =============================================================================


@dataclass(frozen=True)
class BalanceSheetReport:
    """Financial position as of a date.

    ``total_equity`` is the sum of the equity accounts. The identity
    assets = liabilities + equity is not forced; ``imbalance`` shows the gap.
    """

    company: CompanyInfo
    period: ReportPeriod
    current_assets: list[BreakdownLine]
    fixed_assets: list[BreakdownLine]
    total_assets: Decimal
    current_liabilities: list[BreakdownLine]
    long_term_liabilities: list[BreakdownLine]
    total_liabilities: Decimal
    equity_accounts: list[BreakdownLine]
    total_equity: Decimal
    working_capital: Decimal
    debt_to_equity: Decimal
    native_report: dict[str, Any] | None = None

    @property
    def imbalance(self) -> Decimal:
        return self.total_assets - (self.total_liabilities + self.total_equity)

    def to_dict(self) -> dict[str, Any]:
        return {
            "company_info": {
                **self.company.to_dict(),
                "as_of_date": self.period.as_of.isoformat(),
            },
            "assets": {
                "current": [line.to_dict() for line in self.current_assets],
                "fixed": [line.to_dict() for line in self.fixed_assets],
                "total": _money(self.total_assets),
            },
            "liabilities": {
                "current": [line.to_dict() for line in self.current_liabilities],
                "long_term": [line.to_dict() for line in self.long_term_liabilities],
                "total": _money(self.total_liabilities),
            },
            "equity": {
                "accounts": [line.to_dict() for line in self.equity_accounts],
                "total": _money(self.total_equity),
            },
            "summary": {
                "total_assets": _money(self.total_assets),
                "total_liabilities": _money(self.total_liabilities),
                "total_equity": _money(self.total_equity),
                "working_capital": _money(self.working_capital),
                "debt_to_equity": _money(self.debt_to_equity),
                "imbalance": _money(self.imbalance),
            },
            "native_report": self.native_report,
        }


def build_balance_sheet(snapshot: ProviderSnapshot, period: ReportPeriod) -> BalanceSheetReport:
    """Assemble the balance sheet as of ``period.end_date``."""
    buckets = classify_accounts(snapshot.accounts)
    metrics = aggregate(buckets)

    equity_lines = build_breakdown(buckets.equity)
    total_equity = sum_balances(buckets.equity)

    report = BalanceSheetReport(
        company=snapshot.company,
        period=period,
        current_assets=build_breakdown(buckets.current_assets),
        fixed_assets=build_breakdown(buckets.fixed_assets),
        total_assets=metrics.total_assets,
        current_liabilities=build_breakdown(buckets.current_liabilities, negate=True),
        long_term_liabilities=build_breakdown(buckets.long_term_liabilities, negate=True),
        total_liabilities=metrics.total_liabilities,
        equity_accounts=equity_lines,
        total_equity=total_equity,
        working_capital=metrics.working_capital,
        debt_to_equity=safe_ratio(metrics.total_liabilities, total_equity),
        native_report=snapshot.native_reports.get("balance_sheet"),
    )
    if report.imbalance != 0:
        logger.info(
            "balance_sheet_imbalance",
            as_of=period.as_of.isoformat(),
            imbalance=str(report.imbalance),
        )
    logger.info("report_generated", report="balance_sheet", as_of=period.as_of.isoformat())
    return report


# =============================================================================
# CASH FLOW
# =============================================================================


@dataclass(frozen=True)
class CashFlowHeuristics:
    """Fractions used to synthesize an illustrative cash flow statement.

    No period-over-period balance deltas are computed: every adjustment and
    activity line is a fixed fraction of revenue or expenses. Signs are
    applied as written (outflows are negative).
    """

    depreciation_of_expenses: Decimal = Decimal("0.10")
    receivables_change_of_revenue: Decimal = Decimal("0.05")
    inventory_change_of_revenue: Decimal = Decimal("0.03")
    payables_change_of_expenses: Decimal = Decimal("0.08")
    equipment_purchase_of_revenue: Decimal = Decimal("-0.05")
    property_purchase_of_revenue: Decimal = Decimal("-0.02")
    investment_sale_of_revenue: Decimal = Decimal("0.01")
    loan_proceeds_of_revenue: Decimal = Decimal("0.10")
    loan_repayment_of_revenue: Decimal = Decimal("-0.08")
    owner_investment_of_revenue: Decimal = Decimal("0.05")
    owner_withdrawal_of_revenue: Decimal = Decimal("-0.03")
    beginning_cash_of_revenue: Decimal = Decimal("0.20")


@dataclass(frozen=True)
class CashFlowLine:
    item: str
    amount: Decimal

    def to_dict(self) -> dict[str, Any]:
        return {"item": self.item, "amount": _money(self.amount)}


def _line_total(lines: Iterable[CashFlowLine]) -> Decimal:
    return sum((line.amount for line in lines), ZERO)


@dataclass(frozen=True)
class CashFlowReport:
    """Cash flow statement for a period."""

    company: CompanyInfo
    period: ReportPeriod
    net_income: Decimal
    adjustments: list[CashFlowLine]
    investing: list[CashFlowLine]
    financing: list[CashFlowLine]
    beginning_cash: Decimal
    method: str = "illustrative"
    native_report: dict[str, Any] | None = None

    @property
    def net_cash_from_operations(self) -> Decimal:
        return self.net_income + _line_total(self.adjustments)

    @property
    def net_cash_from_investing(self) -> Decimal:
        return _line_total(self.investing)

    @property
    def net_cash_from_financing(self) -> Decimal:
        return _line_total(self.financing)

    @property
    def net_increase_in_cash(self) -> Decimal:
        return (
            self.net_cash_from_operations
            + self.net_cash_from_investing
            + self.net_cash_from_financing
        )

    @property
    def ending_cash(self) -> Decimal:
        return self.beginning_cash + self.net_increase_in_cash

    def to_dict(self) -> dict[str, Any]:
        return {
            "company_info": {**self.company.to_dict(), "period": self.period.label},
            "method": self.method,
            "operating_activities": {
                "net_income": _money(self.net_income),
                "adjustments": [line.to_dict() for line in self.adjustments],
                "net_cash_from_operations": _money(self.net_cash_from_operations),
            },
            "investing_activities": {
                "items": [line.to_dict() for line in self.investing],
                "net_cash_from_investing": _money(self.net_cash_from_investing),
            },
            "financing_activities": {
                "items": [line.to_dict() for line in self.financing],
                "net_cash_from_financing": _money(self.net_cash_from_financing),
            },
            "summary": {
                "net_increase_in_cash": _money(self.net_increase_in_cash),
                "beginning_cash": _money(self.beginning_cash),
                "ending_cash": _money(self.ending_cash),
            },
            "native_report": self.native_report,
        }


def build_cash_flow(
    snapshot: ProviderSnapshot,
    period: ReportPeriod,
    heuristics: CashFlowHeuristics | None = None,
) -> CashFlowReport:
    """Assemble the illustrative cash flow statement.

    Net income matches the P&L for the same snapshot; everything else is
    derived from ``heuristics``.
    """
    h = heuristics or CashFlowHeuristics()
    metrics = aggregate(classify_accounts(snapshot.accounts))
    revenue = metrics.total_revenue
    expenses = metrics.total_expenses

    report = CashFlowReport(
        company=snapshot.company,
        period=period,
        net_income=metrics.net_income,
        adjustments=[
            CashFlowLine("Depreciation", expenses * h.depreciation_of_expenses),
            CashFlowLine("Accounts Receivable Change", revenue * h.receivables_change_of_revenue),
            CashFlowLine("Inventory Change", revenue * h.inventory_change_of_revenue),
            CashFlowLine("Accounts Payable Change", expenses * h.payables_change_of_expenses),
        ],
        investing=[
            CashFlowLine("Equipment Purchase", revenue * h.equipment_purchase_of_revenue),
            CashFlowLine("Property Purchase", revenue * h.property_purchase_of_revenue),
            CashFlowLine("Investment Sale", revenue * h.investment_sale_of_revenue),
        ],
        financing=[
            CashFlowLine("Loan Proceeds", revenue * h.loan_proceeds_of_revenue),
            CashFlowLine("Loan Repayment", revenue * h.loan_repayment_of_revenue),
            CashFlowLine("Owner Investment", revenue * h.owner_investment_of_revenue),
            CashFlowLine("Owner Withdrawal", revenue * h.owner_withdrawal_of_revenue),
        ],
        beginning_cash=revenue * h.beginning_cash_of_revenue,
        native_report=snapshot.native_reports.get("cash_flow"),
    )
    logger.info("report_generated", report="cash_flow", period=period.label)
    return report


# =============================================================================
# TAX COMPLIANCE (EFRIS)
# =============================================================================


@dataclass(frozen=True)
class TaxComplianceReport:
    """Statutory tax filing summary derived from a P&L."""

    company: CompanyInfo
    period: ReportPeriod
    policy: TaxPolicy
    total_sales: Decimal
    net_income: Decimal
    taxes: TaxSummary
    generated_at: datetime
    compliance_status: str = "Compliant"

    def to_dict(self) -> dict[str, Any]:
        return {
            "company_info": {**self.company.to_dict(), "period": self.period.label},
            "jurisdiction": self.policy.jurisdiction,
            "tax_period": {
                "start_date": self.period.start_date.isoformat(),
                "end_date": self.period.end_date.isoformat(),
            },
            "vat_summary": {
                "total_sales": _money(self.total_sales),
                "vat_collected": _money(self.taxes.vat_collected),
                "vat_paid": _money(self.taxes.vat_paid),
                "net_vat_payable": _money(self.taxes.net_vat),
                "vat_rate": _rate_label(self.policy.vat_rate),
            },
            "income_tax": {
                "net_income": _money(self.net_income),
                "income_tax": _money(self.taxes.income_tax),
                "tax_rate": _rate_label(self.policy.income_tax_rate),
            },
            "withholding_tax": {
                "total_revenue": _money(self.total_sales),
                "withholding_tax": _money(self.taxes.withholding_tax),
                "tax_rate": _rate_label(self.policy.withholding_rate),
            },
            "total_tax_liability": _money(self.taxes.total_tax),
            "compliance_status": self.compliance_status,
            "generated_at": self.generated_at.isoformat(),
        }


def build_tax_compliance(
    pnl: ProfitLossReport,
    policy: TaxPolicy | None = None,
    generated_at: datetime | None = None,
) -> TaxComplianceReport:
    """Summarize a P&L's tax block for filing.

    ``policy`` must be the one the P&L was built with; it only supplies the
    rate labels here.
    """
    report = TaxComplianceReport(
        company=pnl.company,
        period=pnl.period,
        policy=policy or TaxPolicy.default(),
        total_sales=pnl.total_revenue,
        net_income=pnl.net_income,
        taxes=pnl.taxes,
        generated_at=generated_at or datetime.now().astimezone(),
    )
    logger.info("report_generated", report="tax_compliance", period=pnl.period.label)
    return report
