"""Reduce classified account buckets into totals and derived ratios."""

from collections.abc import Iterable
from dataclasses import dataclass
from decimal import Decimal

from finreports.classifier import AccountBuckets
from finreports.models import Account

ZERO = Decimal("0")
HUNDRED = Decimal("100")


def safe_ratio(numerator: Decimal, denominator: Decimal) -> Decimal:
    """Divide, returning zero instead of failing on a zero denominator."""
    if denominator == 0:
        return ZERO
    return numerator / denominator


def sum_balances(accounts: Iterable[Account], negate: bool = False) -> Decimal:
    """Sum current balances; ``negate`` flips contra-signed buckets.

    Expense and liability balances arrive contra-signed from the provider,
    so their buckets are summed with ``negate=True``.
    """
    total = sum((account.current_balance for account in accounts), ZERO)
    return -total if negate else total


@dataclass(frozen=True)
class FinancialMetrics:
    """Scalar totals derived from one chart-of-accounts snapshot."""

    total_revenue: Decimal
    total_expenses: Decimal
    cost_of_goods_sold: Decimal
    net_income: Decimal
    gross_profit: Decimal
    operating_expenses: Decimal
    operating_income: Decimal
    current_assets: Decimal
    fixed_assets: Decimal
    total_assets: Decimal
    current_liabilities: Decimal
    long_term_liabilities: Decimal
    total_liabilities: Decimal
    equity: Decimal
    accounts_receivable: Decimal
    accounts_payable: Decimal
    cash_balance: Decimal
    working_capital: Decimal
    debt_to_equity: Decimal
    net_margin: Decimal


def _with_subtype(accounts: Iterable[Account], subtype: str) -> list[Account]:
    return [account for account in accounts if account.subtype == subtype]


def aggregate(buckets: AccountBuckets) -> FinancialMetrics:
    """Compute statement totals from classified buckets.

    ``equity`` here is assets minus liabilities by construction; it is not
    checked against the equity accounts themselves.
    """
    total_revenue = sum_balances(buckets.revenue)
    total_expenses = sum_balances(buckets.expenses, negate=True)
    cogs = sum_balances(buckets.cost_of_goods_sold, negate=True)

    net_income = total_revenue - total_expenses
    gross_profit = total_revenue - cogs
    operating_expenses = total_expenses - cogs
    operating_income = gross_profit - operating_expenses

    current_assets = sum_balances(buckets.current_assets)
    fixed_assets = sum_balances(buckets.fixed_assets)
    total_assets = current_assets + fixed_assets

    current_liabilities = sum_balances(buckets.current_liabilities, negate=True)
    long_term_liabilities = sum_balances(buckets.long_term_liabilities, negate=True)
    total_liabilities = current_liabilities + long_term_liabilities

    equity = total_assets - total_liabilities

    return FinancialMetrics(
        total_revenue=total_revenue,
        total_expenses=total_expenses,
        cost_of_goods_sold=cogs,
        net_income=net_income,
        gross_profit=gross_profit,
        operating_expenses=operating_expenses,
        operating_income=operating_income,
        current_assets=current_assets,
        fixed_assets=fixed_assets,
        total_assets=total_assets,
        current_liabilities=current_liabilities,
        long_term_liabilities=long_term_liabilities,
        total_liabilities=total_liabilities,
        equity=equity,
        accounts_receivable=sum_balances(
            _with_subtype(buckets.current_assets, "AccountsReceivable")
        ),
        accounts_payable=sum_balances(
            _with_subtype(buckets.current_liabilities, "AccountsPayable"), negate=True
        ),
        cash_balance=sum_balances(
            _with_subtype(buckets.current_assets, "CashAndCashEquivalents")
        ),
        working_capital=current_assets - current_liabilities,
        debt_to_equity=safe_ratio(total_liabilities, equity),
        net_margin=safe_ratio(net_income, total_revenue) * HUNDRED,
    )
