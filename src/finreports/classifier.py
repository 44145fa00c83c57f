"""Partition a chart of accounts into statement buckets."""

from collections.abc import Iterable
from dataclasses import dataclass

import structlog

from finreports.models import Account, AccountType

logger = structlog.get_logger(__name__)

CURRENT_ASSET_SUBTYPES = frozenset({"CashAndCashEquivalents", "AccountsReceivable", "Inventory"})
CURRENT_LIABILITY_SUBTYPES = frozenset({"AccountsPayable"})
REVENUE_SUBTYPES = frozenset({"SalesOfProductIncome"})
COGS_SUBTYPE = "CostOfGoodsSold"


@dataclass(frozen=True)
class AccountBuckets:
    """Accounts grouped by statement line."""

    revenue: tuple[Account, ...] = ()
    expenses: tuple[Account, ...] = ()
    cost_of_goods_sold: tuple[Account, ...] = ()
    current_assets: tuple[Account, ...] = ()
    fixed_assets: tuple[Account, ...] = ()
    current_liabilities: tuple[Account, ...] = ()
    long_term_liabilities: tuple[Account, ...] = ()
    equity: tuple[Account, ...] = ()
    unclassified: tuple[Account, ...] = ()

    @property
    def assets(self) -> tuple[Account, ...]:
        return self.current_assets + self.fixed_assets

    @property
    def liabilities(self) -> tuple[Account, ...]:
        return self.current_liabilities + self.long_term_liabilities


def classify_accounts(accounts: Iterable[Account]) -> AccountBuckets:
    """Sort accounts into revenue/expense/asset/liability/equity buckets.

    Revenue is any Income account plus any account tagged
    ``SalesOfProductIncome``; a tagged account of another type also stays
    in its own type bucket. COGS accounts stay in ``expenses`` and are
    also listed in ``cost_of_goods_sold``.

    Assets and liabilities split on subtype: only the subtypes in
    CURRENT_ASSET_SUBTYPES / CURRENT_LIABILITY_SUBTYPES are current. Every
    other subtype, including a missing one, lands on the fixed-asset or
    long-term-liability side.

    Accounts with no recognized type go to ``unclassified`` and are logged.
    """
    revenue: list[Account] = []
    expenses: list[Account] = []
    cogs: list[Account] = []
    current_assets: list[Account] = []
    fixed_assets: list[Account] = []
    current_liabilities: list[Account] = []
    long_term_liabilities: list[Account] = []
    equity: list[Account] = []
    unclassified: list[Account] = []

    for account in accounts:
        # Revenue membership is independent of the type branches below
        if account.type is AccountType.INCOME or account.subtype in REVENUE_SUBTYPES:
            revenue.append(account)

        if account.type is AccountType.INCOME:
            continue
        if account.type is AccountType.EXPENSE:
            expenses.append(account)
            if account.subtype == COGS_SUBTYPE:
                cogs.append(account)
        elif account.type is AccountType.ASSET:
            if account.subtype in CURRENT_ASSET_SUBTYPES:
                current_assets.append(account)
            else:
                fixed_assets.append(account)
        elif account.type is AccountType.LIABILITY:
            if account.subtype in CURRENT_LIABILITY_SUBTYPES:
                current_liabilities.append(account)
            else:
                long_term_liabilities.append(account)
        elif account.type is AccountType.EQUITY:
            equity.append(account)
        elif account.subtype in REVENUE_SUBTYPES:
            # Untyped but tagged as sales income
            continue
        else:
            logger.warning(
                "account_unclassified",
                account_id=account.id,
                account_name=account.name,
                account_type=account.type,
            )
            unclassified.append(account)

    return AccountBuckets(
        revenue=tuple(revenue),
        expenses=tuple(expenses),
        cost_of_goods_sold=tuple(cogs),
        current_assets=tuple(current_assets),
        fixed_assets=tuple(fixed_assets),
        current_liabilities=tuple(current_liabilities),
        long_term_liabilities=tuple(long_term_liabilities),
        equity=tuple(equity),
        unclassified=tuple(unclassified),
    )
