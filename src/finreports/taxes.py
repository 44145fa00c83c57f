"""Statutory tax figures derived from aggregated totals."""

from dataclasses import dataclass
from decimal import Decimal
from typing import Any

from finreports.config import TaxPolicy
from finreports.metrics import FinancialMetrics


@dataclass(frozen=True)
class TaxSummary:
    """VAT, income and withholding tax for one set of totals."""

    vat_collected: Decimal
    vat_paid: Decimal
    net_vat: Decimal
    income_tax: Decimal
    withholding_tax: Decimal
    total_tax: Decimal

    def to_dict(self) -> dict[str, Any]:
        return {
            "vat_collected": float(self.vat_collected),
            "vat_paid": float(self.vat_paid),
            "net_vat": float(self.net_vat),
            "income_tax": float(self.income_tax),
            "withholding_tax": float(self.withholding_tax),
            "total_tax": float(self.total_tax),
        }


def calculate_taxes(metrics: FinancialMetrics, policy: TaxPolicy | None = None) -> TaxSummary:
    """Apply flat statutory rates.

    Income tax follows net income, so a loss yields a negative figure.
    ``total_tax`` is VAT collected plus income and withholding tax.
    """
    policy = policy or TaxPolicy.default()

    vat_collected = metrics.total_revenue * policy.vat_rate
    vat_paid = metrics.total_expenses * policy.vat_rate
    income_tax = metrics.net_income * policy.income_tax_rate
    withholding_tax = metrics.total_revenue * policy.withholding_rate

    return TaxSummary(
        vat_collected=vat_collected,
        vat_paid=vat_paid,
        net_vat=vat_collected - vat_paid,
        income_tax=income_tax,
        withholding_tax=withholding_tax,
        total_tax=vat_collected + income_tax + withholding_tax,
    )
