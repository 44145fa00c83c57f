"""finreports - financial statement engine for accounting-provider data."""

__version__ = "0.1.0"

from finreports.classifier import AccountBuckets, classify_accounts
from finreports.config import TaxPolicy, configure_logging, get_settings
from finreports.dashboard import DashboardMetrics, compose_dashboard
from finreports.engine import ReportEngine
from finreports.errors import (
    AuthenticationMissing,
    FinReportsError,
    MalformedEntityError,
    ProviderRequestFailed,
)
from finreports.metrics import FinancialMetrics, aggregate
from finreports.models import (
    Account,
    AccountType,
    CompanyInfo,
    Customer,
    Expense,
    Invoice,
    Item,
    ItemType,
    Payment,
    ProviderSnapshot,
    ReportPeriod,
)
from finreports.provider import ProviderClient, StaticCredentialStore
from finreports.reports import (
    BalanceSheetReport,
    CashFlowHeuristics,
    CashFlowReport,
    ProfitLossReport,
    TaxComplianceReport,
    build_balance_sheet,
    build_cash_flow,
    build_profit_loss,
    build_tax_compliance,
)
from finreports.taxes import TaxSummary, calculate_taxes
from finreports.trends import MonthlyAmount, trailing_monthly_series

__all__ = [
    # Version
    "__version__",
    # Engine
    "ReportEngine",
    "ProviderClient",
    "StaticCredentialStore",
    # Models
    "Account",
    "AccountType",
    "CompanyInfo",
    "Customer",
    "Expense",
    "Invoice",
    "Item",
    "ItemType",
    "Payment",
    "ProviderSnapshot",
    "ReportPeriod",
    # Computation
    "AccountBuckets",
    "classify_accounts",
    "FinancialMetrics",
    "aggregate",
    "TaxSummary",
    "calculate_taxes",
    "MonthlyAmount",
    "trailing_monthly_series",
    # Reports
    "ProfitLossReport",
    "BalanceSheetReport",
    "CashFlowReport",
    "CashFlowHeuristics",
    "TaxComplianceReport",
    "DashboardMetrics",
    "build_profit_loss",
    "build_balance_sheet",
    "build_cash_flow",
    "build_tax_compliance",
    "compose_dashboard",
    # Errors
    "FinReportsError",
    "AuthenticationMissing",
    "ProviderRequestFailed",
    "MalformedEntityError",
    # Config
    "TaxPolicy",
    "get_settings",
    "configure_logging",
]
