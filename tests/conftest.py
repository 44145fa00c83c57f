"""Pytest configuration and fixtures."""

import os
from datetime import date, datetime, timezone
from decimal import Decimal
from unittest.mock import AsyncMock

import pytest

# Set test environment variables before importing settings
os.environ.setdefault("PROVIDER_COMPANY_ID", "9341455307021048")
os.environ.setdefault("PROVIDER_ACCESS_TOKEN", "test-access-token")

from finreports.models import (  # noqa: E402
    Account,
    AccountType,
    ProviderSnapshot,
    ReportPeriod,
)


def make_account(
    name: str,
    account_type: AccountType | None,
    balance: str | int,
    subtype: str | None = None,
    account_id: str | None = None,
) -> Account:
    return Account(
        id=account_id or name.lower().replace(" ", "-"),
        name=name,
        type=account_type,
        subtype=subtype,
        current_balance=Decimal(str(balance)),
    )


@pytest.fixture
def fixed_now():
    """A fixed 'now' in mid-October 2026."""
    return datetime(2026, 10, 18, 12, 0, tzinfo=timezone.utc)


@pytest.fixture
def scenario_a_accounts():
    """Sales 1,000,000; Rent -100,000; COGS -300,000."""
    return [
        make_account("Sales", AccountType.INCOME, 1_000_000),
        make_account("Rent", AccountType.EXPENSE, -100_000),
        make_account("Cost of Goods", AccountType.EXPENSE, -300_000, subtype="CostOfGoodsSold"),
    ]


@pytest.fixture
def full_chart():
    """A chart of accounts touching every bucket."""
    return [
        make_account("Sales", AccountType.INCOME, 800_000, subtype="SalesOfProductIncome"),
        make_account("Services", AccountType.INCOME, 200_000, subtype="ServiceFeeIncome"),
        make_account("Rent", AccountType.EXPENSE, -100_000, subtype="RentOrLeaseOfBuildings"),
        make_account("Cost of Goods", AccountType.EXPENSE, -300_000, subtype="CostOfGoodsSold"),
        make_account("Checking", AccountType.ASSET, 250_000, subtype="CashAndCashEquivalents"),
        make_account("Receivables", AccountType.ASSET, 150_000, subtype="AccountsReceivable"),
        make_account("Stock", AccountType.ASSET, 100_000, subtype="Inventory"),
        make_account("Vehicles", AccountType.ASSET, 500_000, subtype="Vehicles"),
        make_account("Payables", AccountType.LIABILITY, -120_000, subtype="AccountsPayable"),
        make_account("Bank Loan", AccountType.LIABILITY, -380_000, subtype="NotesPayable"),
        make_account("Owner Equity", AccountType.EQUITY, 400_000, subtype="OwnersEquity"),
    ]


@pytest.fixture
def report_period():
    return ReportPeriod(start_date=date(2026, 1, 1), end_date=date(2026, 10, 18))


@pytest.fixture
def snapshot(full_chart):
    return ProviderSnapshot(accounts=tuple(full_chart))


@pytest.fixture
def mock_httpx_client():
    """Create a mock httpx AsyncClient."""
    client = AsyncMock()
    client.request = AsyncMock()
    client.get = AsyncMock()
    client.aclose = AsyncMock()
    return client


@pytest.fixture
def mock_accounts_response():
    """Mock chart-of-accounts response."""
    return {
        "QueryResponse": {
            "Account": [
                {
                    "Id": "1",
                    "Name": "Sales of Product Income",
                    "AccountType": "Income",
                    "AccountSubType": "SalesOfProductIncome",
                    "CurrentBalance": 1000000,
                    "Classification": "Revenue",
                },
                {
                    "Id": "2",
                    "Name": "Rent Expense",
                    "AccountType": "Expense",
                    "AccountSubType": "RentOrLeaseOfBuildings",
                    "CurrentBalance": -100000,
                    "Classification": "Expense",
                },
                {
                    "Id": "3",
                    "Name": "Cost of Goods Sold",
                    "AccountType": "Expense",
                    "AccountSubType": "CostOfGoodsSold",
                    "CurrentBalance": -300000,
                    "Classification": "Expense",
                },
            ]
        }
    }


@pytest.fixture
def mock_company_response():
    """Mock company info response."""
    return {
        "QueryResponse": {
            "CompanyInfo": [
                {
                    "Id": "1",
                    "CompanyName": "Kampala Traders Ltd",
                    "CompanyAddr": {"Line1": "Plot 12 Kampala Road"},
                    "PrimaryPhone": {"FreeFormNumber": "+256 700 000000"},
                    "Email": {"Address": "accounts@kampalatraders.ug"},
                }
            ]
        }
    }


@pytest.fixture
def mock_invoice_response():
    """Mock invoice list response."""
    return {
        "QueryResponse": {
            "Invoice": [
                {
                    "Id": "130",
                    "DocNumber": "1037",
                    "TxnDate": "2026-09-14",
                    "DueDate": "2026-10-14",
                    "CustomerRef": {"value": "58", "name": "Amy's Bird Sanctuary"},
                    "TotalAmt": 362.07,
                    "Balance": 362.07,
                }
            ]
        }
    }


@pytest.fixture
def mock_profit_loss_report():
    """Mock native profit and loss report."""
    return {
        "Header": {"ReportName": "ProfitAndLoss"},
        "Columns": {"Column": [{"ColTitle": ""}, {"ColTitle": "Total"}]},
        "Rows": {
            "Row": [
                {
                    "type": "Section",
                    "group": "Income",
                    "Rows": {"Row": []},
                    "Summary": {"ColData": [{"value": "Total Income"}, {"value": "1000000.00"}]},
                },
                {
                    "type": "Section",
                    "group": "Expenses",
                    "Summary": {"ColData": [{"value": "Total Expenses"}, {"value": "400000.00"}]},
                },
                {
                    "type": "Section",
                    "group": "NetIncome",
                    "Summary": {"ColData": [{"value": "Net Income"}, {"value": "590000.00"}]},
                },
            ]
        },
    }
