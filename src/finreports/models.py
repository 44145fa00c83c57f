"""Domain records parsed from accounting-provider payloads.

Every record is a frozen snapshot owned by the request that fetched it.
Parsing is tolerant: a missing or non-numeric amount is logged as a
``malformed_entity`` event and treated as zero, so a single bad record
never blocks a whole statement.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date, datetime
from decimal import Decimal, InvalidOperation
from enum import Enum
from typing import Any

import structlog

from finreports.errors import MalformedEntityError

logger = structlog.get_logger(__name__)

ZERO = Decimal("0")


# =============================================================================
# PARSING HELPERS
# =============================================================================


def to_decimal(value: Any, entity: str, entity_id: str, field_name: str) -> Decimal:
    """Strictly convert a provider value to Decimal.

    Raises:
        MalformedEntityError: If the value is missing or not a finite number.
    """
    if value is None or isinstance(value, bool):
        raise MalformedEntityError(entity, entity_id, field_name, value)
    try:
        result = Decimal(str(value).strip())
    except (InvalidOperation, ValueError) as exc:
        raise MalformedEntityError(entity, entity_id, field_name, value) from exc
    if not result.is_finite():
        raise MalformedEntityError(entity, entity_id, field_name, value)
    return result


def _amount(raw: dict[str, Any], key: str, entity: str) -> Decimal:
    entity_id = str(raw.get("Id", ""))
    try:
        return to_decimal(raw.get(key), entity, entity_id, key)
    except MalformedEntityError as exc:
        logger.warning(
            "malformed_entity",
            entity=exc.entity,
            entity_id=exc.entity_id,
            field=exc.field,
            value=repr(exc.value),
        )
        return ZERO


def parse_date(value: Any) -> date | None:
    """Parse an ISO date or datetime string; anything else becomes None."""
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    if not isinstance(value, str) or len(value) < 10:
        return None
    try:
        return date.fromisoformat(value[:10])
    except ValueError:
        return None


def _ref_value(value: Any) -> str | None:
    """Extract the id from a provider reference ({"value": ..., "name": ...})."""
    if isinstance(value, dict):
        ref = value.get("value")
        return str(ref) if ref is not None else None
    if value is None:
        return None
    return str(value)


def _text(value: Any) -> str:
    return str(value).strip() if value is not None else ""


def _nested(raw: dict[str, Any], key: str, field_name: str) -> Any:
    """Read ``raw[key][field_name]``; a non-mapping ``raw[key]`` is logged and ignored."""
    value = raw.get(key)
    if value is None:
        return None
    if not isinstance(value, dict):
        logger.warning(
            "malformed_entity",
            entity="CompanyInfo",
            entity_id=str(raw.get("Id", "")),
            field=key,
            value=repr(value),
        )
        return None
    return value.get(field_name)


# =============================================================================
# ACCOUNTS
# =============================================================================


class AccountType(str, Enum):
    """Top-level account classification."""

    ASSET = "Asset"
    LIABILITY = "Liability"
    EQUITY = "Equity"
    INCOME = "Income"
    EXPENSE = "Expense"


# Provider detail types mapped onto the five top-level types
PROVIDER_ACCOUNT_TYPES: dict[str, AccountType] = {
    "Bank": AccountType.ASSET,
    "Accounts Receivable": AccountType.ASSET,
    "Other Current Asset": AccountType.ASSET,
    "Fixed Asset": AccountType.ASSET,
    "Other Asset": AccountType.ASSET,
    "Accounts Payable": AccountType.LIABILITY,
    "Credit Card": AccountType.LIABILITY,
    "Other Current Liability": AccountType.LIABILITY,
    "Long Term Liability": AccountType.LIABILITY,
    "Other Income": AccountType.INCOME,
    "Revenue": AccountType.INCOME,
    "Cost of Goods Sold": AccountType.EXPENSE,
    "Other Expense": AccountType.EXPENSE,
}


def parse_account_type(raw_type: Any, classification: Any = None) -> AccountType | None:
    """Normalize a provider account type, falling back to its classification.

    Returns None (and logs) when neither value is recognized.
    """
    for candidate in (raw_type, classification):
        if not isinstance(candidate, str):
            continue
        name = candidate.strip()
        try:
            return AccountType(name)
        except ValueError:
            pass
        if name in PROVIDER_ACCOUNT_TYPES:
            return PROVIDER_ACCOUNT_TYPES[name]

    logger.warning(
        "unrecognized_account_type",
        account_type=raw_type,
        classification=classification,
    )
    return None


@dataclass(frozen=True)
class Account:
    """A ledger account with its current balance."""

    id: str
    name: str
    type: AccountType | None
    subtype: str | None
    current_balance: Decimal

    @classmethod
    def from_provider(cls, raw: dict[str, Any]) -> Account:
        subtype = raw.get("AccountSubType")
        return cls(
            id=_text(raw.get("Id")),
            name=_text(raw.get("Name")),
            type=parse_account_type(raw.get("AccountType"), raw.get("Classification")),
            subtype=_text(subtype) or None,
            current_balance=_amount(raw, "CurrentBalance", "Account"),
        )


# =============================================================================
# TRANSACTIONS AND PARTIES
# =============================================================================


@dataclass(frozen=True)
class Invoice:
    """A sales invoice. ``txn_date`` is the issue date."""

    id: str
    doc_number: str
    customer_ref: str | None
    txn_date: date | None
    due_date: date | None
    total_amount: Decimal
    balance: Decimal

    @classmethod
    def from_provider(cls, raw: dict[str, Any]) -> Invoice:
        return cls(
            id=_text(raw.get("Id")),
            doc_number=_text(raw.get("DocNumber")),
            customer_ref=_ref_value(raw.get("CustomerRef")),
            txn_date=parse_date(raw.get("TxnDate")),
            due_date=parse_date(raw.get("DueDate")),
            total_amount=_amount(raw, "TotalAmt", "Invoice"),
            balance=_amount(raw, "Balance", "Invoice"),
        )


@dataclass(frozen=True)
class Payment:
    """A customer payment."""

    id: str
    txn_date: date | None
    total_amount: Decimal
    reference_number: str

    @classmethod
    def from_provider(cls, raw: dict[str, Any]) -> Payment:
        return cls(
            id=_text(raw.get("Id")),
            txn_date=parse_date(raw.get("TxnDate")),
            total_amount=_amount(raw, "TotalAmt", "Payment"),
            reference_number=_text(raw.get("PaymentRefNum")),
        )


@dataclass(frozen=True)
class Expense:
    """A purchase/expense transaction."""

    id: str
    txn_date: date | None
    total_amount: Decimal

    @classmethod
    def from_provider(cls, raw: dict[str, Any]) -> Expense:
        return cls(
            id=_text(raw.get("Id")),
            txn_date=parse_date(raw.get("TxnDate")),
            total_amount=_amount(raw, "TotalAmt", "Expense"),
        )


@dataclass(frozen=True)
class Customer:
    """A customer with lifetime revenue and open balance."""

    id: str
    display_name: str
    total_revenue: Decimal
    balance: Decimal

    @classmethod
    def from_provider(cls, raw: dict[str, Any]) -> Customer:
        return cls(
            id=_text(raw.get("Id")),
            display_name=_text(raw.get("DisplayName")),
            total_revenue=_amount(raw, "TotalRevenue", "Customer"),
            balance=_amount(raw, "Balance", "Customer"),
        )


class ItemType(str, Enum):
    """Product/service item kinds."""

    INVENTORY = "Inventory"
    SERVICE = "Service"
    NON_INVENTORY = "NonInventory"
    OTHER = "Other"


@dataclass(frozen=True)
class Item:
    """An inventory or service item."""

    id: str
    name: str
    sku: str
    unit_price: Decimal
    quantity_on_hand: Decimal
    type: ItemType

    @classmethod
    def from_provider(cls, raw: dict[str, Any]) -> Item:
        try:
            item_type = ItemType(_text(raw.get("Type")))
        except ValueError:
            item_type = ItemType.OTHER
        # Service items carry no quantity
        qty = raw.get("QtyOnHand")
        return cls(
            id=_text(raw.get("Id")),
            name=_text(raw.get("Name")),
            sku=_text(raw.get("Sku")),
            unit_price=_amount(raw, "UnitPrice", "Item"),
            quantity_on_hand=_amount(raw, "QtyOnHand", "Item") if qty is not None else ZERO,
            type=item_type,
        )


@dataclass(frozen=True)
class CompanyInfo:
    """Company header printed on every report."""

    name: str = "Company Name"
    address: str = "Address"
    phone: str = "Phone"
    email: str = "Email"

    @classmethod
    def from_provider(cls, raw: dict[str, Any] | None) -> CompanyInfo:
        if not raw:
            return cls()
        return cls(
            name=_text(raw.get("CompanyName")) or "Company Name",
            address=_text(_nested(raw, "CompanyAddr", "Line1")) or "Address",
            phone=_text(_nested(raw, "PrimaryPhone", "FreeFormNumber")) or "Phone",
            email=_text(_nested(raw, "Email", "Address")) or "Email",
        )

    def to_dict(self) -> dict[str, str]:
        return {
            "name": self.name,
            "address": self.address,
            "phone": self.phone,
            "email": self.email,
        }


# =============================================================================
# REQUEST VALUES
# =============================================================================


@dataclass(frozen=True)
class ReportPeriod:
    """Reporting window. Balance sheets use ``end_date`` as the as-of date."""

    start_date: date
    end_date: date

    def __post_init__(self) -> None:
        if self.start_date > self.end_date:
            raise ValueError(
                f"Report period starts after it ends: {self.start_date} > {self.end_date}"
            )

    @classmethod
    def year_to_date(cls, today: date) -> ReportPeriod:
        return cls(start_date=date(today.year, 1, 1), end_date=today)

    @property
    def as_of(self) -> date:
        return self.end_date

    @property
    def label(self) -> str:
        return f"{self.start_date.isoformat()} to {self.end_date.isoformat()}"


@dataclass(frozen=True)
class ProviderSnapshot:
    """Everything one request fetched from the provider."""

    company: CompanyInfo = field(default_factory=CompanyInfo)
    accounts: tuple[Account, ...] = ()
    invoices: tuple[Invoice, ...] = ()
    customers: tuple[Customer, ...] = ()
    items: tuple[Item, ...] = ()
    payments: tuple[Payment, ...] = ()
    expenses: tuple[Expense, ...] = ()
    # Provider-native reports keyed by name; carried through, never used in arithmetic
    native_reports: dict[str, dict[str, Any] | None] = field(default_factory=dict)
