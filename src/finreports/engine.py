"""Report engine: concurrent provider fetches feeding the statement builders.

Every operation issues a fixed set of independent fetches inside one
``asyncio.TaskGroup``. Each fetch is bounded by ``fetch_timeout``; the first
failure cancels the rest and the operation raises a single
``ProviderRequestFailed`` naming the failed stage. Nothing is cached between
calls, so identical requests always refetch.
"""

import asyncio
from collections.abc import Awaitable, Callable, Iterable
from datetime import datetime
from typing import Any

import structlog

from finreports.config import TaxPolicy, get_settings, policy_from_settings
from finreports.dashboard import DashboardMetrics, compose_dashboard
from finreports.errors import ProviderRequestFailed
from finreports.models import (
    Account,
    CompanyInfo,
    Customer,
    Expense,
    Invoice,
    Item,
    Payment,
    ProviderSnapshot,
    ReportPeriod,
)
from finreports.provider import ProviderClient, credential_store_from_settings
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

logger = structlog.get_logger(__name__)

NATIVE_REPORT_STAGES = (
    "profit_loss",
    "balance_sheet",
    "cash_flow",
    "ar_aging",
    "ap_aging",
    "inventory_valuation",
)

PROFIT_LOSS_STAGES = ("company", "accounts", "invoices", "expenses", "profit_loss")
BALANCE_SHEET_STAGES = ("company", "accounts", "balance_sheet")
CASH_FLOW_STAGES = ("company", "accounts", "cash_flow")
DASHBOARD_STAGES = (
    "company",
    "accounts",
    "invoices",
    "customers",
    "items",
    "payments",
    "expenses",
    "profit_loss",
    "balance_sheet",
    "cash_flow",
)
SUPPLEMENTARY_STAGES = ("ar_aging", "ap_aging", "inventory_valuation")

Fetch = tuple[str, Callable[[], Awaitable[Any]]]


def _first_failure(group: BaseExceptionGroup) -> BaseException:
    """Pick the failure to surface, preferring provider errors."""
    leaves: list[BaseException] = []
    pending: list[BaseException] = [group]
    while pending:
        exc = pending.pop(0)
        if isinstance(exc, BaseExceptionGroup):
            pending.extend(exc.exceptions)
        else:
            leaves.append(exc)
    for exc in leaves:
        if isinstance(exc, ProviderRequestFailed):
            return exc
    return leaves[0]


class ReportEngine:
    """Builds statements and dashboards for one provider company."""

    def __init__(
        self,
        client: ProviderClient,
        policy: TaxPolicy | None = None,
        heuristics: CashFlowHeuristics | None = None,
        fetch_timeout: float | None = None,
        clock: Callable[[], datetime] | None = None,
    ):
        self._client = client
        self.policy = policy or TaxPolicy.default()
        self.heuristics = heuristics or CashFlowHeuristics()
        self._fetch_timeout = (
            fetch_timeout if fetch_timeout is not None else get_settings().fetch_timeout
        )
        self._clock = clock or (lambda: datetime.now().astimezone())
        self._logger = logger.bind(company_id=client.company_id)

    @classmethod
    def from_settings(cls) -> "ReportEngine":
        """Wire client, credential store and tax policy from settings."""
        settings = get_settings()
        client = ProviderClient(credential_store_from_settings(settings))
        return cls(client, policy=policy_from_settings(), fetch_timeout=settings.fetch_timeout)

    async def close(self) -> None:
        await self._client.close()

    async def __aenter__(self) -> "ReportEngine":
        return self

    async def __aexit__(self, exc_type: Any, exc_val: Any, exc_tb: Any) -> None:
        await self.close()

    def default_period(self) -> ReportPeriod:
        return ReportPeriod.year_to_date(self._clock().date())

    # === Fetching ===

    def _plan(self, stages: Iterable[str], period: ReportPeriod) -> dict[str, Fetch]:
        client = self._client
        catalog: dict[str, Fetch] = {
            "company": ("companyinfo/1", client.get_company_info),
            "accounts": ("accounts", client.list_accounts),
            "invoices": ("invoices", client.list_invoices),
            "customers": ("customers", client.list_customers),
            "items": ("items", client.list_items),
            "payments": ("payments", client.list_payments),
            "expenses": ("purchases", client.list_expenses),
            "profit_loss": (
                "reports/ProfitAndLoss",
                lambda: client.get_profit_loss_report(period.start_date, period.end_date),
            ),
            "balance_sheet": (
                "reports/BalanceSheet",
                lambda: client.get_balance_sheet_report(period.as_of),
            ),
            "cash_flow": (
                "reports/CashFlow",
                lambda: client.get_cash_flow_report(period.start_date, period.end_date),
            ),
            "ar_aging": ("reports/AR_Aging", client.get_ar_aging),
            "ap_aging": ("reports/AP_Aging", client.get_ap_aging),
            "inventory_valuation": (
                "reports/InventoryValuationSummary",
                client.get_inventory_valuation,
            ),
        }
        return {stage: catalog[stage] for stage in stages}

    async def _fetch(self, stage: str, endpoint: str, call: Callable[[], Awaitable[Any]]) -> Any:
        self._logger.debug("fetch_started", stage=stage, endpoint=endpoint)
        try:
            async with asyncio.timeout(self._fetch_timeout):
                result = await call()
        except TimeoutError as e:
            raise ProviderRequestFailed(
                f"Fetch timed out after {self._fetch_timeout}s",
                endpoint=endpoint,
                stage=stage,
            ) from e
        except ProviderRequestFailed as e:
            if e.stage is None:
                e.stage = stage
            raise
        self._logger.debug("fetch_completed", stage=stage, endpoint=endpoint)
        return result

    async def _gather(self, stages: Iterable[str], period: ReportPeriod) -> dict[str, Any]:
        """Run every fetch concurrently; any failure aborts all of them."""
        # Missing credentials fail once, before the fan-out
        await self._client.authenticate()

        plan = self._plan(stages, period)
        tasks: dict[str, asyncio.Task[Any]] = {}
        try:
            async with asyncio.TaskGroup() as group:
                for stage, (endpoint, call) in plan.items():
                    tasks[stage] = group.create_task(self._fetch(stage, endpoint, call))
        except BaseExceptionGroup as eg:
            failure = _first_failure(eg)
            self._logger.error(
                "fetch_failed",
                stage=getattr(failure, "stage", None),
                endpoint=getattr(failure, "endpoint", None),
                error=str(failure),
            )
            raise failure from None
        return {stage: task.result() for stage, task in tasks.items()}

    async def fetch_snapshot(
        self, stages: Iterable[str], period: ReportPeriod | None = None
    ) -> ProviderSnapshot:
        """Fetch the given stages and parse them into a snapshot."""
        period = period or self.default_period()
        raw = await self._gather(stages, period)
        return ProviderSnapshot(
            company=CompanyInfo.from_provider(raw.get("company")),
            accounts=tuple(Account.from_provider(r) for r in raw.get("accounts", [])),
            invoices=tuple(Invoice.from_provider(r) for r in raw.get("invoices", [])),
            customers=tuple(Customer.from_provider(r) for r in raw.get("customers", [])),
            items=tuple(Item.from_provider(r) for r in raw.get("items", [])),
            payments=tuple(Payment.from_provider(r) for r in raw.get("payments", [])),
            expenses=tuple(Expense.from_provider(r) for r in raw.get("expenses", [])),
            native_reports={
                stage: raw[stage] for stage in NATIVE_REPORT_STAGES if stage in raw
            },
        )

    # === Operations ===

    async def profit_and_loss(self, period: ReportPeriod | None = None) -> ProfitLossReport:
        period = period or self.default_period()
        snapshot = await self.fetch_snapshot(PROFIT_LOSS_STAGES, period)
        return build_profit_loss(snapshot, period, self.policy)

    async def balance_sheet(self, period: ReportPeriod | None = None) -> BalanceSheetReport:
        period = period or self.default_period()
        snapshot = await self.fetch_snapshot(BALANCE_SHEET_STAGES, period)
        return build_balance_sheet(snapshot, period)

    async def cash_flow(self, period: ReportPeriod | None = None) -> CashFlowReport:
        period = period or self.default_period()
        snapshot = await self.fetch_snapshot(CASH_FLOW_STAGES, period)
        return build_cash_flow(snapshot, period, self.heuristics)

    async def tax_compliance(self, period: ReportPeriod | None = None) -> TaxComplianceReport:
        pnl = await self.profit_and_loss(period)
        return build_tax_compliance(pnl, self.policy, generated_at=self._clock())

    async def dashboard(self, period: ReportPeriod | None = None) -> DashboardMetrics:
        """Dashboard metrics; ``period`` only scopes the native reports fetched."""
        snapshot = await self.fetch_snapshot(DASHBOARD_STAGES, period)
        return compose_dashboard(snapshot, self.policy, now=self._clock())

    async def supplementary_reports(self) -> dict[str, dict[str, Any] | None]:
        """Provider-native AR/AP aging and inventory valuation, unmodified."""
        snapshot = await self.fetch_snapshot(SUPPLEMENTARY_STAGES)
        return dict(snapshot.native_reports)
