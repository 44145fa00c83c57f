"""Read-only async client for the accounting data provider API."""

import asyncio
from datetime import date
from typing import Any

import httpx
import structlog

from finreports.config import get_settings
from finreports.errors import AuthenticationMissing, ProviderRequestFailed
from finreports.provider.credentials import CredentialStore

logger = structlog.get_logger(__name__)


class ProviderClient:
    """Async client for a QuickBooks-style company API with bearer auth.

    One instance serves one (user, company) pair. The access token is
    resolved from the credential store once and reused for every request.
    """

    def __init__(
        self,
        credentials: CredentialStore,
        company_id: str | None = None,
        user_id: str | None = None,
        base_url: str | None = None,
        timeout: float | None = None,
        max_retries: int | None = None,
    ):
        settings = get_settings()
        self.base_url = (base_url or settings.provider_base_url).rstrip("/")
        self.company_id = company_id or settings.provider_company_id
        self.user_id = user_id if user_id is not None else settings.provider_user_id
        self._credentials = credentials
        self._timeout = timeout if timeout is not None else settings.provider_timeout
        self._max_retries = (
            max_retries if max_retries is not None else settings.provider_max_retries
        )

        self._access_token: str | None = None
        self._client: httpx.AsyncClient | None = None
        self._lock = asyncio.Lock()

    async def _get_client(self) -> httpx.AsyncClient:
        """Get or create HTTP client."""
        if self._client is None:
            self._client = httpx.AsyncClient(
                base_url=self.base_url,
                timeout=httpx.Timeout(self._timeout),
            )
        return self._client

    async def close(self) -> None:
        """Close the HTTP client."""
        if self._client:
            await self._client.aclose()
            self._client = None

    async def __aenter__(self) -> "ProviderClient":
        await self.authenticate()
        return self

    async def __aexit__(self, exc_type: Any, exc_val: Any, exc_tb: Any) -> None:
        await self.close()

    # === Authentication ===

    async def authenticate(self) -> None:
        """Resolve the bearer token once; missing credentials are fatal."""
        async with self._lock:
            if self._access_token:
                return
            token = await self._credentials.get_access_token(self.user_id, self.company_id)
            if not token:
                raise AuthenticationMissing(self.user_id, self.company_id)
            self._access_token = token
            logger.info("provider_authenticated", company_id=self.company_id)

    def _get_headers(self) -> dict[str, str]:
        """Get request headers with auth token."""
        headers = {"Accept": "application/json", "Content-Type": "application/json"}
        if self._access_token:
            headers["Authorization"] = f"Bearer {self._access_token}"
        return headers

    def _path(self, endpoint: str) -> str:
        return f"/v3/company/{self.company_id}/{endpoint.lstrip('/')}"

    # === Generic Request Methods ===

    async def _request(
        self,
        method: str,
        endpoint: str,
        params: dict[str, Any] | None = None,
        retry_count: int = 0,
    ) -> dict[str, Any]:
        """Make an authenticated API request with retry logic.

        Transport errors, 429 and 5xx responses are retried with exponential
        backoff; other 4xx responses fail immediately.
        """
        await self.authenticate()
        client = await self._get_client()

        try:
            response = await client.request(
                method=method,
                url=self._path(endpoint),
                params=params,
                headers=self._get_headers(),
            )
        except httpx.RequestError as e:
            if retry_count < self._max_retries:
                logger.warning(
                    "provider_request_retry",
                    endpoint=endpoint,
                    attempt=retry_count + 1,
                    error=str(e),
                )
                await asyncio.sleep(2**retry_count)  # Exponential backoff
                return await self._request(method, endpoint, params, retry_count + 1)
            raise ProviderRequestFailed(f"Request failed: {e}", endpoint=endpoint) from e

        if response.status_code == 429 or response.status_code >= 500:
            if retry_count < self._max_retries:
                delay = 2**retry_count
                if response.status_code == 429:
                    try:
                        delay = int(response.headers.get("Retry-After", delay))
                    except ValueError:
                        pass
                logger.warning(
                    "provider_request_retry",
                    endpoint=endpoint,
                    attempt=retry_count + 1,
                    status_code=response.status_code,
                )
                await asyncio.sleep(delay)
                return await self._request(method, endpoint, params, retry_count + 1)

        if response.status_code >= 400:
            try:
                error_detail = response.json() if response.content else {}
            except ValueError:
                error_detail = {"raw": response.text[:500] if response.text else "empty response"}
            raise ProviderRequestFailed(
                f"Provider API error: {response.status_code}",
                endpoint=endpoint,
                status_code=response.status_code,
                details=error_detail,
            )

        data = response.json() if response.content else {}
        if not isinstance(data, dict):
            raise ProviderRequestFailed("Invalid response format", endpoint=endpoint)
        return data

    async def get(self, endpoint: str, params: dict[str, Any] | None = None) -> dict[str, Any]:
        """Make GET request."""
        return await self._request("GET", endpoint, params=params)

    @staticmethod
    def _extract_items(result: dict[str, Any], entity: str) -> list[dict[str, Any]]:
        """Return the entity list from a QueryResponse or plain envelope."""
        query = result.get("QueryResponse")
        source = query if isinstance(query, dict) else result
        items = source.get(entity)
        if isinstance(items, list):
            return [item for item in items if isinstance(item, dict)]
        return []

    @staticmethod
    def _extract_report(result: dict[str, Any]) -> dict[str, Any] | None:
        """Return a report from ``QueryResponse.Report[0]`` or a bare report body."""
        query = result.get("QueryResponse")
        if isinstance(query, dict):
            reports = query.get("Report")
            if isinstance(reports, list) and reports and isinstance(reports[0], dict):
                return reports[0]
            if isinstance(reports, dict):
                return reports
        if "Header" in result or "Rows" in result:
            return result
        return None

    async def is_connected(self) -> bool:
        """Check that the credential works against the company endpoint."""
        try:
            await self.get("companyinfo/1")
        except (AuthenticationMissing, ProviderRequestFailed) as e:
            logger.warning("provider_connection_check_failed", error=str(e))
            return False
        return True

    # === Entity Endpoints ===

    async def get_company_info(self) -> dict[str, Any] | None:
        """Get the company profile."""
        result = await self.get("companyinfo/1")
        query = result.get("QueryResponse")
        if isinstance(query, dict):
            infos = query.get("CompanyInfo")
            if isinstance(infos, list) and infos:
                return infos[0]
        info = result.get("CompanyInfo")
        return info if isinstance(info, dict) else None

    async def list_accounts(self) -> list[dict[str, Any]]:
        """List chart of accounts."""
        return self._extract_items(await self.get("accounts"), "Account")

    async def list_invoices(self) -> list[dict[str, Any]]:
        """List invoices."""
        return self._extract_items(await self.get("invoices"), "Invoice")

    async def list_customers(self) -> list[dict[str, Any]]:
        """List customers."""
        return self._extract_items(await self.get("customers"), "Customer")

    async def list_items(self) -> list[dict[str, Any]]:
        """List inventory and service items."""
        return self._extract_items(await self.get("items"), "Item")

    async def list_payments(self) -> list[dict[str, Any]]:
        """List customer payments."""
        return self._extract_items(await self.get("payments"), "Payment")

    async def list_expenses(self) -> list[dict[str, Any]]:
        """List expense (purchase) transactions."""
        return self._extract_items(await self.get("purchases"), "Purchase")

    # === Native Report Endpoints ===

    async def get_profit_loss_report(self, start: date, end: date) -> dict[str, Any] | None:
        """Get the provider's profit and loss report."""
        result = await self.get(
            "reports/ProfitAndLoss",
            params={"start_date": start.isoformat(), "end_date": end.isoformat()},
        )
        return self._extract_report(result)

    async def get_balance_sheet_report(self, as_of: date) -> dict[str, Any] | None:
        """Get the provider's balance sheet report."""
        result = await self.get("reports/BalanceSheet", params={"as_of_date": as_of.isoformat()})
        return self._extract_report(result)

    async def get_cash_flow_report(self, start: date, end: date) -> dict[str, Any] | None:
        """Get the provider's cash flow report."""
        result = await self.get(
            "reports/CashFlow",
            params={"start_date": start.isoformat(), "end_date": end.isoformat()},
        )
        return self._extract_report(result)

    async def get_ar_aging(self) -> dict[str, Any] | None:
        """Get accounts receivable aging report."""
        return self._extract_report(await self.get("reports/AR_Aging"))

    async def get_ap_aging(self) -> dict[str, Any] | None:
        """Get accounts payable aging report."""
        return self._extract_report(await self.get("reports/AP_Aging"))

    async def get_inventory_valuation(self) -> dict[str, Any] | None:
        """Get inventory valuation summary report."""
        return self._extract_report(await self.get("reports/InventoryValuationSummary"))
