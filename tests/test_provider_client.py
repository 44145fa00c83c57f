"""Tests for the provider API client."""

from datetime import date
from unittest.mock import AsyncMock, MagicMock, patch

import httpx
import pytest

from finreports.errors import AuthenticationMissing, ProviderRequestFailed
from finreports.provider import ProviderClient, StaticCredentialStore

COMPANY_ID = "9341455307021048"


def _response(status_code=200, payload=None, headers=None):
    response = MagicMock()
    response.status_code = status_code
    response.json.return_value = payload if payload is not None else {}
    response.content = b"{}"
    response.headers = headers or {}
    return response


@pytest.fixture
def client():
    """Create a ProviderClient with a static token."""
    return ProviderClient(
        StaticCredentialStore.single(COMPANY_ID, "test-token"),
        company_id=COMPANY_ID,
        base_url="http://provider.test/",
        max_retries=2,
    )


class TestProviderClientInit:
    """Tests for ProviderClient initialization."""

    def test_init_strips_trailing_slash(self, client):
        assert client.base_url == "http://provider.test"
        assert client.company_id == COMPANY_ID

    def test_defaults_from_settings(self):
        client = ProviderClient(StaticCredentialStore())

        assert client.base_url == "https://sandbox-quickbooks.api.intuit.com"
        assert client.company_id == COMPANY_ID

    def test_path_is_company_scoped(self, client):
        assert client._path("/accounts") == f"/v3/company/{COMPANY_ID}/accounts"


class TestAuthentication:
    """Tests for credential resolution."""

    @pytest.mark.asyncio
    async def test_missing_token_raises(self):
        client = ProviderClient(StaticCredentialStore(), company_id="other-company")

        with pytest.raises(AuthenticationMissing) as exc_info:
            await client.authenticate()

        assert exc_info.value.company_id == "other-company"

    @pytest.mark.asyncio
    async def test_token_resolved_once(self, client):
        store = AsyncMock()
        store.get_access_token = AsyncMock(return_value="abc")
        client._credentials = store

        await client.authenticate()
        await client.authenticate()

        store.get_access_token.assert_awaited_once_with(None, COMPANY_ID)
        assert client._get_headers()["Authorization"] == "Bearer abc"

    @pytest.mark.asyncio
    async def test_user_specific_token_preferred(self):
        store = StaticCredentialStore(
            {("user-1", COMPANY_ID): "user-token", (None, COMPANY_ID): "shared-token"}
        )
        client = ProviderClient(store, company_id=COMPANY_ID, user_id="user-1")

        await client.authenticate()

        assert client._access_token == "user-token"

    @pytest.mark.asyncio
    async def test_context_manager_authenticates_and_closes(self, client, mock_httpx_client):
        with patch.object(client, "_get_client", return_value=mock_httpx_client):
            async with client as c:
                assert c._access_token == "test-token"


class TestAPIRequests:
    """Tests for entity and report fetches."""

    @pytest.mark.asyncio
    async def test_list_accounts(self, client, mock_httpx_client, mock_accounts_response):
        mock_httpx_client.request = AsyncMock(return_value=_response(payload=mock_accounts_response))

        with patch.object(client, "_get_client", return_value=mock_httpx_client):
            accounts = await client.list_accounts()

        assert [a["Name"] for a in accounts] == [
            "Sales of Product Income",
            "Rent Expense",
            "Cost of Goods Sold",
        ]
        call = mock_httpx_client.request.call_args
        assert call.kwargs["method"] == "GET"
        assert call.kwargs["url"] == f"/v3/company/{COMPANY_ID}/accounts"
        assert call.kwargs["headers"]["Authorization"] == "Bearer test-token"

    @pytest.mark.asyncio
    async def test_list_expenses_reads_purchases(self, client, mock_httpx_client):
        payload = {"QueryResponse": {"Purchase": [{"Id": "1"}, "junk"]}}
        mock_httpx_client.request = AsyncMock(return_value=_response(payload=payload))

        with patch.object(client, "_get_client", return_value=mock_httpx_client):
            expenses = await client.list_expenses()

        assert expenses == [{"Id": "1"}]
        assert mock_httpx_client.request.call_args.kwargs["url"].endswith("/purchases")

    @pytest.mark.asyncio
    async def test_missing_entity_list_is_empty(self, client, mock_httpx_client):
        mock_httpx_client.request = AsyncMock(return_value=_response(payload={"QueryResponse": {}}))

        with patch.object(client, "_get_client", return_value=mock_httpx_client):
            assert await client.list_invoices() == []

    @pytest.mark.asyncio
    async def test_company_info(self, client, mock_httpx_client, mock_company_response):
        mock_httpx_client.request = AsyncMock(return_value=_response(payload=mock_company_response))

        with patch.object(client, "_get_client", return_value=mock_httpx_client):
            info = await client.get_company_info()

        assert info["CompanyName"] == "Kampala Traders Ltd"

    @pytest.mark.asyncio
    async def test_profit_loss_report_params(self, client, mock_httpx_client, mock_profit_loss_report):
        payload = {"QueryResponse": {"Report": [mock_profit_loss_report]}}
        mock_httpx_client.request = AsyncMock(return_value=_response(payload=payload))

        with patch.object(client, "_get_client", return_value=mock_httpx_client):
            report = await client.get_profit_loss_report(date(2026, 1, 1), date(2026, 10, 18))

        assert report == mock_profit_loss_report
        assert mock_httpx_client.request.call_args.kwargs["params"] == {
            "start_date": "2026-01-01",
            "end_date": "2026-10-18",
        }

    @pytest.mark.asyncio
    async def test_bare_report_body(self, client, mock_httpx_client, mock_profit_loss_report):
        mock_httpx_client.request = AsyncMock(
            return_value=_response(payload=mock_profit_loss_report)
        )

        with patch.object(client, "_get_client", return_value=mock_httpx_client):
            report = await client.get_balance_sheet_report(date(2026, 10, 18))

        assert report is mock_profit_loss_report
        assert mock_httpx_client.request.call_args.kwargs["params"] == {
            "as_of_date": "2026-10-18"
        }

    @pytest.mark.asyncio
    async def test_non_dict_body_rejected(self, client, mock_httpx_client):
        mock_httpx_client.request = AsyncMock(return_value=_response(payload=["not", "a", "dict"]))

        with patch.object(client, "_get_client", return_value=mock_httpx_client):
            with pytest.raises(ProviderRequestFailed, match="Invalid response format"):
                await client.get("accounts")


class TestRetries:
    """Tests for retry and error handling."""

    @pytest.mark.asyncio
    async def test_client_error_fails_fast(self, client, mock_httpx_client):
        mock_httpx_client.request = AsyncMock(
            return_value=_response(404, payload={"Fault": {"Error": [{"Message": "Not found"}]}})
        )

        with patch.object(client, "_get_client", return_value=mock_httpx_client), patch(
            "finreports.provider.client.asyncio.sleep", new=AsyncMock()
        ) as mock_sleep:
            with pytest.raises(ProviderRequestFailed) as exc_info:
                await client.list_accounts()

        assert exc_info.value.status_code == 404
        assert exc_info.value.endpoint == "accounts"
        assert exc_info.value.details == {"Fault": {"Error": [{"Message": "Not found"}]}}
        assert not exc_info.value.retryable
        assert mock_httpx_client.request.await_count == 1
        mock_sleep.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_server_error_retried_then_succeeds(
        self, client, mock_httpx_client, mock_accounts_response
    ):
        mock_httpx_client.request = AsyncMock(
            side_effect=[_response(503), _response(payload=mock_accounts_response)]
        )

        with patch.object(client, "_get_client", return_value=mock_httpx_client), patch(
            "finreports.provider.client.asyncio.sleep", new=AsyncMock()
        ) as mock_sleep:
            accounts = await client.list_accounts()

        assert len(accounts) == 3
        mock_sleep.assert_awaited_once_with(1)

    @pytest.mark.asyncio
    async def test_rate_limit_honours_retry_after(self, client, mock_httpx_client):
        mock_httpx_client.request = AsyncMock(
            side_effect=[_response(429, headers={"Retry-After": "7"}), _response(payload={})]
        )

        with patch.object(client, "_get_client", return_value=mock_httpx_client), patch(
            "finreports.provider.client.asyncio.sleep", new=AsyncMock()
        ) as mock_sleep:
            await client.get("accounts")

        mock_sleep.assert_awaited_once_with(7)

    @pytest.mark.asyncio
    async def test_retries_exhausted(self, client, mock_httpx_client):
        mock_httpx_client.request = AsyncMock(return_value=_response(500))

        with patch.object(client, "_get_client", return_value=mock_httpx_client), patch(
            "finreports.provider.client.asyncio.sleep", new=AsyncMock()
        ) as mock_sleep:
            with pytest.raises(ProviderRequestFailed) as exc_info:
                await client.get("accounts")

        assert exc_info.value.status_code == 500
        assert exc_info.value.retryable
        # One attempt plus max_retries=2 retries with exponential backoff
        assert mock_httpx_client.request.await_count == 3
        assert [c.args[0] for c in mock_sleep.await_args_list] == [1, 2]

    @pytest.mark.asyncio
    async def test_transport_error_wrapped(self, client, mock_httpx_client):
        mock_httpx_client.request = AsyncMock(side_effect=httpx.ConnectError("refused"))

        with patch.object(client, "_get_client", return_value=mock_httpx_client), patch(
            "finreports.provider.client.asyncio.sleep", new=AsyncMock()
        ):
            with pytest.raises(ProviderRequestFailed) as exc_info:
                await client.get("accounts")

        assert "refused" in str(exc_info.value)
        assert exc_info.value.status_code is None
        assert mock_httpx_client.request.await_count == 3


class TestConnectionCheck:
    @pytest.mark.asyncio
    async def test_is_connected(self, client, mock_httpx_client, mock_company_response):
        mock_httpx_client.request = AsyncMock(return_value=_response(payload=mock_company_response))

        with patch.object(client, "_get_client", return_value=mock_httpx_client):
            assert await client.is_connected() is True

    @pytest.mark.asyncio
    async def test_not_connected_without_credentials(self):
        client = ProviderClient(StaticCredentialStore(), company_id="other-company")

        assert await client.is_connected() is False


def test_error_string_names_stage_and_endpoint():
    error = ProviderRequestFailed("boom", endpoint="accounts", stage="accounts")

    assert str(error) == "boom (stage=accounts endpoint=accounts)"
