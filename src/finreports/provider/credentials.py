"""Credential stores resolving a provider bearer token per (user, company)."""

from typing import Any, Protocol

import httpx
import structlog

from finreports.config import Settings
from finreports.errors import ProviderRequestFailed

logger = structlog.get_logger(__name__)


class CredentialStore(Protocol):
    """Anything that can look up a provider access token."""

    async def get_access_token(self, user_id: str | None, company_id: str) -> str | None:
        ...


class StaticCredentialStore:
    """In-memory tokens, keyed by (user_id, company_id).

    A ``None`` user id acts as a wildcard entry for the company.
    """

    def __init__(self, tokens: dict[tuple[str | None, str], str] | None = None):
        self._tokens = dict(tokens or {})

    @classmethod
    def single(cls, company_id: str, token: str, user_id: str | None = None) -> "StaticCredentialStore":
        return cls({(user_id, company_id): token})

    async def get_access_token(self, user_id: str | None, company_id: str) -> str | None:
        token = self._tokens.get((user_id, company_id))
        if token is None:
            token = self._tokens.get((None, company_id))
        return token


class RestCredentialStore:
    """Token table exposed over a PostgREST-style HTTP API."""

    def __init__(
        self,
        base_url: str,
        api_key: str,
        table: str = "quickbooks_tokens",
        timeout: float = 10.0,
    ):
        self.base_url = base_url.rstrip("/")
        self._api_key = api_key
        self._table = table
        self._timeout = timeout

    async def get_access_token(self, user_id: str | None, company_id: str) -> str | None:
        params: dict[str, Any] = {
            "select": "access_token",
            "company_id": f"eq.{company_id}",
            "limit": "1",
        }
        if user_id:
            params["user_id"] = f"eq.{user_id}"

        endpoint = f"/rest/v1/{self._table}"
        async with httpx.AsyncClient(
            base_url=self.base_url, timeout=httpx.Timeout(self._timeout)
        ) as client:
            try:
                response = await client.get(
                    endpoint,
                    params=params,
                    headers={
                        "apikey": self._api_key,
                        "Authorization": f"Bearer {self._api_key}",
                        "Accept": "application/json",
                    },
                )
            except httpx.RequestError as e:
                raise ProviderRequestFailed(
                    f"Credential lookup failed: {e}", endpoint=endpoint, stage="credentials"
                ) from e

        if response.status_code >= 400:
            raise ProviderRequestFailed(
                f"Credential store error: {response.status_code}",
                endpoint=endpoint,
                stage="credentials",
                status_code=response.status_code,
            )

        rows = response.json() if response.content else []
        if not isinstance(rows, list) or not rows:
            logger.info("credential_not_found", user_id=user_id, company_id=company_id)
            return None
        token = rows[0].get("access_token") if isinstance(rows[0], dict) else None
        return str(token) if token else None


def credential_store_from_settings(settings: Settings) -> CredentialStore:
    """Prefer the REST store when configured, else the static env token."""
    if settings.credential_store_url and settings.credential_store_key:
        return RestCredentialStore(
            settings.credential_store_url,
            settings.credential_store_key.get_secret_value(),
        )
    tokens: dict[tuple[str | None, str], str] = {}
    if settings.provider_access_token:
        tokens[(None, settings.provider_company_id)] = (
            settings.provider_access_token.get_secret_value()
        )
    return StaticCredentialStore(tokens)
