"""Exceptions raised by the reporting engine."""

from typing import Any


class FinReportsError(Exception):
    """Base exception for finreports."""

    pass


class AuthenticationMissing(FinReportsError):
    """No provider credential exists for the (user, company) pair."""

    def __init__(self, user_id: str | None, company_id: str):
        super().__init__(
            f"No provider access token for user={user_id!r} company={company_id!r}"
        )
        self.user_id = user_id
        self.company_id = company_id


class ProviderRequestFailed(FinReportsError):
    """A provider fetch failed; the whole report request is aborted."""

    def __init__(
        self,
        message: str,
        endpoint: str,
        stage: str | None = None,
        status_code: int | None = None,
        details: Any = None,
    ):
        super().__init__(message)
        self.endpoint = endpoint
        self.stage = stage
        self.status_code = status_code
        self.details = details

    @property
    def retryable(self) -> bool:
        """Transport errors, rate limits and server errors are worth retrying."""
        return self.status_code is None or self.status_code == 429 or self.status_code >= 500

    def __str__(self) -> str:
        base = super().__str__()
        where = f"endpoint={self.endpoint}"
        if self.stage:
            where = f"stage={self.stage} {where}"
        return f"{base} ({where})"


class MalformedEntityError(FinReportsError):
    """A fetched record is missing an expected numeric field."""

    def __init__(self, entity: str, entity_id: str, field: str, value: Any = None):
        super().__init__(f"{entity} {entity_id or '?'}: bad {field} value {value!r}")
        self.entity = entity
        self.entity_id = entity_id
        self.field = field
        self.value = value
