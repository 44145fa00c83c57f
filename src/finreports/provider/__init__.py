"""Accounting data provider access."""

from finreports.provider.client import ProviderClient
from finreports.provider.credentials import (
    CredentialStore,
    RestCredentialStore,
    StaticCredentialStore,
    credential_store_from_settings,
)

__all__ = [
    # API Client
    "ProviderClient",
    # Credentials
    "CredentialStore",
    "RestCredentialStore",
    "StaticCredentialStore",
    "credential_store_from_settings",
]
