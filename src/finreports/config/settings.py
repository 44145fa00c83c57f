"""Configuration settings for the finreports engine."""

from functools import lru_cache
from typing import Literal

from pydantic import Field, SecretStr
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Flat settings read from environment variables or a .env file."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    # Accounting data provider
    provider_base_url: str = Field(
        default="https://sandbox-quickbooks.api.intuit.com",
        validation_alias="PROVIDER_BASE_URL",
    )
    provider_company_id: str = Field(..., validation_alias="PROVIDER_COMPANY_ID")
    provider_user_id: str | None = Field(default=None, validation_alias="PROVIDER_USER_ID")
    provider_access_token: SecretStr | None = Field(
        default=None, validation_alias="PROVIDER_ACCESS_TOKEN"
    )
    provider_timeout: float = Field(default=30.0, validation_alias="PROVIDER_TIMEOUT")
    provider_max_retries: int = Field(default=3, validation_alias="PROVIDER_MAX_RETRIES")

    # Upper bound for a single fetch, retries included
    fetch_timeout: float = Field(default=60.0, validation_alias="FETCH_TIMEOUT")

    # Credential store (PostgREST-style token table)
    credential_store_url: str | None = Field(
        default=None, validation_alias="CREDENTIAL_STORE_URL"
    )
    credential_store_key: SecretStr | None = Field(
        default=None, validation_alias="CREDENTIAL_STORE_KEY"
    )

    # Statutory tax policy
    tax_jurisdiction: str = Field(default="UG", validation_alias="TAX_JURISDICTION")
    vat_rate: float | None = Field(default=None, validation_alias="VAT_RATE")
    income_tax_rate: float | None = Field(default=None, validation_alias="INCOME_TAX_RATE")
    withholding_tax_rate: float | None = Field(
        default=None, validation_alias="WITHHOLDING_TAX_RATE"
    )

    # Output
    output_format: Literal["json", "text"] = Field(
        default="json", validation_alias="OUTPUT_FORMAT"
    )
    log_level: Literal["DEBUG", "INFO", "WARNING", "ERROR"] = Field(
        default="INFO", validation_alias="LOG_LEVEL"
    )
    log_format: Literal["json", "console"] = Field(
        default="console", validation_alias="LOG_FORMAT"
    )


@lru_cache
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()
