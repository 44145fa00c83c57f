"""Configuration module for finreports."""

from finreports.config.logging import configure_logging, get_logger
from finreports.config.settings import Settings, get_settings
from finreports.config.tax_policies import (
    TaxPolicy,
    get_tax_policy,
    load_tax_policies,
    policy_from_settings,
)

__all__ = [
    "Settings",
    "get_settings",
    "configure_logging",
    "get_logger",
    "TaxPolicy",
    "get_tax_policy",
    "load_tax_policies",
    "policy_from_settings",
]
