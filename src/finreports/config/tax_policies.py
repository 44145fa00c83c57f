"""Utilities for loading statutory tax policies from YAML files."""

from __future__ import annotations

from dataclasses import dataclass, replace
from decimal import Decimal
from functools import lru_cache
from pathlib import Path
from typing import Any

import yaml  # type: ignore[import-untyped]

from finreports.config.settings import get_settings

JURISDICTIONS_DIR = Path(__file__).resolve().parent / "jurisdictions"


@dataclass(frozen=True)
class TaxPolicy:
    """Statutory tax rates applied to aggregated figures."""

    jurisdiction: str
    name: str
    vat_rate: Decimal
    income_tax_rate: Decimal
    withholding_rate: Decimal

    @staticmethod
    def default() -> TaxPolicy:
        return TaxPolicy(
            jurisdiction="UG",
            name="Uganda",
            vat_rate=Decimal("0.18"),
            income_tax_rate=Decimal("0.30"),
            withholding_rate=Decimal("0.06"),
        )

    def with_overrides(
        self,
        vat_rate: float | Decimal | None = None,
        income_tax_rate: float | Decimal | None = None,
        withholding_rate: float | Decimal | None = None,
    ) -> TaxPolicy:
        """Return a copy with any non-None rate replaced."""
        changes: dict[str, Decimal] = {}
        if vat_rate is not None:
            changes["vat_rate"] = _rate(vat_rate, "vat_rate", "override")
        if income_tax_rate is not None:
            changes["income_tax_rate"] = _rate(income_tax_rate, "income_tax_rate", "override")
        if withholding_rate is not None:
            changes["withholding_rate"] = _rate(withholding_rate, "withholding_rate", "override")
        return replace(self, **changes) if changes else self


def _rate(value: Any, key: str, source: str) -> Decimal:
    try:
        rate = Decimal(str(value))
    except (ArithmeticError, ValueError) as exc:
        raise ValueError(f"{source}: invalid {key}: {value!r}") from exc
    if not rate.is_finite() or not (Decimal("0") <= rate <= Decimal("1")):
        raise ValueError(f"{source}: {key} must be between 0 and 1, got {value!r}")
    return rate


@lru_cache
def load_tax_policies() -> dict[str, TaxPolicy]:
    """Load tax policies from the bundled jurisdiction YAML files.

    Returns:
        Mapping of upper-cased jurisdiction code to policy.
    """
    if not JURISDICTIONS_DIR.exists():
        return {}

    policies: dict[str, TaxPolicy] = {}

    for path in sorted(JURISDICTIONS_DIR.glob("*.yaml")):
        raw = path.read_text(encoding="utf-8")
        data = yaml.safe_load(raw) or {}
        if not isinstance(data, dict):
            raise ValueError(f"{path.name}: root must be a mapping")

        code = data.get("code")
        if not isinstance(code, str) or not code.strip():
            raise ValueError(f"{path.name}: code is required")

        rates = data.get("rates")
        if not isinstance(rates, dict):
            raise ValueError(f"{path.name}: rates must be a mapping")

        for key in ("vat", "income_tax", "withholding"):
            if key not in rates:
                raise ValueError(f"{path.name}: rates.{key} is required")

        code = code.strip().upper()
        policies[code] = TaxPolicy(
            jurisdiction=code,
            name=str(data.get("name") or code),
            vat_rate=_rate(rates["vat"], "rates.vat", path.name),
            income_tax_rate=_rate(rates["income_tax"], "rates.income_tax", path.name),
            withholding_rate=_rate(rates["withholding"], "rates.withholding", path.name),
        )

    return policies


def get_tax_policy(jurisdiction: str) -> TaxPolicy:
    """Look up the policy for a jurisdiction code (case-insensitive)."""
    policies = load_tax_policies()
    code = jurisdiction.strip().upper()
    if code not in policies:
        known = ", ".join(sorted(policies)) or "none"
        raise ValueError(f"Unknown tax jurisdiction {jurisdiction!r} (known: {known})")
    return policies[code]


def policy_from_settings() -> TaxPolicy:
    """Build the active TaxPolicy from settings, applying rate overrides."""
    settings = get_settings()
    return get_tax_policy(settings.tax_jurisdiction).with_overrides(
        vat_rate=settings.vat_rate,
        income_tax_rate=settings.income_tax_rate,
        withholding_rate=settings.withholding_tax_rate,
    )
