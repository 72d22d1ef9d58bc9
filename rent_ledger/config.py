"""
Rent Ledger Configuration.

Defines the ledger policy settings (grace period, late-fee rate and period,
severe-overdue threshold, currency) and the payment-gateway connection
settings.  Policy values load from a YAML file; gateway credentials load
from the environment and are never written to YAML.

Failure modes:
    - ValueError on invalid values (raised from __post_init__).
    - ValueError on unknown YAML keys.
    - FileNotFoundError / yaml.YAMLError propagate from from_yaml.
"""

from __future__ import annotations

import os
from dataclasses import dataclass, fields
from decimal import Decimal, InvalidOperation
from pathlib import Path
from typing import TYPE_CHECKING, Any

import yaml

from rent_ledger.domain.late_fee import LateFeePolicy
from rent_ledger.logging_config import get_logger

if TYPE_CHECKING:
    from rent_ledger.gateway.base import PaymentGateway

logger = get_logger("config")


@dataclass(frozen=True)
class LedgerConfig:
    """
    Ledger policy settings.

    Field defaults match the platform's published rent terms:

        config = LedgerConfig(grace_days=7)
        config = LedgerConfig.from_yaml("ledger.yaml")
    """

    # Days after the first of the month before rent is due
    grace_days: int = 5

    # Late fee = base * late_fee_rate * ceil(days_overdue / late_fee_period_days)
    late_fee_rate: Decimal = Decimal("0.05")
    late_fee_period_days: int = 30

    # Unpaid records more than this many days past due are "severely overdue"
    severe_overdue_days: int = 60

    currency: str = "INR"
    receipt_prefix: str = "rent"

    def __post_init__(self):
        if not isinstance(self.late_fee_rate, Decimal):
            object.__setattr__(self, "late_fee_rate", _to_decimal(self.late_fee_rate))

        if self.grace_days < 0:
            raise ValueError("grace_days cannot be negative")
        if self.grace_days > 27:
            raise ValueError("grace_days must fall inside the lease month (max 27)")
        if self.late_fee_rate < 0:
            raise ValueError("late_fee_rate cannot be negative")
        if self.late_fee_rate > 1:
            raise ValueError("late_fee_rate cannot exceed 1 (100% per period)")
        if self.late_fee_period_days <= 0:
            raise ValueError("late_fee_period_days must be positive")
        if self.severe_overdue_days < 0:
            raise ValueError("severe_overdue_days cannot be negative")
        if len(self.currency) != 3 or not self.currency.isalpha() or not self.currency.isupper():
            raise ValueError(f"currency must be an ISO 4217 code, got '{self.currency}'")
        if not self.receipt_prefix or not self.receipt_prefix.strip():
            raise ValueError("receipt_prefix cannot be empty")

        logger.info(
            "ledger_config_initialized",
            extra={
                "grace_days": self.grace_days,
                "late_fee_rate": str(self.late_fee_rate),
                "late_fee_period_days": self.late_fee_period_days,
                "severe_overdue_days": self.severe_overdue_days,
                "currency": self.currency,
            },
        )

    def late_fee_policy(self) -> LateFeePolicy:
        return LateFeePolicy(rate=self.late_fee_rate, period_days=self.late_fee_period_days)

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> LedgerConfig:
        """Build from a mapping; unknown keys are an error."""
        known = {f.name for f in fields(cls)}
        unknown = sorted(set(data) - known)
        if unknown:
            raise ValueError(f"Unknown ledger config keys: {', '.join(unknown)}")
        return cls(**data)

    @classmethod
    def from_yaml(cls, path: str | Path) -> LedgerConfig:
        """
        Load overrides from a YAML file.

        The file may hold the settings at top level or under a ``ledger:``
        key.  An empty file yields the defaults.
        """
        with open(path) as f:
            data = yaml.safe_load(f) or {}
        if not isinstance(data, dict):
            raise ValueError(f"{path}: expected a mapping, got {type(data).__name__}")
        if "ledger" in data:
            data = data["ledger"] or {}
        logger.debug("ledger_config_loaded", extra={"path": str(path), "keys": sorted(data)})
        return cls.from_dict(data)


def _to_decimal(value: Any) -> Decimal:
    try:
        return Decimal(str(value))
    except InvalidOperation as exc:
        raise ValueError(f"late_fee_rate must be numeric, got {value!r}") from exc


GATEWAY_KEY_ID_ENV = "RENT_LEDGER_GATEWAY_KEY_ID"
GATEWAY_KEY_SECRET_ENV = "RENT_LEDGER_GATEWAY_KEY_SECRET"
GATEWAY_BASE_URL_ENV = "RENT_LEDGER_GATEWAY_BASE_URL"
GATEWAY_TIMEOUT_ENV = "RENT_LEDGER_GATEWAY_TIMEOUT"
GATEWAY_WEBHOOK_SECRET_ENV = "RENT_LEDGER_GATEWAY_WEBHOOK_SECRET"

DEFAULT_GATEWAY_BASE_URL = "https://api.razorpay.com"
DEFAULT_GATEWAY_TIMEOUT = 10.0


@dataclass(frozen=True)
class GatewaySettings:
    """Payment gateway connection settings."""

    key_id: str | None = None
    key_secret: str | None = None
    base_url: str = DEFAULT_GATEWAY_BASE_URL
    timeout_seconds: float = DEFAULT_GATEWAY_TIMEOUT
    webhook_secret: str | None = None

    def __post_init__(self):
        if self.timeout_seconds <= 0:
            raise ValueError("timeout_seconds must be positive")

    @property
    def is_configured(self) -> bool:
        return bool(self.key_id and self.key_secret)

    @classmethod
    def from_env(cls, environ: dict[str, str] | None = None) -> GatewaySettings:
        env = os.environ if environ is None else environ
        timeout = env.get(GATEWAY_TIMEOUT_ENV)
        try:
            timeout_seconds = float(timeout) if timeout else DEFAULT_GATEWAY_TIMEOUT
        except ValueError as exc:
            raise ValueError(f"{GATEWAY_TIMEOUT_ENV} must be a number, got {timeout!r}") from exc
        return cls(
            key_id=env.get(GATEWAY_KEY_ID_ENV) or None,
            key_secret=env.get(GATEWAY_KEY_SECRET_ENV) or None,
            base_url=env.get(GATEWAY_BASE_URL_ENV) or DEFAULT_GATEWAY_BASE_URL,
            timeout_seconds=timeout_seconds,
            webhook_secret=env.get(GATEWAY_WEBHOOK_SECRET_ENV) or None,
        )

    def __repr__(self) -> str:
        return (
            f"GatewaySettings(key_id={self.key_id!r}, key_secret={'***' if self.key_secret else None}, "
            f"base_url={self.base_url!r}, timeout_seconds={self.timeout_seconds}, "
            f"webhook_secret={'***' if self.webhook_secret else None})"
        )


def build_gateway(settings: GatewaySettings | None = None) -> PaymentGateway:
    """HttpPaymentGateway when credentials are present, UnavailableGateway otherwise."""
    from rent_ledger.gateway.base import UnavailableGateway
    from rent_ledger.gateway.http_gateway import HttpPaymentGateway

    settings = settings or GatewaySettings.from_env()
    if not settings.is_configured:
        logger.warning(
            "gateway_not_configured",
            extra={"missing": [
                name for name, value in (
                    (GATEWAY_KEY_ID_ENV, settings.key_id),
                    (GATEWAY_KEY_SECRET_ENV, settings.key_secret),
                ) if not value
            ]},
        )
        return UnavailableGateway()
    return HttpPaymentGateway(
        key_id=settings.key_id,
        key_secret=settings.key_secret,
        base_url=settings.base_url,
        timeout_seconds=settings.timeout_seconds,
        webhook_secret=settings.webhook_secret,
    )
