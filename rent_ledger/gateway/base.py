"""
Payment gateway contract.

Responsibility:
    Defines what the ledger needs from an external payment gateway: create
    an order for an amount in minor units, and verify signed payment
    confirmations and webhook deliveries.  The ledger depends only on this
    interface.

Architecture position:
    Ledger > Gateway -- adapter boundary.  Concrete adapters live beside this
    module (http_gateway.py).  UnavailableGateway is the null object used when
    no credentials are configured, so callers branch on ``is_available``
    instead of catching configuration errors.

Failure modes:
    - GatewayUnavailableError: not configured, unreachable, or timed out.
    - GatewayError: the gateway rejected the request.
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import Any

from rent_ledger.exceptions import GatewayUnavailableError


@dataclass(frozen=True)
class GatewayOrderResult:
    """An order as acknowledged by the gateway."""

    order_id: str
    amount_minor: int
    currency: str
    receipt: str | None = None
    raw: dict[str, Any] = field(default_factory=dict, compare=False, repr=False)


class PaymentGateway(ABC):
    """
    Abstract payment gateway.

    Contract:
        ``create_order`` either returns a GatewayOrderResult whose
        amount_minor and currency echo the request, or raises.  It never
        touches the ledger database.
    """

    @property
    def is_available(self) -> bool:
        return True

    @abstractmethod
    def create_order(
        self,
        amount_minor: int,
        currency: str,
        receipt_ref: str,
        notes: dict[str, str] | None = None,
    ) -> GatewayOrderResult:
        """Open an order for ``amount_minor`` units of ``currency``."""
        ...

    @abstractmethod
    def verify_signature(self, order_id: str, transaction_id: str, signature: str) -> bool:
        """True iff ``signature`` authenticates the (order, transaction) pair."""
        ...

    @abstractmethod
    def verify_webhook(self, body: bytes, signature: str) -> bool:
        """True iff ``signature`` authenticates the raw webhook ``body``."""
        ...


class UnavailableGateway(PaymentGateway):
    """Null gateway for deployments without payment credentials."""

    reason = "Payment gateway is not configured"

    @property
    def is_available(self) -> bool:
        return False

    def create_order(self, amount_minor, currency, receipt_ref, notes=None):
        raise GatewayUnavailableError(self.reason)

    def verify_signature(self, order_id, transaction_id, signature):
        raise GatewayUnavailableError(self.reason)

    def verify_webhook(self, body, signature):
        raise GatewayUnavailableError(self.reason)
