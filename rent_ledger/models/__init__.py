"""ORM models for the rent ledger."""

from rent_ledger.models.audit_event import LedgerAuditAction, LedgerAuditEvent
from rent_ledger.models.gateway_order import GatewayOrder, GatewayOrderStatus
from rent_ledger.models.payment_record import (
    MANUAL_PAYMENT_METHODS,
    PaymentMethod,
    PaymentRecord,
    PaymentStatus,
)

__all__ = [
    "GatewayOrder",
    "GatewayOrderStatus",
    "LedgerAuditAction",
    "LedgerAuditEvent",
    "MANUAL_PAYMENT_METHODS",
    "PaymentMethod",
    "PaymentRecord",
    "PaymentStatus",
]
