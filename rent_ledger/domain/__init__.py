"""Pure domain core of the rent ledger: schedules, late fees, views, summaries."""

from rent_ledger.domain.actors import Actor, ActorRole
from rent_ledger.domain.clock import Clock, DeterministicClock, SystemClock
from rent_ledger.domain.late_fee import (
    LateFeePolicy,
    compute_late_fee,
    compute_total_amount,
    days_overdue,
    derive_status,
)
from rent_ledger.domain.schedule import ScheduledPayment, build_schedule
from rent_ledger.domain.signature import (
    sign_payment,
    sign_webhook,
    verify_signature,
    verify_webhook_signature,
)
from rent_ledger.domain.summary import LedgerSummary, TenantBreakdown
from rent_ledger.domain.views import (
    OrderLine,
    OrderQuote,
    OwnerLedgerView,
    PaymentRecordView,
    TenantLedgerView,
)

__all__ = [
    "Actor",
    "ActorRole",
    "Clock",
    "DeterministicClock",
    "LateFeePolicy",
    "LedgerSummary",
    "OrderLine",
    "OrderQuote",
    "OwnerLedgerView",
    "PaymentRecordView",
    "ScheduledPayment",
    "SystemClock",
    "TenantBreakdown",
    "TenantLedgerView",
    "build_schedule",
    "compute_late_fee",
    "compute_total_amount",
    "days_overdue",
    "derive_status",
    "sign_payment",
    "sign_webhook",
    "verify_signature",
    "verify_webhook_signature",
]
