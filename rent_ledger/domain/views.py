"""
Views -- immutable read DTOs returned by the ledger.

Responsibility:
    PaymentRecordView is the only shape in which payment records leave the
    ledger.  Every view carries the status, late fee, total and days overdue
    derived for a specific ``today``, never the stored placeholders.

Architecture position:
    Ledger > Domain.  ``from_model`` is a boundary converter invoked only from
    selectors and services; domain logic never sees ORM entities.

Wire shape:
    ``to_dict()`` renders the dashboard payload with camelCase keys.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date, datetime
from decimal import Decimal
from typing import TYPE_CHECKING, Any
from uuid import UUID

from rent_ledger.db.types import round_money
from rent_ledger.domain.late_fee import DEFAULT_POLICY, LateFeePolicy, evaluate

if TYPE_CHECKING:
    from rent_ledger.domain.summary import LedgerSummary, TenantBreakdown
    from rent_ledger.models.payment_record import PaymentRecord


def _money(value: Decimal) -> str:
    return f"{value:.2f}"


def _enum_value(value: Any) -> Any:
    return getattr(value, "value", value)


# English month names independent of the process locale
MONTH_NAMES = (
    "January", "February", "March", "April", "May", "June",
    "July", "August", "September", "October", "November", "December",
)


def format_lease_month(day: date) -> str:
    """e.g. "January 2024"."""
    return f"{MONTH_NAMES[day.month - 1]} {day.year}"


def format_due_date(day: date) -> str:
    """e.g. "Jan 6, 2024"."""
    return f"{MONTH_NAMES[day.month - 1][:3]} {day.day}, {day.year}"


@dataclass(frozen=True)
class PaymentRecordView:
    """A payment record as of one calendar date."""

    id: UUID
    tenant_id: UUID
    property_id: UUID
    owner_id: UUID
    lease_month: date
    due_date: date
    base_amount: Decimal
    late_fee: Decimal
    total_amount: Decimal
    status: str
    days_overdue: int
    payment_date: datetime | None = None
    payment_method: str | None = None
    external_order_id: str | None = None
    external_transaction_id: str | None = None
    notes: str = ""
    version: int = 1

    @classmethod
    def from_model(
        cls,
        record: PaymentRecord,
        today: date,
        policy: LateFeePolicy = DEFAULT_POLICY,
    ) -> PaymentRecordView:
        figures = evaluate(record, today, policy)
        return cls(
            id=record.id,
            tenant_id=record.tenant_id,
            property_id=record.property_id,
            owner_id=record.owner_id,
            lease_month=record.lease_month,
            due_date=record.due_date,
            base_amount=round_money(record.base_amount),
            late_fee=figures.late_fee,
            total_amount=figures.total_amount,
            status=figures.status,
            days_overdue=figures.days_overdue,
            payment_date=record.payment_date,
            payment_method=_enum_value(record.payment_method),
            external_order_id=record.external_order_id,
            external_transaction_id=record.external_transaction_id,
            notes=record.notes or "",
            version=record.version,
        )

    @property
    def is_paid(self) -> bool:
        return self.status == "paid"

    @property
    def formatted_lease_month(self) -> str:
        return format_lease_month(self.lease_month)

    @property
    def formatted_due_date(self) -> str:
        return format_due_date(self.due_date)

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": str(self.id),
            "tenantId": str(self.tenant_id),
            "propertyId": str(self.property_id),
            "ownerId": str(self.owner_id),
            "leaseMonth": self.lease_month.isoformat(),
            "dueDate": self.due_date.isoformat(),
            "amount": _money(self.base_amount),
            "lateFees": _money(self.late_fee),
            "totalAmount": _money(self.total_amount),
            "status": self.status,
            "daysOverdue": self.days_overdue,
            "paymentDate": self.payment_date.isoformat() if self.payment_date else None,
            "paymentMethod": self.payment_method,
            "externalOrderId": self.external_order_id,
            "externalTransactionId": self.external_transaction_id,
            "notes": self.notes,
            "formattedLeaseMonth": self.formatted_lease_month,
            "formattedDueDate": self.formatted_due_date,
        }


@dataclass(frozen=True)
class OrderLine:
    """One record's contribution to a gateway order."""

    record_id: UUID
    lease_month: date
    base_amount: Decimal
    late_fee: Decimal
    total_amount: Decimal


@dataclass(frozen=True)
class OrderQuote:
    """What create_order hands back to the client to open the checkout."""

    order_id: str
    amount: Decimal
    amount_minor: int
    currency: str
    receipt_ref: str
    lines: tuple[OrderLine, ...]
    superseded_order_ids: tuple[str, ...] = ()

    @property
    def record_ids(self) -> tuple[UUID, ...]:
        return tuple(line.record_id for line in self.lines)

    def to_dict(self) -> dict[str, Any]:
        return {
            "orderId": self.order_id,
            "amount": _money(self.amount),
            "amountMinor": self.amount_minor,
            "currency": self.currency,
            "receipt": self.receipt_ref,
            "payments": [
                {
                    "id": str(line.record_id),
                    "leaseMonth": line.lease_month.isoformat(),
                    "amount": _money(line.base_amount),
                    "lateFees": _money(line.late_fee),
                    "totalAmount": _money(line.total_amount),
                }
                for line in self.lines
            ],
        }


@dataclass(frozen=True)
class TenantLedgerView:
    tenant_id: UUID
    as_of: date
    records: tuple[PaymentRecordView, ...]
    summary: LedgerSummary

    def to_dict(self) -> dict[str, Any]:
        return {
            "payments": [r.to_dict() for r in self.records],
            "summary": self.summary.to_dict(),
        }


@dataclass(frozen=True)
class OwnerLedgerView:
    owner_id: UUID
    as_of: date
    records: tuple[PaymentRecordView, ...]
    summary: LedgerSummary
    tenants: tuple[TenantBreakdown, ...] = field(default_factory=tuple)

    def to_dict(self) -> dict[str, Any]:
        return {
            "payments": [r.to_dict() for r in self.records],
            "summary": self.summary.to_dict(),
            "tenantPayments": [t.to_dict() for t in self.tenants],
        }
