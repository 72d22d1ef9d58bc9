"""
Summary aggregation over payment record views.

Pure read-side rollups used by the tenant and owner dashboards.  Every
figure is computed from PaymentRecordView values, so derived status and live
late fees are already applied; no stored aggregate exists anywhere.
"""

from __future__ import annotations

from dataclasses import dataclass
from decimal import Decimal
from typing import Any, Iterable
from uuid import UUID

from rent_ledger.db.types import round_money
from rent_ledger.domain.views import PaymentRecordView

ZERO = Decimal("0.00")


def _money(value: Decimal) -> str:
    return f"{value:.2f}"


@dataclass(frozen=True)
class LedgerSummary:
    """
    Counts and sums by derived status.

    total_amount sums base rent over all records; total_paid and
    total_pending split it by paid/unpaid.  total_late_fees is the live late
    fee across unpaid records.  The severe bucket holds unpaid records more
    than ``severe_overdue_days`` past due, valued at base + late fee.
    """

    total_count: int = 0
    paid_count: int = 0
    pending_count: int = 0
    overdue_count: int = 0
    total_amount: Decimal = ZERO
    total_paid: Decimal = ZERO
    total_pending: Decimal = ZERO
    total_late_fees: Decimal = ZERO
    severe_overdue_count: int = 0
    severe_overdue_amount: Decimal = ZERO

    def to_dict(self) -> dict[str, Any]:
        return {
            "totalPayments": self.total_count,
            "paidPayments": self.paid_count,
            "pendingPayments": self.pending_count,
            "overduePayments": self.overdue_count,
            "totalAmount": _money(self.total_amount),
            "totalPaid": _money(self.total_paid),
            "totalPending": _money(self.total_pending),
            "totalLateFees": _money(self.total_late_fees),
            "overdueMonths": self.severe_overdue_count,
            "overdueAmount": _money(self.severe_overdue_amount),
        }


def summarize(
    records: Iterable[PaymentRecordView],
    severe_overdue_days: int = 60,
) -> LedgerSummary:
    counts = {"paid": 0, "pending": 0, "overdue": 0}
    total = paid = pending = late_fees = severe_amount = ZERO
    severe_count = 0
    n = 0

    for record in records:
        n += 1
        counts[record.status] += 1
        total += record.base_amount
        if record.is_paid:
            paid += record.base_amount
            continue
        pending += record.base_amount
        late_fees += record.late_fee
        if record.days_overdue > severe_overdue_days:
            severe_count += 1
            severe_amount += record.base_amount + record.late_fee

    return LedgerSummary(
        total_count=n,
        paid_count=counts["paid"],
        pending_count=counts["pending"],
        overdue_count=counts["overdue"],
        total_amount=round_money(total),
        total_paid=round_money(paid),
        total_pending=round_money(pending),
        total_late_fees=round_money(late_fees),
        severe_overdue_count=severe_count,
        severe_overdue_amount=round_money(severe_amount),
    )


@dataclass(frozen=True)
class TenantBreakdown:
    """One (tenant, property) slice of an owner's ledger."""

    tenant_id: UUID
    property_id: UUID
    total_rent: Decimal
    total_paid: Decimal
    total_pending: Decimal
    total_overdue: Decimal
    late_fees: Decimal
    records: tuple[PaymentRecordView, ...]

    def to_dict(self) -> dict[str, Any]:
        return {
            "tenantId": str(self.tenant_id),
            "propertyId": str(self.property_id),
            "totalRent": _money(self.total_rent),
            "totalPaid": _money(self.total_paid),
            "totalPending": _money(self.total_pending),
            "totalOverdue": _money(self.total_overdue),
            "lateFees": _money(self.late_fees),
            "payments": [r.to_dict() for r in self.records],
        }


def breakdown_by_tenant(records: Iterable[PaymentRecordView]) -> tuple[TenantBreakdown, ...]:
    """Group views per (tenant, property), preserving first-seen order."""
    groups: dict[tuple[UUID, UUID], list[PaymentRecordView]] = {}
    for record in records:
        groups.setdefault((record.tenant_id, record.property_id), []).append(record)

    result = []
    for (tenant_id, property_id), group in groups.items():
        unpaid = [r for r in group if not r.is_paid]
        result.append(
            TenantBreakdown(
                tenant_id=tenant_id,
                property_id=property_id,
                total_rent=round_money(sum((r.base_amount for r in group), ZERO)),
                total_paid=round_money(sum((r.base_amount for r in group if r.is_paid), ZERO)),
                total_pending=round_money(sum((r.base_amount for r in unpaid), ZERO)),
                total_overdue=round_money(
                    sum((r.base_amount for r in unpaid if r.status == "overdue"), ZERO)
                ),
                late_fees=round_money(sum((r.late_fee for r in unpaid), ZERO)),
                records=tuple(group),
            )
        )
    return tuple(result)
