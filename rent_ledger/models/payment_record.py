"""
Module: rent_ledger.models.payment_record
Responsibility: ORM persistence for one tenant's rent obligation for one
    lease month.
Architecture position: Ledger > Models.  May import from db/ only.

Invariants enforced:
    - One record per (tenant_id, property_id, lease_month)
      (uq_payment_tenant_property_month).
    - lease_month, due_date, base_amount and the tenant/property/owner
      references never change after insert (ORM listener).
    - paid is terminal: once paid, no financial field changes (ORM listener).
    - external_transaction_id and external_signature are write-once.
    - version is the optimistic concurrency counter (version_id_col).

Failure modes:
    - ImmutabilityViolationError on a forbidden UPDATE/DELETE.
    - StaleDataError (mapped to OptimisticLockError by the service) when a
      concurrent transaction bumped version first.

Audit relevance:
    Settlement columns (payment_date, external_transaction_id,
    external_signature, payment_method) are the reconciliation evidence for
    every paid record.  The stored status holds only the persisted
    transition; overdue is derived on read by domain.late_fee.
"""

from datetime import date, datetime
from decimal import Decimal
from enum import Enum
from uuid import UUID

from sqlalchemy import Date, DateTime, Index, Integer, Numeric, String, Text, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column

from rent_ledger.db.base import TrackedBase, UUIDString


class PaymentStatus(str, Enum):
    """Payment record status.

    Only PENDING and PAID are ever stored.  OVERDUE is derived from the
    due date and the current date.  PARTIAL is reserved: no code path
    assigns it, and the immutability listener rejects it.
    """

    PENDING = "pending"
    OVERDUE = "overdue"
    PAID = "paid"
    PARTIAL = "partial"


class PaymentMethod(str, Enum):
    """How a record was settled."""

    GATEWAY = "gateway"
    CASH = "cash"
    BANK_TRANSFER = "bank_transfer"


MANUAL_PAYMENT_METHODS = frozenset({PaymentMethod.CASH, PaymentMethod.BANK_TRANSFER})


class PaymentRecord(TrackedBase):
    """
    A single monthly rent obligation.

    Contract:
        Created pending by schedule generation.  Becomes paid exactly once,
        either through gateway verification or manual settlement.  At
        settlement, late_fee is pinned to 0 and total_amount to base_amount.

    Non-goals:
        - Does NOT compute late fees or overdue status; see domain.late_fee.
    """

    __tablename__ = "rent_payment_records"

    __table_args__ = (
        UniqueConstraint(
            "tenant_id", "property_id", "lease_month",
            name="uq_payment_tenant_property_month",
        ),
        Index("idx_payment_tenant_status", "tenant_id", "status"),
        Index("idx_payment_owner_status", "owner_id", "status"),
        Index("idx_payment_due", "due_date", "status"),
        Index("idx_payment_order", "external_order_id"),
    )

    tenant_id: Mapped[UUID] = mapped_column(UUIDString(), nullable=False)
    property_id: Mapped[UUID] = mapped_column(UUIDString(), nullable=False)
    owner_id: Mapped[UUID] = mapped_column(UUIDString(), nullable=False)

    # First day of the month, UTC calendar date
    lease_month: Mapped[date] = mapped_column(Date, nullable=False)

    due_date: Mapped[date] = mapped_column(Date, nullable=False)

    # Monthly rent at generation time
    base_amount: Mapped[Decimal] = mapped_column(Numeric(38, 9), nullable=False)

    # Pinned values; live values come from domain.late_fee while unpaid
    late_fee: Mapped[Decimal] = mapped_column(
        Numeric(38, 9), nullable=False, default=Decimal("0")
    )
    total_amount: Mapped[Decimal] = mapped_column(Numeric(38, 9), nullable=False)

    status: Mapped[PaymentStatus] = mapped_column(
        String(20),
        nullable=False,
        default=PaymentStatus.PENDING,
    )

    payment_date: Mapped[datetime | None] = mapped_column(
        DateTime(timezone=True), nullable=True
    )

    external_order_id: Mapped[str | None] = mapped_column(String(100), nullable=True)
    external_transaction_id: Mapped[str | None] = mapped_column(String(100), nullable=True)
    external_signature: Mapped[str | None] = mapped_column(String(128), nullable=True)

    payment_method: Mapped[PaymentMethod | None] = mapped_column(String(20), nullable=True)

    notes: Mapped[str] = mapped_column(Text, nullable=False, default="")

    version: Mapped[int] = mapped_column(Integer, nullable=False)

    __mapper_args__ = {"version_id_col": version}

    def __repr__(self) -> str:
        return (
            f"<PaymentRecord {self.lease_month.isoformat()} "
            f"tenant={self.tenant_id} status={self.status}>"
        )

    @property
    def is_paid(self) -> bool:
        return self.status == PaymentStatus.PAID
