"""
Module: rent_ledger.models.gateway_order
Responsibility: ORM persistence for an external payment-gateway order and its
    lifecycle (created -> paid, or created -> superseded).
Architecture position: Ledger > Models.  May import from db/ only.

Invariants enforced:
    - external_order_id is unique (uq_gateway_order_id).
    - A superseded order never becomes paid; a paid order is terminal.
    - amount is the sum of the stamped records' totals at order time, and
      amount_minor is exactly what was sent to the gateway.

Audit relevance:
    Makes the window between order creation and verification explicit.  When
    a tenant starts a second order over records already carrying an
    outstanding order, the first is marked superseded here and in the audit
    trail instead of being silently overwritten.
"""

from datetime import datetime
from decimal import Decimal
from enum import Enum
from uuid import UUID

from sqlalchemy import BigInteger, DateTime, Index, Integer, Numeric, String, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column

from rent_ledger.db.base import TrackedBase, UUIDString


class GatewayOrderStatus(str, Enum):
    """Lifecycle status of a gateway order."""

    CREATED = "created"
    PAID = "paid"
    SUPERSEDED = "superseded"


class GatewayOrder(TrackedBase):
    """
    A gateway order covering one or more payment records.

    Guarantees:
        - status transitions only created -> paid or created -> superseded.
        - superseded_by names the order that replaced this one.
    """

    __tablename__ = "rent_gateway_orders"

    __table_args__ = (
        UniqueConstraint("external_order_id", name="uq_gateway_order_id"),
        Index("idx_gateway_order_tenant_status", "tenant_id", "status"),
    )

    external_order_id: Mapped[str] = mapped_column(String(100), nullable=False)

    tenant_id: Mapped[UUID] = mapped_column(UUIDString(), nullable=False)

    amount: Mapped[Decimal] = mapped_column(Numeric(38, 9), nullable=False)
    amount_minor: Mapped[int] = mapped_column(BigInteger, nullable=False)
    currency: Mapped[str] = mapped_column(String(3), nullable=False)

    receipt_ref: Mapped[str] = mapped_column(String(100), nullable=False)

    record_count: Mapped[int] = mapped_column(Integer, nullable=False)

    status: Mapped[GatewayOrderStatus] = mapped_column(
        String(20),
        nullable=False,
        default=GatewayOrderStatus.CREATED,
    )

    superseded_by: Mapped[str | None] = mapped_column(String(100), nullable=True)

    external_transaction_id: Mapped[str | None] = mapped_column(String(100), nullable=True)

    settled_at: Mapped[datetime | None] = mapped_column(
        DateTime(timezone=True), nullable=True
    )

    def __repr__(self) -> str:
        return f"<GatewayOrder {self.external_order_id} status={self.status}>"

    @property
    def is_outstanding(self) -> bool:
        return self.status == GatewayOrderStatus.CREATED
