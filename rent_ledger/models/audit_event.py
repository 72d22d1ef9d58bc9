"""
Module: rent_ledger.models.audit_event
Responsibility: ORM persistence for the tamper-evident ledger audit hash chain.
Architecture position: Ledger > Models.  May import from db/base.py only.

Invariants enforced:
    - Audit records are append-only; no UPDATE or DELETE (ORM listener).
    - Hash chain integrity: hash = H(entity_type | entity_id | action |
      payload_hash | prev_hash).  Validated by LedgerAuditService.
    - seq is monotonically increasing, allocated by SequenceService.

Failure modes:
    - ImmutabilityViolationError on any UPDATE/DELETE attempt.
    - AuditChainBrokenError when chain validation detects a hash mismatch.
"""

from datetime import datetime
from enum import Enum
from uuid import UUID

from sqlalchemy import JSON, BigInteger, DateTime, Index, String
from sqlalchemy.orm import Mapped, mapped_column

from rent_ledger.db.base import Base, UUIDString


class LedgerAuditAction(str, Enum):
    """Types of auditable ledger actions."""

    SCHEDULE_GENERATED = "schedule_generated"
    ORDER_CREATED = "order_created"
    ORDER_SUPERSEDED = "order_superseded"
    PAYMENT_VERIFIED = "payment_verified"
    PAYMENT_SETTLED_MANUALLY = "payment_settled_manually"
    SIGNATURE_REJECTED = "signature_rejected"


class LedgerAuditEvent(Base):
    """
    Audit event with hash chain for tamper evidence.

    Guarantees:
        - seq is unique and monotonically increasing.
        - prev_hash is None only for the genesis event.

    Non-goals:
        - Does NOT enforce hash correctness at INSERT time; that is the
          responsibility of LedgerAuditService.
    """

    __tablename__ = "rent_ledger_audit_events"

    __table_args__ = (
        Index("idx_ledger_audit_entity", "entity_type", "entity_id"),
        Index("idx_ledger_audit_action", "action"),
        Index("idx_ledger_audit_seq", "seq"),
    )

    seq: Mapped[int] = mapped_column(BigInteger, nullable=False, unique=True)

    # "PaymentRecord", "GatewayOrder", "PaymentSchedule"
    entity_type: Mapped[str] = mapped_column(String(50), nullable=False)

    # Record/schedule UUIDs, or the external order id for GatewayOrder
    entity_id: Mapped[str] = mapped_column(String(100), nullable=False)

    action: Mapped[LedgerAuditAction] = mapped_column(String(50), nullable=False)

    # None for gateway callbacks, which carry no authenticated actor
    actor_id: Mapped[UUID | None] = mapped_column(UUIDString(), nullable=True)

    occurred_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False
    )

    payload: Mapped[dict | None] = mapped_column(JSON, nullable=True)

    payload_hash: Mapped[str] = mapped_column(String(64), nullable=False)

    prev_hash: Mapped[str | None] = mapped_column(String(64), nullable=True)

    hash: Mapped[str] = mapped_column(String(64), nullable=False)

    def __repr__(self) -> str:
        return f"<LedgerAuditEvent {self.seq} {self.action} on {self.entity_type}:{self.entity_id}>"

    @property
    def is_genesis(self) -> bool:
        return self.prev_hash is None
