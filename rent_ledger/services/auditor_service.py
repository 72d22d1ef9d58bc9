"""
LedgerAuditService -- tamper-evident audit trail for the rent ledger.

Responsibility:
    Creates immutable, hash-chained audit events for every ledger state
    change (schedule generated, order created or superseded, payment
    verified or settled manually) and for rejected payment signatures.
    Provides chain validation and per-entity traces for reconciliation.

Architecture position:
    Ledger > Services -- imperative shell, called by RentLedgerService.

Invariants enforced:
    - Sequence monotonicity via SequenceService (never max+1).
    - Chain integrity: ``hash = H(entity_type | entity_id | action |
      payload_hash | prev_hash)``.  Every event links to its predecessor.
    - Append-only: LedgerAuditEvent rows are protected by ORM listeners.

Failure modes:
    - AuditChainBrokenError: recomputed hash does not match the stored hash,
      or prev_hash does not match the predecessor's hash.
"""

from dataclasses import dataclass
from datetime import date, datetime
from decimal import Decimal
from typing import Any, Iterable
from uuid import UUID

from sqlalchemy import select

from rent_ledger.domain.clock import Clock, SystemClock
from rent_ledger.exceptions import AuditChainBrokenError
from rent_ledger.logging_config import get_logger
from rent_ledger.models.audit_event import LedgerAuditAction, LedgerAuditEvent
from rent_ledger.services.base import BaseService
from rent_ledger.services.sequence_service import SequenceService
from rent_ledger.utils.hashing import hash_audit_event, hash_payload, to_json_safe

logger = get_logger("services.auditor")

SCHEDULE_ENTITY = "PaymentSchedule"
RECORD_ENTITY = "PaymentRecord"
ORDER_ENTITY = "GatewayOrder"


def schedule_entity_id(tenant_id: UUID, property_id: UUID) -> str:
    return f"{tenant_id}/{property_id}"


@dataclass(frozen=True)
class AuditTraceEntry:
    """A single entry in an audit trace."""

    seq: int
    action: str
    occurred_at: datetime
    actor_id: UUID | None
    payload: dict[str, Any]
    hash: str


@dataclass(frozen=True)
class AuditTrace:
    """All audit events for one entity, in sequence order."""

    entity_type: str
    entity_id: str
    entries: tuple[AuditTraceEntry, ...]

    @property
    def is_empty(self) -> bool:
        return len(self.entries) == 0

    @property
    def actions(self) -> tuple[str, ...]:
        return tuple(entry.action for entry in self.entries)

    @property
    def last_action(self) -> str | None:
        return self.entries[-1].action if self.entries else None


class LedgerAuditService(BaseService[LedgerAuditEvent]):
    """
    Service for creating and validating ledger audit events.

    Non-goals:
        - Does NOT call ``session.commit()`` -- caller controls boundaries.
    """

    def __init__(self, session, clock: Clock | None = None):
        super().__init__(session)
        self._clock = clock or SystemClock()
        self._sequence_service = SequenceService(session)

    def _get_last_hash(self) -> str | None:
        return self.session.execute(
            select(LedgerAuditEvent.hash)
            .order_by(LedgerAuditEvent.seq.desc())
            .limit(1)
        ).scalar_one_or_none()

    def _create_audit_event(
        self,
        entity_type: str,
        entity_id: str,
        action: LedgerAuditAction,
        actor_id: UUID | None,
        payload: dict[str, Any] | None = None,
    ) -> LedgerAuditEvent:
        """
        Create a new audit event with hash chain linkage.

        Postconditions:
            - A new LedgerAuditEvent row is flushed with the next seq and
              ``hash == H(entity_type, entity_id, action, payload_hash, prev_hash)``.
        """
        seq = self._sequence_service.next_value(SequenceService.AUDIT_EVENT)
        prev_hash = self._get_last_hash()

        payload_data = to_json_safe(payload or {})
        computed_payload_hash = hash_payload(payload_data)

        event_hash = hash_audit_event(
            entity_type=entity_type,
            entity_id=str(entity_id),
            action=action.value,
            payload_hash=computed_payload_hash,
            prev_hash=prev_hash,
        )

        audit_event = LedgerAuditEvent(
            seq=seq,
            entity_type=entity_type,
            entity_id=str(entity_id),
            action=action.value,
            actor_id=actor_id,
            occurred_at=self._clock.now(),
            payload=payload_data,
            payload_hash=computed_payload_hash,
            prev_hash=prev_hash,
            hash=event_hash,
        )

        self.session.add(audit_event)
        self.session.flush()

        logger.info(
            "audit_event_created",
            extra={
                "entity_type": entity_type,
                "entity_id": str(entity_id),
                "action": action.value,
                "seq": seq,
            },
        )

        return audit_event

    # Domain-specific recording methods

    def record_schedule_generated(
        self,
        tenant_id: UUID,
        property_id: UUID,
        owner_id: UUID,
        record_ids: Iterable[UUID],
        first_month: date,
        last_month: date,
        monthly_rent: Decimal,
        actor_id: UUID,
    ) -> LedgerAuditEvent:
        ids = [str(r) for r in record_ids]
        return self._create_audit_event(
            entity_type=SCHEDULE_ENTITY,
            entity_id=schedule_entity_id(tenant_id, property_id),
            action=LedgerAuditAction.SCHEDULE_GENERATED,
            actor_id=actor_id,
            payload={
                "owner_id": owner_id,
                "record_count": len(ids),
                "record_ids": ids,
                "first_month": first_month,
                "last_month": last_month,
                "monthly_rent": f"{monthly_rent:.2f}",
            },
        )

    def record_order_created(
        self,
        order_id: str,
        tenant_id: UUID,
        amount: Decimal,
        amount_minor: int,
        currency: str,
        record_ids: Iterable[UUID],
        actor_id: UUID,
    ) -> LedgerAuditEvent:
        return self._create_audit_event(
            entity_type=ORDER_ENTITY,
            entity_id=order_id,
            action=LedgerAuditAction.ORDER_CREATED,
            actor_id=actor_id,
            payload={
                "tenant_id": tenant_id,
                "amount": f"{amount:.2f}",
                "amount_minor": amount_minor,
                "currency": currency,
                "record_ids": [str(r) for r in record_ids],
            },
        )

    def record_order_superseded(
        self,
        order_id: str,
        superseded_by: str | None,
        cleared_record_ids: Iterable[UUID],
        actor_id: UUID,
    ) -> LedgerAuditEvent:
        """
        The order was retired before verification and its stamps cleared.

        ``superseded_by`` is the replacing order, or None when a record in it
        was settled manually.
        """
        return self._create_audit_event(
            entity_type=ORDER_ENTITY,
            entity_id=order_id,
            action=LedgerAuditAction.ORDER_SUPERSEDED,
            actor_id=actor_id,
            payload={
                "superseded_by": superseded_by,
                "cleared_record_ids": [str(r) for r in cleared_record_ids],
            },
        )

    def record_payment_verified(
        self,
        order_id: str,
        transaction_id: str,
        record_ids: Iterable[UUID],
        amount: Decimal,
    ) -> LedgerAuditEvent:
        """Gateway confirmations carry no authenticated actor."""
        return self._create_audit_event(
            entity_type=ORDER_ENTITY,
            entity_id=order_id,
            action=LedgerAuditAction.PAYMENT_VERIFIED,
            actor_id=None,
            payload={
                "transaction_id": transaction_id,
                "record_ids": [str(r) for r in record_ids],
                "amount": f"{amount:.2f}",
            },
        )

    def record_manual_settlement(
        self,
        record_id: UUID,
        method: str,
        note: str,
        amount: Decimal,
        actor_id: UUID,
    ) -> LedgerAuditEvent:
        return self._create_audit_event(
            entity_type=RECORD_ENTITY,
            entity_id=str(record_id),
            action=LedgerAuditAction.PAYMENT_SETTLED_MANUALLY,
            actor_id=actor_id,
            payload={"method": method, "note": note, "amount": f"{amount:.2f}"},
        )

    def record_signature_rejected(
        self,
        order_id: str,
        transaction_id: str,
    ) -> LedgerAuditEvent:
        return self._create_audit_event(
            entity_type=ORDER_ENTITY,
            entity_id=order_id,
            action=LedgerAuditAction.SIGNATURE_REJECTED,
            actor_id=None,
            payload={"transaction_id": transaction_id},
        )

    # Chain validation

    def validate_chain(self) -> bool:
        """
        Validate the entire audit chain.

        Raises:
            AuditChainBrokenError: If any stored hash or link is wrong.
        """
        events = self.session.execute(
            select(LedgerAuditEvent).order_by(LedgerAuditEvent.seq)
        ).scalars().all()

        if not events:
            return True

        if events[0].prev_hash is not None:
            logger.critical("audit_chain_broken", extra={"seq": events[0].seq})
            raise AuditChainBrokenError(str(events[0].id), "None", events[0].prev_hash)

        for i, event in enumerate(events):
            recomputed_payload_hash = hash_payload(event.payload or {})
            if recomputed_payload_hash != event.payload_hash:
                logger.critical("audit_chain_broken", extra={"seq": event.seq})
                raise AuditChainBrokenError(
                    str(event.id), recomputed_payload_hash, event.payload_hash
                )

            expected_hash = hash_audit_event(
                entity_type=event.entity_type,
                entity_id=event.entity_id,
                action=getattr(event.action, "value", event.action),
                payload_hash=event.payload_hash,
                prev_hash=event.prev_hash,
            )
            if event.hash != expected_hash:
                logger.critical("audit_chain_broken", extra={"seq": event.seq})
                raise AuditChainBrokenError(str(event.id), expected_hash, event.hash)

            if i > 0 and event.prev_hash != events[i - 1].hash:
                logger.critical("audit_chain_broken", extra={"seq": event.seq})
                raise AuditChainBrokenError(
                    str(event.id), events[i - 1].hash, event.prev_hash or "None"
                )

        logger.info("audit_chain_valid", extra={"event_count": len(events)})
        return True

    # Trace and query methods

    def get_trace(self, entity_type: str, entity_id: str | UUID) -> AuditTrace:
        events = self.session.execute(
            select(LedgerAuditEvent)
            .where(
                LedgerAuditEvent.entity_type == entity_type,
                LedgerAuditEvent.entity_id == str(entity_id),
            )
            .order_by(LedgerAuditEvent.seq)
        ).scalars().all()

        return AuditTrace(
            entity_type=entity_type,
            entity_id=str(entity_id),
            entries=tuple(
                AuditTraceEntry(
                    seq=event.seq,
                    action=getattr(event.action, "value", event.action),
                    occurred_at=event.occurred_at,
                    actor_id=event.actor_id,
                    payload=event.payload or {},
                    hash=event.hash,
                )
                for event in events
            ),
        )

    def get_recent_events(self, limit: int = 100) -> list[LedgerAuditEvent]:
        """Most recent audit events, newest first."""
        return list(
            self.session.execute(
                select(LedgerAuditEvent)
                .order_by(LedgerAuditEvent.seq.desc())
                .limit(limit)
            ).scalars().all()
        )
