"""
ORM-Level Immutability Enforcement for the rent ledger.

===============================================================================
HOW IT WORKS
===============================================================================

SQLAlchemy fires events before INSERT/UPDATE/DELETE operations reach the
database.  We register listeners that intercept these events and check the
ledger invariants:

    session.flush()
         |
         v
    [before_insert / before_update event] --> _check_*() --> ImmutabilityViolationError
         |                                                        ^
         v                                                        |
    [before_delete event] --> _check_*_delete() ------------------+
         |
         v
    SQL sent to database (only if checks pass)

If a check fails, ImmutabilityViolationError is raised and the caller's
transaction is rolled back.  The database is never modified.

===============================================================================
PROTECTED ENTITIES
===============================================================================

Entity            | Rule
------------------|-----------------------------------------------------------
PaymentRecord     | Schedule anchors never change (tenant, property, owner,
                  | lease_month, due_date, base_amount)
                  | Stored status is only pending or paid
                  | After status = paid, nothing but audit metadata changes
                  | external_transaction_id / external_signature write-once
                  | Paid records cannot be deleted
GatewayOrder      | After status leaves created, nothing but audit metadata
                  | changes; paid orders cannot be deleted
LedgerAuditEvent  | ALWAYS immutable, never deleted

updated_at / updated_by_id (and the version counter) are audit metadata and
may always change.

===============================================================================
USAGE
===============================================================================

    from rent_ledger.db.immutability import register_immutability_listeners
    register_immutability_listeners()  # Called once at startup

To temporarily disable (TESTS ONLY):

    unregister_immutability_listeners()

===============================================================================
"""

from sqlalchemy import event, inspect
from sqlalchemy.orm.attributes import get_history

from rent_ledger.exceptions import ImmutabilityViolationError
from rent_ledger.logging_config import get_logger

logger = get_logger("db.immutability")

AUDIT_METADATA_FIELDS = frozenset({"updated_at", "updated_by_id", "version"})

PAYMENT_RECORD_ANCHOR_FIELDS = frozenset({
    "tenant_id",
    "property_id",
    "owner_id",
    "lease_month",
    "due_date",
    "base_amount",
})

PAYMENT_RECORD_WRITE_ONCE_FIELDS = frozenset({
    "external_transaction_id",
    "external_signature",
})


def _violation(entity_type: str, entity_id, operation: str, reason: str, field: str | None = None):
    logger.error(
        "immutability_violation_blocked",
        extra={
            "entity_type": entity_type,
            "entity_id": str(entity_id),
            "operation": operation,
            "field": field,
        },
    )
    return ImmutabilityViolationError(
        entity_type=entity_type,
        entity_id=str(entity_id),
        reason=reason,
    )


def _status_before_update(target, value_attr: str = "status"):
    """Status as it was in the database before this flush."""
    history = get_history(target, value_attr)
    if history.deleted:
        return history.deleted[0]
    return getattr(target, value_attr)


def _changed_fields(target) -> list[str]:
    return [
        attr.key
        for attr in inspect(target).attrs
        if attr.key not in AUDIT_METADATA_FIELDS and attr.history.has_changes()
    ]


def _check_payment_record_insert(mapper, connection, target):
    """New payment records always start pending."""
    from rent_ledger.models.payment_record import PaymentRecord, PaymentStatus

    if not isinstance(target, PaymentRecord):
        return

    if target.status is not None and target.status != PaymentStatus.PENDING:
        raise _violation(
            "PaymentRecord", target.id, "INSERT",
            f"Payment records must be created pending, got '{target.status}'",
            field="status",
        )


def _check_payment_record_immutability(mapper, connection, target):
    """
    Guard schedule anchors, the terminal paid state, and write-once
    settlement evidence.
    """
    from rent_ledger.models.payment_record import PaymentRecord, PaymentStatus

    if not isinstance(target, PaymentRecord):
        return

    changed = _changed_fields(target)
    if not changed:
        return

    was_paid = _status_before_update(target) == PaymentStatus.PAID
    if was_paid:
        raise _violation(
            "PaymentRecord", target.id, "UPDATE",
            f"Cannot modify field '{changed[0]}' on paid payment record",
            field=changed[0],
        )

    for field in changed:
        if field in PAYMENT_RECORD_ANCHOR_FIELDS:
            raise _violation(
                "PaymentRecord", target.id, "UPDATE",
                f"Field '{field}' is fixed at schedule generation",
                field=field,
            )
        if field in PAYMENT_RECORD_WRITE_ONCE_FIELDS:
            previous = get_history(target, field).deleted
            if previous and previous[0] is not None:
                raise _violation(
                    "PaymentRecord", target.id, "UPDATE",
                    f"Field '{field}' is write-once",
                    field=field,
                )

    if "status" in changed and target.status not in (PaymentStatus.PENDING, PaymentStatus.PAID):
        raise _violation(
            "PaymentRecord", target.id, "UPDATE",
            f"Status '{target.status}' cannot be stored",
            field="status",
        )


def _check_payment_record_delete(mapper, connection, target):
    from rent_ledger.models.payment_record import PaymentRecord, PaymentStatus

    if not isinstance(target, PaymentRecord):
        return

    if _status_before_update(target) == PaymentStatus.PAID:
        raise _violation(
            "PaymentRecord", target.id, "DELETE",
            "Paid payment records cannot be deleted",
        )


def _check_gateway_order_immutability(mapper, connection, target):
    """Orders that are paid or superseded are terminal."""
    from rent_ledger.models.gateway_order import GatewayOrder, GatewayOrderStatus

    if not isinstance(target, GatewayOrder):
        return

    if _status_before_update(target) == GatewayOrderStatus.CREATED:
        return

    changed = _changed_fields(target)
    if changed:
        raise _violation(
            "GatewayOrder", target.external_order_id, "UPDATE",
            f"Cannot modify field '{changed[0]}' on {_status_before_update(target)} order",
            field=changed[0],
        )


def _check_gateway_order_delete(mapper, connection, target):
    from rent_ledger.models.gateway_order import GatewayOrder, GatewayOrderStatus

    if not isinstance(target, GatewayOrder):
        return

    if target.status == GatewayOrderStatus.PAID:
        raise _violation(
            "GatewayOrder", target.external_order_id, "DELETE",
            "Paid gateway orders cannot be deleted",
        )


def _check_audit_event_immutability(mapper, connection, target):
    from rent_ledger.models.audit_event import LedgerAuditEvent

    if not isinstance(target, LedgerAuditEvent):
        return

    raise _violation(
        "LedgerAuditEvent", target.id, "UPDATE",
        "Audit events are immutable and cannot be modified",
    )


def _check_audit_event_delete(mapper, connection, target):
    from rent_ledger.models.audit_event import LedgerAuditEvent

    if not isinstance(target, LedgerAuditEvent):
        return

    raise _violation(
        "LedgerAuditEvent", target.id, "DELETE",
        "Audit events cannot be deleted",
    )


_LISTENERS = (
    ("PaymentRecord", "before_insert", _check_payment_record_insert),
    ("PaymentRecord", "before_update", _check_payment_record_immutability),
    ("PaymentRecord", "before_delete", _check_payment_record_delete),
    ("GatewayOrder", "before_update", _check_gateway_order_immutability),
    ("GatewayOrder", "before_delete", _check_gateway_order_delete),
    ("LedgerAuditEvent", "before_update", _check_audit_event_immutability),
    ("LedgerAuditEvent", "before_delete", _check_audit_event_delete),
)


def _models() -> dict:
    from rent_ledger.models import GatewayOrder, LedgerAuditEvent, PaymentRecord

    return {
        "PaymentRecord": PaymentRecord,
        "GatewayOrder": GatewayOrder,
        "LedgerAuditEvent": LedgerAuditEvent,
    }


def register_immutability_listeners():
    """
    Register all immutability enforcement event listeners.

    Idempotent: listeners already registered are left in place.
    """
    models = _models()
    for model_name, event_name, listener_fn in _LISTENERS:
        target = models[model_name]
        if not event.contains(target, event_name, listener_fn):
            event.listen(target, event_name, listener_fn)


def unregister_immutability_listeners():
    """
    Remove immutability enforcement event listeners.

    WARNING: Only use this in tests that intentionally violate
    immutability rules to verify detection.
    """
    models = _models()
    for model_name, event_name, listener_fn in _LISTENERS:
        target = models[model_name]
        if event.contains(target, event_name, listener_fn):
            event.remove(target, event_name, listener_fn)
