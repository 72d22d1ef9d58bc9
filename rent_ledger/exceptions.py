"""
Typed Exception Hierarchy for the Rent Ledger.

===============================================================================
WHY TYPED EXCEPTIONS
===============================================================================

Callers (HTTP handlers, dashboards, reconciliation jobs) must react to ledger
failures precisely. A "payment system temporarily unavailable" failure maps to
different UI guidance than "your payment could not be verified", so the two
can never share a type or be told apart by message parsing.

Every exception:
  1. Has a TYPED class (catch by type, not message)
  2. Has a CODE class attribute (machine-readable, API-safe)
  3. Carries structured DATA as attributes (not just a message string)

Example:
    try:
        quote = ledger.create_order(record_ids, actor)
    except GatewayUnavailableError as e:
        offer_manual_payment()                 # cash / bank transfer path
    except NoEligibleRecordsError as e:
        api_response(code=e.code, tenant=e.tenant_id)

===============================================================================
EXCEPTION HIERARCHY
===============================================================================

All exceptions inherit from RentLedgerError:

    RentLedgerError (base)
    |
    +-- ValidationError
    |   +-- RecordNotFoundError
    |   +-- RecordAlreadyPaidError
    |
    +-- AuthorizationError
    |
    +-- ScheduleError
    |   +-- DuplicateScheduleError
    |
    +-- OrderError
    |   +-- NoEligibleRecordsError
    |   +-- OrderNotFoundError
    |   |   +-- OrderSupersededError
    |   +-- OrderAlreadySettledError
    |
    +-- GatewayError
    |   +-- GatewayUnavailableError
    |   +-- InvalidSignatureError
    |   +-- WebhookSignatureError
    |
    +-- ConcurrencyError
    |   +-- OptimisticLockError
    |
    +-- ImmutabilityError
    |   +-- ImmutabilityViolationError
    |
    +-- AuditError
        +-- AuditChainBrokenError

===============================================================================
ERROR CODES - QUICK REFERENCE
===============================================================================

Category        | Code                        | When Raised
----------------|-----------------------------|-----------------------------------------
Validation      | VALIDATION_ERROR            | Malformed input (rent <= 0, start > end)
                | RECORD_NOT_FOUND            | Unknown payment record id
                | RECORD_ALREADY_PAID         | Manual settlement of a paid record
----------------|-----------------------------|-----------------------------------------
Authorization   | AUTHORIZATION_ERROR         | Actor does not own the record/lease
----------------|-----------------------------|-----------------------------------------
Schedule        | DUPLICATE_SCHEDULE          | Records already exist for tenant+property
----------------|-----------------------------|-----------------------------------------
Order           | NO_ELIGIBLE_RECORDS         | Nothing unpaid left to charge
                | ORDER_NOT_FOUND             | No record carries the order id
                | ORDER_SUPERSEDED            | Order replaced, or a record settled manually
                | ORDER_ALREADY_SETTLED       | Paid order re-verified with another txn
----------------|-----------------------------|-----------------------------------------
Gateway         | GATEWAY_UNAVAILABLE         | Adapter unconfigured, unreachable, timeout
                | INVALID_SIGNATURE           | HMAC proof does not match
                | INVALID_WEBHOOK_SIGNATURE   | Webhook body HMAC does not match
----------------|-----------------------------|-----------------------------------------
Concurrency     | OPTIMISTIC_LOCK_CONFLICT    | Record changed by another transaction
----------------|-----------------------------|-----------------------------------------
Immutability    | IMMUTABILITY_VIOLATION      | Write to an immutable field or record
----------------|-----------------------------|-----------------------------------------
Audit           | AUDIT_CHAIN_BROKEN          | Hash chain validation failed

===============================================================================
"""


class RentLedgerError(Exception):
    """
    Base exception for all rent ledger errors.

    All subclasses must have a `code` class attribute for machine-readable
    error identification.
    """

    code: str = "RENT_LEDGER_ERROR"


# Validation exceptions


class ValidationError(RentLedgerError):
    """Input is malformed or refers to records that do not exist."""

    code: str = "VALIDATION_ERROR"

    def __init__(self, field: str, reason: str):
        self.field = field
        self.reason = reason
        super().__init__(f"Invalid {field}: {reason}")


class RecordNotFoundError(ValidationError):
    """One or more payment record ids are unknown."""

    code: str = "RECORD_NOT_FOUND"

    def __init__(self, record_ids: list[str]):
        self.record_ids = record_ids
        super().__init__("record_ids", f"unknown payment records {', '.join(record_ids)}")


class RecordAlreadyPaidError(ValidationError):
    """Settlement was requested for a record that is already paid."""

    code: str = "RECORD_ALREADY_PAID"

    def __init__(self, record_id: str):
        self.record_id = record_id
        super().__init__("record_id", f"payment record {record_id} is already paid")


# Authorization exceptions


class AuthorizationError(RentLedgerError):
    """Actor is not allowed to act on the tenant, property, or record."""

    code: str = "AUTHORIZATION_ERROR"

    def __init__(self, actor_id: str, operation: str, reason: str):
        self.actor_id = actor_id
        self.operation = operation
        self.reason = reason
        super().__init__(f"Actor {actor_id} may not {operation}: {reason}")


# Schedule exceptions


class ScheduleError(RentLedgerError):
    """Base exception for schedule generation errors."""

    code: str = "SCHEDULE_ERROR"


class DuplicateScheduleError(ScheduleError):
    """A schedule already exists for this tenant-property combination."""

    code: str = "DUPLICATE_SCHEDULE"

    def __init__(self, tenant_id: str, property_id: str, existing_count: int):
        self.tenant_id = tenant_id
        self.property_id = property_id
        self.existing_count = existing_count
        super().__init__(
            f"Payments already exist for tenant {tenant_id} on property "
            f"{property_id} ({existing_count} records)"
        )


# Order exceptions


class OrderError(RentLedgerError):
    """Base exception for gateway order lifecycle errors."""

    code: str = "ORDER_ERROR"


class NoEligibleRecordsError(OrderError):
    """No unpaid records remain after filtering the requested set."""

    code: str = "NO_ELIGIBLE_RECORDS"

    def __init__(self, tenant_id: str, requested_count: int):
        self.tenant_id = tenant_id
        self.requested_count = requested_count
        super().__init__(
            f"No unpaid payment records to charge for tenant {tenant_id} "
            f"({requested_count} requested)"
        )


class OrderNotFoundError(OrderError):
    """No payment record carries this external order id."""

    code: str = "ORDER_NOT_FOUND"

    def __init__(self, order_id: str, message: str | None = None):
        self.order_id = order_id
        super().__init__(message or f"No payments found for order {order_id}")


class OrderSupersededError(OrderNotFoundError):
    """The order was retired (replaced, or settled manually) before it was verified."""

    code: str = "ORDER_SUPERSEDED"

    def __init__(self, order_id: str, superseded_by: str | None):
        self.superseded_by = superseded_by
        super().__init__(
            order_id,
            f"Order {order_id} was superseded by {superseded_by or 'a manual settlement'}",
        )


class OrderAlreadySettledError(OrderError):
    """A paid order was presented again with a different transaction."""

    code: str = "ORDER_ALREADY_SETTLED"

    def __init__(self, order_id: str, settled_transaction_id: str, presented_transaction_id: str):
        self.order_id = order_id
        self.settled_transaction_id = settled_transaction_id
        self.presented_transaction_id = presented_transaction_id
        super().__init__(
            f"Order {order_id} already settled by transaction "
            f"{settled_transaction_id}, got {presented_transaction_id}"
        )


# Gateway exceptions


class GatewayError(RentLedgerError):
    """The payment gateway rejected a request."""

    code: str = "GATEWAY_ERROR"

    def __init__(self, reason: str, status_code: int | None = None):
        self.reason = reason
        self.status_code = status_code
        super().__init__(f"Payment gateway error: {reason}")


class GatewayUnavailableError(GatewayError):
    """
    The payment gateway is not configured or not reachable.

    Callers should offer a manual payment method (cash, bank transfer).
    """

    code: str = "GATEWAY_UNAVAILABLE"


class InvalidSignatureError(GatewayError):
    """The payment confirmation signature does not verify."""

    code: str = "INVALID_SIGNATURE"

    def __init__(self, order_id: str, transaction_id: str):
        self.order_id = order_id
        self.transaction_id = transaction_id
        super().__init__(
            f"invalid payment signature for order {order_id} "
            f"(transaction {transaction_id})"
        )


class WebhookSignatureError(GatewayError):
    """A webhook delivery's signature does not match its raw body."""

    code: str = "INVALID_WEBHOOK_SIGNATURE"

    def __init__(self, body_size: int):
        self.body_size = body_size
        super().__init__(f"invalid webhook signature ({body_size} byte body)")


# Concurrency exceptions


class ConcurrencyError(RentLedgerError):
    """Base exception for concurrency-related errors."""

    code: str = "CONCURRENCY_ERROR"


class OptimisticLockError(ConcurrencyError):
    """Optimistic locking conflict detected."""

    code: str = "OPTIMISTIC_LOCK_CONFLICT"

    def __init__(self, entity_type: str, entity_id: str):
        self.entity_type = entity_type
        self.entity_id = entity_id
        super().__init__(
            f"Optimistic lock conflict on {entity_type} {entity_id}: "
            "entity was modified by another transaction"
        )


# Immutability exceptions


class ImmutabilityError(RentLedgerError):
    """Base exception for immutability-related errors."""

    code: str = "IMMUTABILITY_ERROR"


class ImmutabilityViolationError(ImmutabilityError):
    """
    Attempted to modify or delete an immutable record or field.

    Paid payment records, schedule anchors, and audit events are immutable.
    """

    code: str = "IMMUTABILITY_VIOLATION"

    def __init__(self, entity_type: str, entity_id: str, reason: str):
        self.entity_type = entity_type
        self.entity_id = entity_id
        self.reason = reason
        super().__init__(
            f"Immutability violation on {entity_type} {entity_id}: {reason}"
        )


# Audit exceptions


class AuditError(RentLedgerError):
    """Base exception for audit-related errors."""

    code: str = "AUDIT_ERROR"


class AuditChainBrokenError(AuditError):
    """The ledger audit hash chain failed validation."""

    code: str = "AUDIT_CHAIN_BROKEN"

    def __init__(self, audit_event_id: str, expected_hash: str, actual_hash: str):
        self.audit_event_id = audit_event_id
        self.expected_hash = expected_hash
        self.actual_hash = actual_hash
        super().__init__(
            f"Audit chain broken at event {audit_event_id}: "
            f"expected {expected_hash}, got {actual_hash}"
        )
