"""
Rent Ledger Service - schedule generation, gateway orders, settlement, queries.

Thin orchestration layer that:
1. Calls domain.schedule to expand a lease into monthly obligations
2. Calls domain.late_fee to price unpaid records as of the clock's UTC date
3. Calls the injected PaymentGateway to open orders and verify signatures
   (payment confirmations and webhook deliveries)
4. Calls LedgerAuditService to chain an audit event for every state change
5. Calls LedgerSelector for every read

This service owns the transaction boundary: each public write commits on
success and rolls back on any failure.  Helper services only flush.

Usage:
    ledger = RentLedgerService(session, gateway=build_gateway(), clock=SystemClock())
    views = ledger.generate_schedule(
        tenant_id=tenant_id, property_id=property_id, owner_id=owner_id,
        start_date=date(2024, 1, 1), end_date=date(2024, 12, 31),
        monthly_rent=Decimal("10000"), actor=Actor.owner(owner_id),
    )
"""

from __future__ import annotations

import json
from dataclasses import dataclass
from datetime import date
from decimal import Decimal
from typing import Any, Callable, Iterable, Sequence
from uuid import UUID

from sqlalchemy import select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session
from sqlalchemy.orm.exc import StaleDataError

from rent_ledger.config import LedgerConfig
from rent_ledger.db.types import round_money, to_minor_units
from rent_ledger.domain.actors import Actor
from rent_ledger.domain.clock import Clock, SystemClock
from rent_ledger.domain.late_fee import compute_late_fee
from rent_ledger.domain.schedule import build_schedule
from rent_ledger.domain.views import (
    OrderLine,
    OrderQuote,
    OwnerLedgerView,
    PaymentRecordView,
    TenantLedgerView,
)
from rent_ledger.exceptions import (
    AuthorizationError,
    DuplicateScheduleError,
    GatewayError,
    GatewayUnavailableError,
    InvalidSignatureError,
    NoEligibleRecordsError,
    OptimisticLockError,
    OrderAlreadySettledError,
    OrderNotFoundError,
    OrderSupersededError,
    RecordAlreadyPaidError,
    RecordNotFoundError,
    ValidationError,
    WebhookSignatureError,
)
from rent_ledger.gateway.base import PaymentGateway, UnavailableGateway
from rent_ledger.logging_config import LogContext, get_logger
from rent_ledger.models.gateway_order import GatewayOrder, GatewayOrderStatus
from rent_ledger.models.payment_record import (
    MANUAL_PAYMENT_METHODS,
    PaymentMethod,
    PaymentRecord,
    PaymentStatus,
)
from rent_ledger.selectors.ledger_selector import LedgerSelector
from rent_ledger.services.auditor_service import LedgerAuditService

logger = get_logger("services.ledger")


@dataclass(frozen=True)
class ScheduleGenerated:
    """Delivered to schedule listeners after the schedule has committed."""

    tenant_id: UUID
    property_id: UUID
    owner_id: UUID
    records: tuple[PaymentRecordView, ...]


ScheduleListener = Callable[[ScheduleGenerated], None]


class RentLedgerService:
    """
    The rent-ledger engine.

    Collaborators:
    - PaymentGateway: creates external orders and verifies signatures
      (UnavailableGateway when no credentials are configured)
    - LedgerAuditService: hash-chained audit trail (flush only)
    - LedgerSelector: read-only views derived for the clock's UTC date

    Transaction boundary: this service commits on success, rolls back on failure.
    """

    def __init__(
        self,
        session: Session,
        gateway: PaymentGateway | None = None,
        clock: Clock | None = None,
        config: LedgerConfig | None = None,
        on_schedule_generated: Iterable[ScheduleListener] = (),
    ):
        self._session = session
        self._gateway = gateway or UnavailableGateway()
        self._clock = clock or SystemClock()
        self._config = config or LedgerConfig()
        self._policy = self._config.late_fee_policy()
        self._listeners: list[ScheduleListener] = list(on_schedule_generated)

        self._auditor = LedgerAuditService(session, self._clock)
        self._selector = LedgerSelector(
            session,
            policy=self._policy,
            severe_overdue_days=self._config.severe_overdue_days,
        )

    @property
    def auditor(self) -> LedgerAuditService:
        return self._auditor

    def add_schedule_listener(self, listener: ScheduleListener) -> None:
        self._listeners.append(listener)

    def _today(self) -> date:
        return self._clock.today()

    def _view(self, record: PaymentRecord) -> PaymentRecordView:
        return PaymentRecordView.from_model(record, self._today(), self._policy)

    # =========================================================================
    # Authorization
    # =========================================================================

    @staticmethod
    def _require_owner(actor: Actor, owner_id: UUID, operation: str) -> None:
        if not actor.is_owner:
            raise AuthorizationError(str(actor.actor_id), operation, "only owners may do this")
        if actor.actor_id != owner_id:
            raise AuthorizationError(
                str(actor.actor_id), operation, f"actor is not owner {owner_id}"
            )

    @staticmethod
    def _require_tenant(actor: Actor, tenant_id: UUID, operation: str) -> None:
        if not actor.is_tenant:
            raise AuthorizationError(str(actor.actor_id), operation, "only tenants may do this")
        if actor.actor_id != tenant_id:
            raise AuthorizationError(
                str(actor.actor_id), operation, f"actor is not tenant {tenant_id}"
            )

    # =========================================================================
    # Schedule generation
    # =========================================================================

    def generate_schedule(
        self,
        tenant_id: UUID,
        property_id: UUID,
        owner_id: UUID,
        start_date: date,
        end_date: date,
        monthly_rent: Decimal,
        actor: Actor,
    ) -> list[PaymentRecordView]:
        """
        Create one pending record per lease month, all in one transaction.

        Raises:
            AuthorizationError: actor is not the owner ``owner_id``.
            ValidationError: start_date > end_date or monthly_rent <= 0.
            DuplicateScheduleError: records already exist for the tenant-property pair.
        """
        self._require_owner(actor, owner_id, "generate_schedule")

        with LogContext.bind(actor_id=actor.actor_id, tenant_id=tenant_id, owner_id=owner_id):
            plan = build_schedule(start_date, end_date, monthly_rent, self._config.grace_days)

            logger.info("schedule_generation_started", extra={
                "property_id": str(property_id),
                "start_date": start_date.isoformat(),
                "end_date": end_date.isoformat(),
                "monthly_rent": str(monthly_rent),
                "months": len(plan),
            })

            try:
                existing = self._selector.count_for_lease(tenant_id, property_id)
                if existing:
                    raise DuplicateScheduleError(str(tenant_id), str(property_id), existing)

                records = [
                    PaymentRecord(
                        tenant_id=tenant_id,
                        property_id=property_id,
                        owner_id=owner_id,
                        lease_month=item.lease_month,
                        due_date=item.due_date,
                        base_amount=item.base_amount,
                        late_fee=Decimal("0"),
                        total_amount=item.base_amount,
                        status=PaymentStatus.PENDING,
                        notes="",
                        created_by_id=actor.actor_id,
                    )
                    for item in plan
                ]
                self._session.add_all(records)
                self._session.flush()

                self._auditor.record_schedule_generated(
                    tenant_id=tenant_id,
                    property_id=property_id,
                    owner_id=owner_id,
                    record_ids=[r.id for r in records],
                    first_month=plan[0].lease_month,
                    last_month=plan[-1].lease_month,
                    monthly_rent=plan[0].base_amount,
                    actor_id=actor.actor_id,
                )
                self._session.commit()

            except IntegrityError as exc:
                # Lost a race with a concurrent generator for the same lease
                self._session.rollback()
                raise DuplicateScheduleError(
                    str(tenant_id),
                    str(property_id),
                    self._selector.count_for_lease(tenant_id, property_id),
                ) from exc
            except Exception:
                self._session.rollback()
                raise

            views = [self._view(r) for r in records]
            logger.info("schedule_generation_committed", extra={
                "property_id": str(property_id),
                "record_count": len(views),
            })

        self._notify_schedule_generated(
            ScheduleGenerated(
                tenant_id=tenant_id,
                property_id=property_id,
                owner_id=owner_id,
                records=tuple(views),
            )
        )
        return views

    def _notify_schedule_generated(self, event: ScheduleGenerated) -> None:
        """Listener failures are logged; the committed schedule stands."""
        for listener in self._listeners:
            try:
                listener(event)
            except Exception:
                logger.warning(
                    "schedule_listener_failed",
                    extra={
                        "listener": getattr(listener, "__name__", repr(listener)),
                        "tenant_id": str(event.tenant_id),
                        "property_id": str(event.property_id),
                    },
                    exc_info=True,
                )

    # =========================================================================
    # Gateway orders
    # =========================================================================

    def create_order(self, record_ids: Sequence[UUID], actor: Actor) -> OrderQuote:
        """
        Open a gateway order for the actor's unpaid records among ``record_ids``.

        Any outstanding order already stamped on those records is superseded:
        marked superseded, its id cleared from every unpaid record still
        carrying it, and an order_superseded audit event written.

        Raises:
            AuthorizationError: actor is not a tenant, or a record belongs to
                another tenant.
            RecordNotFoundError: an id is unknown.
            NoEligibleRecordsError: nothing unpaid remains.
            GatewayUnavailableError: gateway not configured or not reachable.
            GatewayError: gateway rejected the order.
            OptimisticLockError: a record changed concurrently.
        """
        if not actor.is_tenant:
            raise AuthorizationError(str(actor.actor_id), "create_order", "only tenants may pay rent")

        ids = list(dict.fromkeys(record_ids))

        with LogContext.bind(actor_id=actor.actor_id, tenant_id=actor.actor_id):
            if not ids:
                raise NoEligibleRecordsError(str(actor.actor_id), 0)

            try:
                records = self._session.execute(
                    select(PaymentRecord)
                    .where(PaymentRecord.id.in_(ids))
                    .order_by(PaymentRecord.lease_month)
                    .with_for_update()
                ).scalars().all()

                found = {r.id for r in records}
                missing = [str(i) for i in ids if i not in found]
                if missing:
                    raise RecordNotFoundError(missing)

                foreign = [r for r in records if r.tenant_id != actor.actor_id]
                if foreign:
                    raise AuthorizationError(
                        str(actor.actor_id),
                        "create_order",
                        f"record {foreign[0].id} belongs to another tenant",
                    )

                unpaid = [r for r in records if not r.is_paid]
                if not unpaid:
                    raise NoEligibleRecordsError(str(actor.actor_id), len(ids))

                if not self._gateway.is_available:
                    logger.warning("gateway_unavailable", extra={"operation": "create_order"})
                    raise GatewayUnavailableError("Payment gateway is not available")

                today = self._today()
                lines = []
                for r in unpaid:
                    base = round_money(r.base_amount)
                    fee = compute_late_fee(r, today, self._policy)
                    lines.append(OrderLine(
                        record_id=r.id,
                        lease_month=r.lease_month,
                        base_amount=base,
                        late_fee=fee,
                        total_amount=round_money(base + fee),
                    ))
                amount = round_money(sum((line.total_amount for line in lines), Decimal("0")))
                amount_minor = to_minor_units(amount)
                currency = self._config.currency
                receipt_ref = (
                    f"{self._config.receipt_prefix}_"
                    f"{int(self._clock.now_utc().timestamp() * 1000)}"
                )

                logger.info("order_creation_started", extra={
                    "record_count": len(unpaid),
                    "amount": str(amount),
                    "amount_minor": amount_minor,
                    "currency": currency,
                })

                result = self._gateway.create_order(
                    amount_minor,
                    currency,
                    receipt_ref,
                    notes={
                        "tenantId": str(actor.actor_id),
                        "propertyIds": ",".join(sorted({str(r.property_id) for r in unpaid})),
                        "paymentCount": str(len(unpaid)),
                    },
                )
                if result.amount_minor != amount_minor or result.currency != currency:
                    raise GatewayError(
                        f"order {result.order_id} is for {result.amount_minor} "
                        f"{result.currency}, expected {amount_minor} {currency}"
                    )

                superseded = self._supersede_outstanding_orders(unpaid, result.order_id, actor)

                for r in unpaid:
                    r.external_order_id = result.order_id
                    r.updated_by_id = actor.actor_id

                self._session.add(GatewayOrder(
                    external_order_id=result.order_id,
                    tenant_id=actor.actor_id,
                    amount=amount,
                    amount_minor=amount_minor,
                    currency=currency,
                    receipt_ref=receipt_ref,
                    record_count=len(unpaid),
                    status=GatewayOrderStatus.CREATED,
                    created_by_id=actor.actor_id,
                ))
                self._session.flush()

                self._auditor.record_order_created(
                    order_id=result.order_id,
                    tenant_id=actor.actor_id,
                    amount=amount,
                    amount_minor=amount_minor,
                    currency=currency,
                    record_ids=[r.id for r in unpaid],
                    actor_id=actor.actor_id,
                )
                self._session.commit()

            except StaleDataError as exc:
                self._session.rollback()
                raise OptimisticLockError("PaymentRecord", ",".join(str(i) for i in ids)) from exc
            except Exception:
                self._session.rollback()
                raise

            logger.info("order_created", extra={
                "order_id": result.order_id,
                "amount": str(amount),
                "superseded": superseded,
            })

        return OrderQuote(
            order_id=result.order_id,
            amount=amount,
            amount_minor=amount_minor,
            currency=currency,
            receipt_ref=receipt_ref,
            lines=tuple(lines),
            superseded_order_ids=tuple(superseded),
        )

    def _supersede_outstanding_orders(
        self,
        records: Sequence[PaymentRecord],
        new_order_id: str | None,
        actor: Actor,
    ) -> list[str]:
        """
        Retire every outstanding order stamped on ``records``.

        ``new_order_id`` is the replacing order, or None when the records are
        being settled manually.
        """
        prior_ids = sorted({r.external_order_id for r in records if r.external_order_id})
        superseded = []
        for prior_id in prior_ids:
            prior = self._session.execute(
                select(GatewayOrder)
                .where(GatewayOrder.external_order_id == prior_id)
                .with_for_update()
            ).scalar_one_or_none()
            if prior is not None and not prior.is_outstanding:
                continue

            carriers = self._session.execute(
                select(PaymentRecord)
                .where(
                    PaymentRecord.external_order_id == prior_id,
                    PaymentRecord.status != PaymentStatus.PAID,
                )
                .with_for_update()
            ).scalars().all()
            for r in carriers:
                r.external_order_id = None
                r.updated_by_id = actor.actor_id

            if prior is not None:
                prior.status = GatewayOrderStatus.SUPERSEDED
                prior.superseded_by = new_order_id
                prior.updated_by_id = actor.actor_id
            self._session.flush()

            self._auditor.record_order_superseded(
                order_id=prior_id,
                superseded_by=new_order_id,
                cleared_record_ids=[r.id for r in carriers],
                actor_id=actor.actor_id,
            )
            logger.info("order_superseded", extra={
                "superseded_order_id": prior_id,
                "superseded_by": new_order_id,
                "cleared_count": len(carriers),
            })
            superseded.append(prior_id)
        return superseded

    # =========================================================================
    # Settlement
    # =========================================================================

    def verify_and_settle(
        self,
        order_id: str,
        transaction_id: str,
        signature: str,
    ) -> list[PaymentRecordView]:
        """
        Verify a signed gateway confirmation and mark the order's records paid.

        Re-presenting the same (order, transaction) after success returns the
        records unchanged.

        Raises:
            GatewayUnavailableError: no gateway to verify against.
            InvalidSignatureError: signature mismatch (no record changes).
            OrderSupersededError: the order was replaced by a later one.
            OrderNotFoundError: no record carries ``order_id``.
            OrderAlreadySettledError: the order was settled by another transaction.
        """
        with LogContext.bind(order_id=order_id):
            if not self._gateway.is_available:
                logger.warning("gateway_unavailable", extra={"operation": "verify_and_settle"})
                raise GatewayUnavailableError("Payment gateway is not available")

            if not self._gateway.verify_signature(order_id, transaction_id, signature):
                self._reject_signature(order_id, transaction_id)
                raise InvalidSignatureError(order_id, transaction_id)

            try:
                order = self._session.execute(
                    select(GatewayOrder)
                    .where(GatewayOrder.external_order_id == order_id)
                    .with_for_update()
                ).scalar_one_or_none()

                if order is not None and order.status == GatewayOrderStatus.SUPERSEDED:
                    raise OrderSupersededError(order_id, order.superseded_by)

                records = self._session.execute(
                    select(PaymentRecord)
                    .where(PaymentRecord.external_order_id == order_id)
                    .order_by(PaymentRecord.lease_month)
                    .with_for_update()
                ).scalars().all()
                if not records:
                    raise OrderNotFoundError(order_id)

                settled_by = self._settling_transaction(order, records)
                if settled_by is not None:
                    if settled_by != transaction_id:
                        raise OrderAlreadySettledError(order_id, settled_by, transaction_id)
                    views = [self._view(r) for r in records]
                    self._session.commit()
                    logger.info("payment_reverification_ignored", extra={
                        "transaction_id": transaction_id,
                    })
                    return views

                now = self._clock.now()
                for r in records:
                    r.status = PaymentStatus.PAID
                    r.payment_date = now
                    r.external_transaction_id = transaction_id
                    r.external_signature = signature
                    r.late_fee = Decimal("0")
                    r.total_amount = r.base_amount
                    r.payment_method = PaymentMethod.GATEWAY

                if order is not None:
                    order.status = GatewayOrderStatus.PAID
                    order.external_transaction_id = transaction_id
                    order.settled_at = now
                self._session.flush()

                self._auditor.record_payment_verified(
                    order_id=order_id,
                    transaction_id=transaction_id,
                    record_ids=[r.id for r in records],
                    amount=round_money(sum((r.base_amount for r in records), Decimal("0"))),
                )
                views = [self._view(r) for r in records]
                self._session.commit()

            except StaleDataError as exc:
                self._session.rollback()
                raise OptimisticLockError("GatewayOrder", order_id) from exc
            except Exception:
                self._session.rollback()
                raise

            logger.info("payment_verified", extra={
                "transaction_id": transaction_id,
                "settled_count": len(records),
            })
        return views

    @staticmethod
    def _settling_transaction(
        order: GatewayOrder | None,
        records: Sequence[PaymentRecord],
    ) -> str | None:
        """Transaction that already settled this order, if any."""
        if order is not None:
            if order.status == GatewayOrderStatus.PAID:
                return order.external_transaction_id
            return None
        return next(
            (r.external_transaction_id for r in records if r.external_transaction_id),
            None,
        )

    def _reject_signature(self, order_id: str, transaction_id: str) -> None:
        """Persist the rejection in the audit trail; no record is touched."""
        logger.warning("signature_rejected", extra={"transaction_id": transaction_id})
        try:
            self._auditor.record_signature_rejected(order_id, transaction_id)
            self._session.commit()
        except Exception:
            self._session.rollback()
            raise

    def mark_manually_paid(
        self,
        record_id: UUID,
        method: PaymentMethod | str,
        note: str,
        actor: Actor,
    ) -> PaymentRecordView:
        """
        Settle a record paid outside the gateway (cash or bank transfer).

        An outstanding gateway order stamped on the record is superseded
        first, so a later confirmation for it raises OrderSupersededError
        instead of being absorbed by an already-paid record.

        Raises:
            ValidationError: method is not cash or bank_transfer.
            AuthorizationError: actor does not own the record.
            RecordNotFoundError: unknown record.
            RecordAlreadyPaidError: record is already paid.
        """
        try:
            payment_method = PaymentMethod(method)
        except ValueError:
            payment_method = None
        if payment_method not in MANUAL_PAYMENT_METHODS:
            raise ValidationError(
                "method",
                f"manual payments must be cash or bank_transfer, got '{getattr(method, 'value', method)}'",
            )
        if not actor.is_owner:
            raise AuthorizationError(
                str(actor.actor_id), "mark_manually_paid", "only owners may record manual payments"
            )

        with LogContext.bind(actor_id=actor.actor_id, owner_id=actor.actor_id, record_id=record_id):
            try:
                record = self._session.get(PaymentRecord, record_id, with_for_update=True)
                if record is None:
                    raise RecordNotFoundError([str(record_id)])
                if record.owner_id != actor.actor_id:
                    raise AuthorizationError(
                        str(actor.actor_id), "mark_manually_paid", "actor does not own this record"
                    )
                if record.is_paid:
                    raise RecordAlreadyPaidError(str(record_id))

                superseded = self._supersede_outstanding_orders([record], None, actor)

                record.status = PaymentStatus.PAID
                record.payment_date = self._clock.now()
                record.payment_method = payment_method
                record.notes = note or ""
                record.late_fee = Decimal("0")
                record.total_amount = record.base_amount
                record.updated_by_id = actor.actor_id
                self._session.flush()

                self._auditor.record_manual_settlement(
                    record_id=record.id,
                    method=payment_method.value,
                    note=record.notes,
                    amount=round_money(record.base_amount),
                    actor_id=actor.actor_id,
                )
                view = self._view(record)
                self._session.commit()

            except StaleDataError as exc:
                self._session.rollback()
                raise OptimisticLockError("PaymentRecord", str(record_id)) from exc
            except Exception:
                self._session.rollback()
                raise

            logger.info("payment_settled_manually", extra={
                "payment_method": payment_method.value,
                "superseded": superseded,
            })
        return view

    def accept_webhook(self, body: bytes, signature: str) -> dict[str, Any]:
        """
        Authenticate a gateway webhook delivery and return its decoded event.

        ``body`` must be the raw request bytes; re-serialized JSON will not
        verify.  Deliveries are authenticated only; settlement still goes
        through ``verify_and_settle``.

        Raises:
            GatewayUnavailableError: no gateway or no webhook secret configured.
            WebhookSignatureError: signature does not match the body.
            ValidationError: the authenticated body is not a JSON object.
        """
        if not self._gateway.verify_webhook(body, signature or ""):
            logger.warning("webhook_signature_rejected", extra={"body_size": len(body)})
            raise WebhookSignatureError(len(body))

        try:
            event = json.loads(body)
        except ValueError as exc:
            raise ValidationError("body", "webhook body is not valid JSON") from exc
        if not isinstance(event, dict):
            raise ValidationError("body", "webhook body must be a JSON object")

        logger.info("webhook_verified", extra={"event": event.get("event")})
        return event

    # =========================================================================
    # Queries
    # =========================================================================

    def list_for_tenant(self, tenant_id: UUID, actor: Actor) -> TenantLedgerView:
        """The tenant's records (newest first) with a summary."""
        self._require_tenant(actor, tenant_id, "list_for_tenant")
        return self._selector.tenant_ledger(tenant_id, self._today())

    def list_for_owner(self, owner_id: UUID, actor: Actor) -> OwnerLedgerView:
        """All records on the owner's properties, summarized and broken down per tenant."""
        self._require_owner(actor, owner_id, "list_for_owner")
        return self._selector.owner_ledger(owner_id, self._today())

    def get_record(self, record_id: UUID, actor: Actor) -> PaymentRecordView:
        """One record, visible to its owner and its tenant only."""
        view = self._selector.get_view(record_id, self._today())
        if view is None:
            raise RecordNotFoundError([str(record_id)])
        allowed = (
            (actor.is_owner and view.owner_id == actor.actor_id)
            or (actor.is_tenant and view.tenant_id == actor.actor_id)
        )
        if not allowed:
            raise AuthorizationError(str(actor.actor_id), "get_record", "not a party to this record")
        return view
