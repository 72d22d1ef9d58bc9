"""
Payment record and gateway order immutability tests.

Schedule anchors never change, paid is terminal, settlement evidence is
write-once, and only pending/paid are ever stored.
"""

from datetime import date
from decimal import Decimal
from uuid import uuid4

import pytest
from sqlalchemy import select

from rent_ledger.exceptions import ImmutabilityViolationError
from rent_ledger.models.gateway_order import GatewayOrder
from rent_ledger.models.payment_record import PaymentRecord, PaymentStatus


@pytest.fixture
def record(create_lease, session) -> PaymentRecord:
    views = create_lease(date(2024, 1, 1), date(2024, 3, 31), Decimal("10000"))
    return session.get(PaymentRecord, views[0].id)


@pytest.fixture
def paid_record(ledger, record, owner) -> PaymentRecord:
    ledger.mark_manually_paid(record.id, "cash", "", owner)
    return record


class TestScheduleAnchors:

    @pytest.mark.parametrize("field,value", [
        ("base_amount", Decimal("9000")),
        ("lease_month", date(2024, 2, 1)),
        ("due_date", date(2024, 1, 10)),
        ("tenant_id", uuid4()),
        ("owner_id", uuid4()),
    ])
    def test_anchor_fields_fixed(self, record, session, field, value):
        setattr(record, field, value)

        with pytest.raises(ImmutabilityViolationError):
            session.flush()

    def test_notes_editable_while_pending(self, record, session):
        record.notes = "tenant called about delay"
        session.flush()

        assert session.get(PaymentRecord, record.id).notes == "tenant called about delay"


class TestStoredStatus:

    @pytest.mark.parametrize("status", [PaymentStatus.OVERDUE, PaymentStatus.PARTIAL])
    def test_derived_statuses_never_stored(self, record, session, status):
        record.status = status

        with pytest.raises(ImmutabilityViolationError):
            session.flush()

    def test_records_cannot_be_inserted_paid(self, session, owner_id):
        session.add(PaymentRecord(
            tenant_id=uuid4(),
            property_id=uuid4(),
            owner_id=owner_id,
            lease_month=date(2024, 1, 1),
            due_date=date(2024, 1, 6),
            base_amount=Decimal("10000"),
            total_amount=Decimal("10000"),
            status=PaymentStatus.PAID,
            created_by_id=owner_id,
        ))

        with pytest.raises(ImmutabilityViolationError):
            session.flush()


class TestPaidIsTerminal:

    def test_cannot_revert_to_pending(self, paid_record, session):
        paid_record.status = PaymentStatus.PENDING

        with pytest.raises(ImmutabilityViolationError):
            session.flush()

    def test_cannot_edit_paid_record(self, paid_record, session):
        paid_record.notes = "rewritten"

        with pytest.raises(ImmutabilityViolationError):
            session.flush()

    def test_cannot_delete_paid_record(self, paid_record, session):
        session.delete(paid_record)

        with pytest.raises(ImmutabilityViolationError):
            session.flush()

    def test_audit_metadata_may_change(self, paid_record, session):
        paid_record.updated_by_id = uuid4()
        session.flush()


class TestWriteOnceEvidence:

    def test_transaction_id_write_once(self, record, session):
        record.external_transaction_id = "pay_1"
        session.flush()

        record.external_transaction_id = "pay_2"
        with pytest.raises(ImmutabilityViolationError):
            session.flush()


class TestGatewayOrderLifecycle:

    def test_superseded_order_is_frozen(self, ledger, record, tenant, session):
        first = ledger.create_order([record.id], tenant)
        ledger.create_order([record.id], tenant)
        order = session.execute(
            select(GatewayOrder).where(GatewayOrder.external_order_id == first.order_id)
        ).scalar_one()

        order.status = "paid"
        with pytest.raises(ImmutabilityViolationError):
            session.flush()
