"""
Module: rent_ledger.selectors.ledger_selector
Responsibility: Read-only queries over payment records, rendered as views
    derived for a given calendar date.
Architecture position: Ledger > Selectors.  May import from db/, models/ and
    domain/.  MUST NOT import from services/.

Invariants enforced:
    - Read-only: no add, delete, flush, or commit.
    - Every PaymentRecordView carries status, late fee, total and days
      overdue derived for the ``today`` passed in; stored placeholders never
      leave the ledger.
    - Records are listed newest lease month first.
"""

from datetime import date
from uuid import UUID

from sqlalchemy import func, select

from rent_ledger.domain.late_fee import DEFAULT_POLICY, LateFeePolicy
from rent_ledger.domain.summary import breakdown_by_tenant, summarize
from rent_ledger.domain.views import OwnerLedgerView, PaymentRecordView, TenantLedgerView
from rent_ledger.models.payment_record import PaymentRecord
from rent_ledger.selectors.base import BaseSelector


class LedgerSelector(BaseSelector[PaymentRecord]):
    """
    Query interface for the payment ledger.

    Contract:
        All methods are read-only and return DTOs (or scalars).
    """

    def __init__(
        self,
        session,
        policy: LateFeePolicy = DEFAULT_POLICY,
        severe_overdue_days: int = 60,
    ):
        super().__init__(session)
        self.policy = policy
        self.severe_overdue_days = severe_overdue_days

    def _views(self, records, today: date) -> tuple[PaymentRecordView, ...]:
        return tuple(PaymentRecordView.from_model(r, today, self.policy) for r in records)

    def get_view(self, record_id: UUID, today: date) -> PaymentRecordView | None:
        record = self.session.get(PaymentRecord, record_id)
        if record is None:
            return None
        return PaymentRecordView.from_model(record, today, self.policy)

    def count_for_lease(self, tenant_id: UUID, property_id: UUID) -> int:
        """How many records exist for a tenant-property pair."""
        return self.session.execute(
            select(func.count())
            .select_from(PaymentRecord)
            .where(
                PaymentRecord.tenant_id == tenant_id,
                PaymentRecord.property_id == property_id,
            )
        ).scalar_one()

    def tenant_records(self, tenant_id: UUID, today: date) -> tuple[PaymentRecordView, ...]:
        records = self.session.execute(
            select(PaymentRecord)
            .where(PaymentRecord.tenant_id == tenant_id)
            .order_by(PaymentRecord.lease_month.desc(), PaymentRecord.property_id)
        ).scalars().all()
        return self._views(records, today)

    def owner_records(self, owner_id: UUID, today: date) -> tuple[PaymentRecordView, ...]:
        records = self.session.execute(
            select(PaymentRecord)
            .where(PaymentRecord.owner_id == owner_id)
            .order_by(PaymentRecord.lease_month.desc(), PaymentRecord.tenant_id)
        ).scalars().all()
        return self._views(records, today)

    def tenant_ledger(self, tenant_id: UUID, today: date) -> TenantLedgerView:
        records = self.tenant_records(tenant_id, today)
        return TenantLedgerView(
            tenant_id=tenant_id,
            as_of=today,
            records=records,
            summary=summarize(records, self.severe_overdue_days),
        )

    def owner_ledger(self, owner_id: UUID, today: date) -> OwnerLedgerView:
        records = self.owner_records(owner_id, today)
        return OwnerLedgerView(
            owner_id=owner_id,
            as_of=today,
            records=records,
            summary=summarize(records, self.severe_overdue_days),
            tenants=breakdown_by_tenant(records),
        )
