"""Summary and per-tenant breakdown tests over record views."""

from datetime import date
from decimal import Decimal
from uuid import uuid4

from rent_ledger.domain.summary import LedgerSummary, breakdown_by_tenant, summarize
from rent_ledger.domain.views import PaymentRecordView

TENANT_A = uuid4()
TENANT_B = uuid4()
PROPERTY = uuid4()
OWNER = uuid4()


def view(
    month: int,
    status: str,
    base: str = "10000",
    late_fee: str = "0",
    days: int = 0,
    tenant=TENANT_A,
) -> PaymentRecordView:
    base_amount = Decimal(base)
    fee = Decimal(late_fee)
    return PaymentRecordView(
        id=uuid4(),
        tenant_id=tenant,
        property_id=PROPERTY,
        owner_id=OWNER,
        lease_month=date(2024, month, 1),
        due_date=date(2024, month, 6),
        base_amount=base_amount,
        late_fee=fee,
        total_amount=base_amount + fee,
        status=status,
        days_overdue=days,
    )


class TestSummarize:

    def test_empty_ledger(self):
        summary = summarize([])

        assert summary == LedgerSummary()
        assert summary.to_dict()["totalAmount"] == "0.00"

    def test_counts_and_sums_by_status(self):
        records = [
            view(1, "paid"),
            view(2, "overdue", late_fee="1000", days=46),
            view(3, "overdue", late_fee="500", days=15),
            view(4, "pending"),
        ]

        summary = summarize(records)

        assert summary.total_count == 4
        assert summary.paid_count == 1
        assert summary.overdue_count == 2
        assert summary.pending_count == 1
        assert summary.total_amount == Decimal("40000.00")
        assert summary.total_paid == Decimal("10000.00")
        assert summary.total_pending == Decimal("30000.00")
        assert summary.total_late_fees == Decimal("1500.00")

    def test_severe_bucket_uses_threshold(self):
        records = [
            view(1, "overdue", late_fee="1500", days=61),
            view(2, "overdue", late_fee="1000", days=60),
        ]

        summary = summarize(records, severe_overdue_days=60)

        assert summary.severe_overdue_count == 1
        assert summary.severe_overdue_amount == Decimal("11500.00")

    def test_paid_records_never_severe(self):
        summary = summarize([view(1, "paid", days=0)], severe_overdue_days=0)

        assert summary.severe_overdue_count == 0

    def test_to_dict_keys(self):
        summary = summarize([view(1, "pending")])

        assert summary.to_dict() == {
            "totalPayments": 1,
            "paidPayments": 0,
            "pendingPayments": 1,
            "overduePayments": 0,
            "totalAmount": "10000.00",
            "totalPaid": "0.00",
            "totalPending": "10000.00",
            "totalLateFees": "0.00",
            "overdueMonths": 0,
            "overdueAmount": "0.00",
        }


class TestBreakdownByTenant:

    def test_groups_per_tenant_in_first_seen_order(self):
        records = [
            view(3, "pending", tenant=TENANT_B),
            view(2, "overdue", late_fee="500", days=20),
            view(1, "paid"),
            view(2, "paid", tenant=TENANT_B, base="8000"),
        ]

        groups = breakdown_by_tenant(records)

        assert [g.tenant_id for g in groups] == [TENANT_B, TENANT_A]
        b, a = groups
        assert b.total_rent == Decimal("18000.00")
        assert b.total_paid == Decimal("8000.00")
        assert b.total_pending == Decimal("10000.00")
        assert b.total_overdue == Decimal("0.00")
        assert a.total_overdue == Decimal("10000.00")
        assert a.late_fees == Decimal("500.00")
        assert len(a.records) == 2

    def test_to_dict_includes_payments(self):
        (group,) = breakdown_by_tenant([view(1, "pending")])

        data = group.to_dict()

        assert data["tenantId"] == str(TENANT_A)
        assert data["totalRent"] == "10000.00"
        assert len(data["payments"]) == 1
