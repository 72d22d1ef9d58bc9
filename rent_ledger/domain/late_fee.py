"""
Late fees and derived status -- pure functions of record state and "today".

Responsibility:
    Computes days overdue, the time-based late fee, the total amount due,
    and the display status of a payment record.  Nothing here reads the
    clock or the database: callers pass ``today`` explicitly (the UTC
    calendar date from the injected Clock).

Architecture position:
    Ledger > Domain -- pure functional core, zero I/O.

Invariants enforced:
    - Late fee is 0 until the day after the due date.
    - Late fee = base_amount * rate * ceil(days_overdue / period_days),
      rounded to 2 places half-up by round_money.  It is non-decreasing in
      today and steps exactly every period_days.
    - Paid records report 0 days overdue and their pinned late fee (0).
    - Only pending and paid are stored; overdue is always derived here.

Example (rate 5%, period 30 days):
    base 10000, due 2024-01-06, today 2024-02-21 -> 46 days overdue,
    ceil(46/30) = 2 periods, late fee 1000.00, total 11000.00.
"""

from dataclasses import dataclass
from datetime import date
from decimal import Decimal
from typing import Protocol

from rent_ledger.db.types import round_money

PAID = "paid"
PENDING = "pending"
OVERDUE = "overdue"


class DueRecord(Protocol):
    """Any payment record shape: the ORM model or a snapshot of it."""

    status: str
    due_date: date
    base_amount: Decimal
    late_fee: Decimal


@dataclass(frozen=True)
class LateFeePolicy:
    """Late-fee parameters; built from LedgerConfig."""

    rate: Decimal = Decimal("0.05")
    period_days: int = 30

    def __post_init__(self):
        if self.rate < 0:
            raise ValueError(f"late fee rate must not be negative, got {self.rate}")
        if self.period_days <= 0:
            raise ValueError(f"late fee period must be positive, got {self.period_days}")


DEFAULT_POLICY = LateFeePolicy()


def _is_paid(record: DueRecord) -> bool:
    return record.status == PAID


def days_overdue(record: DueRecord, today: date) -> int:
    """Whole days past the due date; 0 for paid records and on/before the due date."""
    if _is_paid(record):
        return 0
    return max(0, (today - record.due_date).days)


def late_fee_periods(days: int, period_days: int) -> int:
    """ceil(days / period_days) in integer arithmetic."""
    if days <= 0:
        return 0
    return -(-days // period_days)


def compute_late_fee(
    record: DueRecord,
    today: date,
    policy: LateFeePolicy = DEFAULT_POLICY,
) -> Decimal:
    """Late fee owed as of ``today``; the pinned value for paid records."""
    if _is_paid(record):
        return round_money(record.late_fee or Decimal("0"))
    periods = late_fee_periods(days_overdue(record, today), policy.period_days)
    if periods == 0:
        return round_money(Decimal("0"))
    return round_money(record.base_amount * policy.rate * periods)


def compute_total_amount(
    record: DueRecord,
    today: date,
    policy: LateFeePolicy = DEFAULT_POLICY,
) -> Decimal:
    """base_amount + late fee as of ``today``."""
    return round_money(record.base_amount + compute_late_fee(record, today, policy))


def derive_status(record: DueRecord, today: date) -> str:
    """paid if settled, otherwise pending or overdue depending on the due date."""
    if _is_paid(record):
        return PAID
    if days_overdue(record, today) == 0:
        return PENDING
    return OVERDUE


@dataclass(frozen=True)
class DueFigures:
    """Everything a reader needs about a record as of one date."""

    status: str
    days_overdue: int
    late_fee: Decimal
    total_amount: Decimal


def evaluate(
    record: DueRecord,
    today: date,
    policy: LateFeePolicy = DEFAULT_POLICY,
) -> DueFigures:
    fee = compute_late_fee(record, today, policy)
    return DueFigures(
        status=derive_status(record, today),
        days_overdue=days_overdue(record, today),
        late_fee=fee,
        total_amount=round_money(record.base_amount + fee),
    )
