"""
Schedule -- month-by-month expansion of a lease into rent obligations.

Responsibility:
    Turns a lease (start date, end date, monthly rent) into one
    ScheduledPayment per calendar month touched by the lease.

Architecture position:
    Ledger > Domain -- pure functional core, zero I/O.

Invariants enforced:
    - Months advance by exactly one calendar month, never by 30 days.
    - lease_month is always the first day of the month.
    - due_date = lease_month + grace_days.
    - The month of start_date and the month of end_date are both included,
      so a single-day lease yields exactly one obligation.

Failure modes:
    - ValidationError when start_date > end_date or monthly_rent <= 0.
"""

from dataclasses import dataclass
from datetime import date, timedelta
from decimal import Decimal, InvalidOperation

from rent_ledger.db.types import round_money
from rent_ledger.exceptions import ValidationError


@dataclass(frozen=True)
class ScheduledPayment:
    """One month of a lease, before persistence."""

    lease_month: date
    due_date: date
    base_amount: Decimal


def first_of_month(day: date) -> date:
    return day.replace(day=1)


def add_months(day: date, months: int) -> date:
    """Shift a first-of-month date by whole calendar months."""
    index = day.year * 12 + (day.month - 1) + months
    return date(index // 12, index % 12 + 1, 1)


def months_between(start_date: date, end_date: date) -> int:
    """Number of calendar months from start_date's month to end_date's, inclusive."""
    return (end_date.year - start_date.year) * 12 + (end_date.month - start_date.month) + 1


def lease_months(start_date: date, end_date: date) -> list[date]:
    """First-of-month anchors for every month the lease touches."""
    if start_date > end_date:
        raise ValidationError(
            "end_date",
            f"lease end {end_date.isoformat()} is before start {start_date.isoformat()}",
        )
    anchor = first_of_month(start_date)
    return [add_months(anchor, n) for n in range(months_between(start_date, end_date))]


def build_schedule(
    start_date: date,
    end_date: date,
    monthly_rent: Decimal,
    grace_days: int = 5,
) -> list[ScheduledPayment]:
    """
    Expand a lease into its monthly payment schedule.

    Preconditions: start_date <= end_date, monthly_rent > 0, grace_days >= 0.
    Postconditions: len(result) == months_between(start_date, end_date); each
        entry is due grace_days after its lease month begins.

    Example:
        build_schedule(date(2024, 1, 15), date(2024, 3, 10), Decimal("10000"))
        -> Jan 1 (due Jan 6), Feb 1 (due Feb 6), Mar 1 (due Mar 6)
    """
    if not isinstance(monthly_rent, Decimal):
        try:
            monthly_rent = Decimal(str(monthly_rent))
        except InvalidOperation as exc:
            raise ValidationError("monthly_rent", f"not a number: {monthly_rent!r}") from exc
    if not monthly_rent.is_finite():
        raise ValidationError("monthly_rent", f"must be a finite amount, got {monthly_rent}")
    try:
        amount = round_money(monthly_rent)
    except InvalidOperation as exc:
        raise ValidationError("monthly_rent", f"out of range: {monthly_rent}") from exc
    if amount <= 0:
        raise ValidationError(
            "monthly_rent", f"must be positive after rounding to 2 places, got {monthly_rent}"
        )
    if grace_days < 0:
        raise ValidationError("grace_days", f"must not be negative, got {grace_days}")

    return [
        ScheduledPayment(
            lease_month=month,
            due_date=month + timedelta(days=grace_days),
            base_amount=amount,
        )
        for month in lease_months(start_date, end_date)
    ]
