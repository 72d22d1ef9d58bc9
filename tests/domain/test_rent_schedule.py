"""
Schedule expansion tests.

A lease yields one obligation per calendar month it touches, anchored on
the first of the month and due ``grace_days`` later.
"""

from datetime import date, timedelta
from decimal import Decimal

import pytest
from hypothesis import given
from hypothesis import strategies as st

from rent_ledger.domain.schedule import (
    add_months,
    build_schedule,
    lease_months,
    months_between,
)
from rent_ledger.exceptions import ValidationError


class TestBuildSchedule:

    def test_full_year_lease(self):
        schedule = build_schedule(date(2024, 1, 1), date(2024, 12, 31), Decimal("10000"))

        assert len(schedule) == 12
        assert schedule[0].lease_month == date(2024, 1, 1)
        assert schedule[0].due_date == date(2024, 1, 6)
        assert schedule[-1].lease_month == date(2024, 12, 1)
        assert schedule[-1].due_date == date(2024, 12, 6)
        assert all(item.base_amount == Decimal("10000.00") for item in schedule)

    def test_mid_month_start_includes_both_partial_months(self):
        schedule = build_schedule(date(2024, 1, 15), date(2024, 3, 10), Decimal("10000"))

        assert [item.lease_month for item in schedule] == [
            date(2024, 1, 1),
            date(2024, 2, 1),
            date(2024, 3, 1),
        ]
        assert [item.due_date for item in schedule] == [
            date(2024, 1, 6),
            date(2024, 2, 6),
            date(2024, 3, 6),
        ]

    def test_single_day_lease_yields_one_record(self):
        schedule = build_schedule(date(2024, 5, 20), date(2024, 5, 20), Decimal("8500"))

        assert len(schedule) == 1
        assert schedule[0].lease_month == date(2024, 5, 1)

    def test_lease_crossing_year_boundary(self):
        schedule = build_schedule(date(2023, 11, 1), date(2024, 2, 29), Decimal("12000"))

        assert [item.lease_month for item in schedule] == [
            date(2023, 11, 1),
            date(2023, 12, 1),
            date(2024, 1, 1),
            date(2024, 2, 1),
        ]

    def test_custom_grace_days(self):
        schedule = build_schedule(date(2024, 1, 1), date(2024, 2, 1), Decimal("100"), grace_days=0)

        assert schedule[0].due_date == date(2024, 1, 1)
        assert schedule[1].due_date == date(2024, 2, 1)

    def test_rent_rounded_to_cents(self):
        schedule = build_schedule(date(2024, 1, 1), date(2024, 1, 31), Decimal("999.995"))

        assert schedule[0].base_amount == Decimal("1000.00")

    def test_start_after_end_rejected(self):
        with pytest.raises(ValidationError) as exc_info:
            build_schedule(date(2024, 6, 1), date(2024, 5, 31), Decimal("10000"))

        assert exc_info.value.field == "end_date"

    @pytest.mark.parametrize("rent", [
        Decimal("0"),
        Decimal("-1"),
        Decimal("-10000"),
        Decimal("0.004"),
        Decimal("NaN"),
        Decimal("sNaN"),
        Decimal("Infinity"),
        Decimal("1E+40"),
        "ten thousand",
    ])
    def test_unusable_rent_rejected(self, rent):
        with pytest.raises(ValidationError) as exc_info:
            build_schedule(date(2024, 1, 1), date(2024, 12, 31), rent)

        assert exc_info.value.field == "monthly_rent"

    def test_negative_grace_days_rejected(self):
        with pytest.raises(ValidationError):
            build_schedule(date(2024, 1, 1), date(2024, 12, 31), Decimal("100"), grace_days=-1)


class TestMonthArithmetic:

    def test_add_months_wraps_year(self):
        assert add_months(date(2024, 12, 1), 1) == date(2025, 1, 1)
        assert add_months(date(2024, 1, 1), -1) == date(2023, 12, 1)

    def test_months_between_is_inclusive(self):
        assert months_between(date(2024, 1, 31), date(2024, 2, 1)) == 2
        assert months_between(date(2024, 3, 3), date(2024, 3, 30)) == 1

    def test_lease_months_are_first_of_month(self):
        assert lease_months(date(2024, 1, 31), date(2024, 3, 1)) == [
            date(2024, 1, 1),
            date(2024, 2, 1),
            date(2024, 3, 1),
        ]


class TestScheduleProperties:

    @given(
        start=st.dates(min_value=date(2000, 1, 1), max_value=date(2040, 12, 31)),
        span_days=st.integers(min_value=0, max_value=2000),
        grace=st.integers(min_value=0, max_value=27),
    )
    def test_one_record_per_calendar_month(self, start, span_days, grace):
        end = start + timedelta(days=span_days)
        schedule = build_schedule(start, end, Decimal("1000"), grace_days=grace)

        assert len(schedule) == months_between(start, end)
        months = [item.lease_month for item in schedule]
        assert len(set(months)) == len(months)
        assert all(m.day == 1 for m in months)
        assert months == sorted(months)
        for earlier, later in zip(months, months[1:]):
            assert later == add_months(earlier, 1)
        for item in schedule:
            assert (item.due_date - item.lease_month).days == grace
