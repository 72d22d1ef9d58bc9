"""Structured ledger logging: JSON lines, bound identifiers, error payloads."""

import json
import logging
from datetime import date, datetime, timezone
from decimal import Decimal
from io import StringIO
from uuid import uuid4

import pytest

from rent_ledger.exceptions import (
    GatewayUnavailableError,
    InvalidSignatureError,
    WebhookSignatureError,
)
from rent_ledger.logging_config import (
    LogContext,
    configure_logging,
    get_logger,
    reset_logging,
)


@pytest.fixture
def stream():
    """Route rent_ledger logs into a buffer, then restore the suite's setup."""
    buffer = StringIO()
    reset_logging()
    configure_logging(level=logging.DEBUG, stream=buffer)
    yield buffer
    reset_logging()
    configure_logging(level=logging.DEBUG)


def _lines(buffer: StringIO) -> list[dict]:
    return [json.loads(line) for line in buffer.getvalue().splitlines() if line]


def _log_error(exc: Exception) -> None:
    try:
        raise exc
    except Exception:
        get_logger("test").error("operation_failed", exc_info=True)


class TestLineFormat:

    def test_core_fields(self, stream):
        get_logger("services.ledger").info("schedule_generation_started")

        (line,) = _lines(stream)
        assert line["level"] == "INFO"
        assert line["logger"] == "rent_ledger.services.ledger"
        assert line["message"] == "schedule_generation_started"
        assert datetime.fromisoformat(line["ts"]).tzinfo is not None

    def test_ledger_values_serialized(self, stream):
        record_id = uuid4()
        get_logger("test").info("late_fee_priced", extra={
            "record_id_value": record_id,
            "late_fee": Decimal("550.00"),
            "due_date": date(2024, 1, 6),
            "paid_at": datetime(2024, 2, 21, 9, 30, tzinfo=timezone.utc),
        })

        (line,) = _lines(stream)
        assert line["record_id_value"] == str(record_id)
        assert line["late_fee"] == "550.00"
        assert line["due_date"] == "2024-01-06"
        assert line["paid_at"] == "2024-02-21T09:30:00+00:00"

    def test_bound_identifiers_precede_extra(self, stream):
        with LogContext.bind(order_id="order_1"):
            get_logger("test").info("order_created", extra={"order_id": "ignored", "amount_minor": 100})

        (line,) = _lines(stream)
        assert line["order_id"] == "order_1"
        assert line["amount_minor"] == 100

    def test_no_identifiers_outside_bind(self, stream):
        get_logger("test").info("bare")

        (line,) = _lines(stream)
        assert not set(line) & {"actor_id", "tenant_id", "owner_id", "order_id", "record_id"}


class TestErrorPayload:

    def test_gateway_unavailable_carries_code(self, stream):
        _log_error(GatewayUnavailableError("connection refused"))

        error = _lines(stream)[0]["error"]
        assert error["type"] == "GatewayUnavailableError"
        assert error["code"] == "GATEWAY_UNAVAILABLE"
        assert error["reason"] == "connection refused"

    def test_invalid_signature_carries_order_and_transaction(self, stream):
        _log_error(InvalidSignatureError("order_1", "pay_1"))

        line = _lines(stream)[0]
        assert line["error"]["code"] == "INVALID_SIGNATURE"
        assert line["error"]["order_id"] == "order_1"
        assert line["error"]["transaction_id"] == "pay_1"
        assert "Traceback" in line["traceback"]

    def test_webhook_rejection_carries_body_size(self, stream):
        _log_error(WebhookSignatureError(42))

        assert _lines(stream)[0]["error"]["body_size"] == 42

    def test_foreign_exception_has_no_code(self, stream):
        _log_error(ValueError("boom"))

        assert _lines(stream)[0]["error"] == {"type": "ValueError", "message": "boom"}


class TestLogContext:

    def test_bind_stringifies_and_skips_none(self):
        owner_id = uuid4()

        with LogContext.bind(owner_id=owner_id, record_id=None):
            assert LogContext.get_all() == {"owner_id": str(owner_id)}

    def test_nested_bind_restores_outer(self):
        with LogContext.bind(tenant_id="t1", order_id="order_1"):
            with LogContext.bind(order_id="order_2"):
                assert LogContext.get_all() == {"tenant_id": "t1", "order_id": "order_2"}
            assert LogContext.get_all() == {"tenant_id": "t1", "order_id": "order_1"}
        assert LogContext.get_all() == {}

    def test_bind_restores_after_exception(self):
        with pytest.raises(RuntimeError):
            with LogContext.bind(record_id="r1"):
                raise RuntimeError("boom")

        assert LogContext.get_all() == {}

    def test_unknown_field_rejected(self):
        with pytest.raises(TypeError, match="property_id"):
            with LogContext.bind(property_id="p1"):
                pass


class TestConfigureLogging:

    def test_first_configuration_wins(self, stream):
        other = StringIO()
        configure_logging(level=logging.ERROR, stream=other)

        get_logger("test").debug("still_debug")

        assert other.getvalue() == ""
        assert _lines(stream)[0]["message"] == "still_debug"

    def test_level_filters(self):
        buffer = StringIO()
        reset_logging()
        try:
            configure_logging(level=logging.WARNING, stream=buffer)
            get_logger("test").info("dropped")
            get_logger("test").warning("kept")
        finally:
            reset_logging()
            configure_logging(level=logging.DEBUG)

        assert [line["message"] for line in _lines(buffer)] == ["kept"]

    def test_reset_removes_only_ledger_handler(self):
        root = logging.getLogger("rent_ledger")
        foreign = logging.NullHandler()
        root.addHandler(foreign)
        try:
            reset_logging()
            assert root.handlers == [foreign]
            assert root.propagate
        finally:
            root.removeHandler(foreign)
            configure_logging(level=logging.DEBUG)


class TestLedgerOperationsBindIdentifiers:

    def test_schedule_generation_lines_carry_lease_parties(
        self, create_lease, captured_logs, owner_id, tenant_id,
    ):
        create_lease(date(2024, 1, 1), date(2024, 3, 31))

        started = next(
            r for r in captured_logs() if r["message"] == "schedule_generation_started"
        )
        assert started["tenant_id"] == str(tenant_id)
        assert started["owner_id"] == str(owner_id)
        assert started["actor_id"] == str(owner_id)
        assert LogContext.get_all() == {}

    def test_settlement_lines_carry_order_id(
        self, ledger, create_lease, tenant, fake_gateway, captured_logs,
    ):
        lease = create_lease(date(2024, 1, 1), date(2024, 3, 31))
        quote = ledger.create_order([lease[0].id], tenant)

        ledger.verify_and_settle(
            quote.order_id, "pay_001", fake_gateway.sign(quote.order_id, "pay_001")
        )

        verified = next(r for r in captured_logs() if r["message"] == "payment_verified")
        assert verified["order_id"] == quote.order_id
        assert verified["settled_count"] == 1

    def test_manual_settlement_lines_carry_record_id(
        self, ledger, create_lease, owner, captured_logs,
    ):
        lease = create_lease(date(2024, 1, 1), date(2024, 3, 31))

        ledger.mark_manually_paid(lease[0].id, "cash", "", owner)

        settled = next(
            r for r in captured_logs() if r["message"] == "payment_settled_manually"
        )
        assert settled["record_id"] == str(lease[0].id)
        assert settled["payment_method"] == "cash"
