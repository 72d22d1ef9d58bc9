"""
Webhook authentication: deliveries are verified against the raw body with
the webhook secret before anything reads them.
"""

import json

import pytest

from rent_ledger.exceptions import (
    GatewayUnavailableError,
    ValidationError,
    WebhookSignatureError,
)
from rent_ledger.models.payment_record import PaymentRecord
from rent_ledger.services.ledger_service import RentLedgerService

CAPTURED = json.dumps(
    {"event": "payment.captured", "payload": {"order_id": "order_test0001"}},
    separators=(",", ":"),
).encode("utf-8")


class TestAcceptWebhook:

    def test_signed_delivery_returns_event(self, ledger, fake_gateway):
        event = ledger.accept_webhook(CAPTURED, fake_gateway.sign_webhook(CAPTURED))

        assert event == {"event": "payment.captured", "payload": {"order_id": "order_test0001"}}

    def test_verified_delivery_logged(self, ledger, fake_gateway, captured_logs):
        ledger.accept_webhook(CAPTURED, fake_gateway.sign_webhook(CAPTURED))

        verified = [r for r in captured_logs() if r["message"] == "webhook_verified"]
        assert verified and verified[0]["event"] == "payment.captured"

    @pytest.mark.parametrize("signature", ["", None, "0" * 64, "é" * 64])
    def test_bad_signature_rejected(self, ledger, signature, captured_logs):
        with pytest.raises(WebhookSignatureError) as exc_info:
            ledger.accept_webhook(CAPTURED, signature)

        assert exc_info.value.code == "INVALID_WEBHOOK_SIGNATURE"
        assert exc_info.value.body_size == len(CAPTURED)
        assert any(r["message"] == "webhook_signature_rejected" for r in captured_logs())

    def test_payment_signature_does_not_authenticate_webhook(self, ledger, fake_gateway):
        signature = fake_gateway.sign("order_test0001", "pay_001")

        with pytest.raises(WebhookSignatureError):
            ledger.accept_webhook(CAPTURED, signature)

    def test_tampered_body_rejected(self, ledger, fake_gateway):
        signature = fake_gateway.sign_webhook(CAPTURED)

        with pytest.raises(WebhookSignatureError):
            ledger.accept_webhook(CAPTURED.replace(b"captured", b"refunded"), signature)

    @pytest.mark.parametrize("body", [b"not json", b"[1, 2]", b'"payment"'])
    def test_signed_body_must_be_json_object(self, ledger, fake_gateway, body):
        with pytest.raises(ValidationError) as exc_info:
            ledger.accept_webhook(body, fake_gateway.sign_webhook(body))

        assert exc_info.value.field == "body"

    def test_unconfigured_gateway_cannot_authenticate(self, session, deterministic_clock):
        unconfigured = RentLedgerService(session, clock=deterministic_clock)

        with pytest.raises(GatewayUnavailableError):
            unconfigured.accept_webhook(CAPTURED, "0" * 64)

    def test_webhook_does_not_settle(self, ledger, fake_gateway, create_lease, tenant, session):
        lease = create_lease()
        quote = ledger.create_order([lease[0].id], tenant)
        body = json.dumps({"event": "payment.captured", "payload": {"order_id": quote.order_id}})
        body = body.encode("utf-8")

        ledger.accept_webhook(body, fake_gateway.sign_webhook(body))

        assert not session.get(PaymentRecord, lease[0].id).is_paid
