"""HMAC-SHA256 payment confirmation and webhook signature tests."""

import hashlib
import hmac

import pytest

from rent_ledger.domain.signature import (
    sign_payment,
    sign_webhook,
    signing_payload,
    verify_signature,
    verify_webhook_signature,
)

SECRET = "s3cret"
BODY = b'{"event":"payment.captured","payload":{"order_id":"order_1"}}'


class TestSignature:

    def test_signs_order_pipe_transaction(self):
        expected = hmac.new(b"s3cret", b"order_1|pay_1", hashlib.sha256).hexdigest()

        assert signing_payload("order_1", "pay_1") == b"order_1|pay_1"
        assert sign_payment(SECRET, "order_1", "pay_1") == expected

    def test_valid_signature_verifies(self):
        signature = sign_payment(SECRET, "order_1", "pay_1")

        assert verify_signature(SECRET, "order_1", "pay_1", signature)

    def test_tampered_transaction_rejected(self):
        signature = sign_payment(SECRET, "order_1", "pay_1")

        assert not verify_signature(SECRET, "order_1", "pay_2", signature)

    def test_swapped_order_rejected(self):
        signature = sign_payment(SECRET, "order_1", "pay_1")

        assert not verify_signature(SECRET, "order_2", "pay_1", signature)

    def test_wrong_secret_rejected(self):
        signature = sign_payment("other", "order_1", "pay_1")

        assert not verify_signature(SECRET, "order_1", "pay_1", signature)

    def test_empty_signature_or_secret_rejected(self):
        assert not verify_signature(SECRET, "order_1", "pay_1", "")
        assert not verify_signature("", "order_1", "pay_1", sign_payment("", "order_1", "pay_1"))

    @pytest.mark.parametrize("mangle", [
        lambda good: "é" + good[1:],
        lambda good: good[:-1] + "☃",
        lambda good: "ü" * len(good),
    ])
    def test_non_ascii_signature_rejected_not_raised(self, mangle):
        good = sign_payment(SECRET, "order_1", "pay_1")

        assert verify_signature(SECRET, "order_1", "pay_1", mangle(good)) is False

    def test_uppercase_hex_rejected(self):
        signature = sign_payment(SECRET, "order_1", "pay_1").upper()

        assert not verify_signature(SECRET, "order_1", "pay_1", signature)


class TestWebhookSignature:

    def test_signs_raw_body(self):
        expected = hmac.new(b"s3cret", BODY, hashlib.sha256).hexdigest()

        assert sign_webhook(SECRET, BODY) == expected

    def test_valid_signature_verifies(self):
        assert verify_webhook_signature(SECRET, BODY, sign_webhook(SECRET, BODY))

    def test_reserialized_body_rejected(self):
        signature = sign_webhook(SECRET, BODY)
        reformatted = BODY.replace(b":", b": ")

        assert not verify_webhook_signature(SECRET, reformatted, signature)

    def test_wrong_secret_rejected(self):
        assert not verify_webhook_signature(SECRET, BODY, sign_webhook("other", BODY))

    def test_empty_signature_or_secret_rejected(self):
        assert not verify_webhook_signature(SECRET, BODY, "")
        assert not verify_webhook_signature("", BODY, sign_webhook("", BODY))

    def test_non_ascii_signature_rejected_not_raised(self):
        good = sign_webhook(SECRET, BODY)

        assert verify_webhook_signature(SECRET, BODY, "é" + good[1:]) is False
