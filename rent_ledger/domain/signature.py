"""
Gateway signatures.

Payment confirmations: the gateway signs ``order_id + "|" + transaction_id``
with HMAC-SHA256 keyed by the merchant key secret and sends the hex digest
along with the confirmation.

Webhooks: the gateway signs the raw request body with the webhook secret
(HMAC-SHA256, hex) and sends the digest in a request header.

Digests are compared as bytes, so a signature carrying non-ASCII characters
verifies as False rather than raising.
"""

import hashlib
import hmac


def signing_payload(order_id: str, transaction_id: str) -> bytes:
    return f"{order_id}|{transaction_id}".encode("utf-8")


def _hex_hmac(secret: str, message: bytes) -> str:
    return hmac.new(secret.encode("utf-8"), message, hashlib.sha256).hexdigest()


def _digests_match(expected: str, signature: str) -> bool:
    return hmac.compare_digest(expected.encode("ascii"), signature.encode("utf-8"))


def sign_payment(secret: str, order_id: str, transaction_id: str) -> str:
    """Hex HMAC-SHA256 of ``order_id|transaction_id``."""
    return _hex_hmac(secret, signing_payload(order_id, transaction_id))


def verify_signature(secret: str, order_id: str, transaction_id: str, signature: str) -> bool:
    """Constant-time comparison against the expected signature."""
    if not secret or not signature:
        return False
    return _digests_match(sign_payment(secret, order_id, transaction_id), signature)


def sign_webhook(secret: str, body: bytes) -> str:
    """Hex HMAC-SHA256 of the raw webhook body."""
    return _hex_hmac(secret, body)


def verify_webhook_signature(secret: str, body: bytes, signature: str) -> bool:
    if not secret or not signature:
        return False
    return _digests_match(sign_webhook(secret, body), signature)
