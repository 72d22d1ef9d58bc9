"""
HTTP adapter for a Razorpay-compatible orders API.

    POST {base_url}/v1/orders      (HTTP basic auth: key_id / key_secret)
    {"amount": <minor units>, "currency": "INR", "receipt": "...", "notes": {...}}
    -> {"id": "order_...", "amount": ..., "currency": "INR", ...}

Signature verification is local: the gateway signs ``order_id|payment_id``
with the key secret and webhook bodies with the webhook secret (HMAC-SHA256,
hex).
"""

from typing import Any

import httpx

from rent_ledger.domain.signature import verify_signature, verify_webhook_signature
from rent_ledger.exceptions import GatewayError, GatewayUnavailableError
from rent_ledger.gateway.base import GatewayOrderResult, PaymentGateway
from rent_ledger.logging_config import get_logger

logger = get_logger("gateway.http")

ORDERS_PATH = "/v1/orders"

__all__ = ["HttpPaymentGateway"]


class HttpPaymentGateway(PaymentGateway):
    """
    Payment gateway backed by a REST API.

    Every request carries ``timeout_seconds``.  Timeouts, transport errors
    and 5xx responses raise GatewayUnavailableError; 4xx responses raise
    GatewayError with the status code.
    """

    def __init__(
        self,
        key_id: str,
        key_secret: str,
        base_url: str = "https://api.razorpay.com",
        timeout_seconds: float = 10.0,
        transport: httpx.BaseTransport | None = None,
        webhook_secret: str | None = None,
    ):
        self.key_id = key_id
        self._key_secret = key_secret
        self._webhook_secret = webhook_secret
        self.base = base_url.rstrip("/")
        self.timeout_seconds = timeout_seconds
        self._transport = transport

    def _client(self) -> httpx.Client:
        return httpx.Client(
            base_url=self.base,
            auth=(self.key_id, self._key_secret),
            timeout=self.timeout_seconds,
            transport=self._transport,
        )

    def _post(self, path: str, body: dict[str, Any]) -> dict[str, Any]:
        logger.info("gateway_request", extra={"method": "POST", "path": path})
        try:
            with self._client() as client:
                r = client.post(path, json=body)
        except httpx.TimeoutException as exc:
            logger.warning("gateway_timeout", extra={"path": path, "timeout": self.timeout_seconds})
            raise GatewayUnavailableError(f"timed out after {self.timeout_seconds}s") from exc
        except httpx.TransportError as exc:
            logger.warning("gateway_unreachable", extra={"path": path, "error": str(exc)})
            raise GatewayUnavailableError(f"unreachable: {exc}") from exc

        if r.status_code >= 500:
            logger.warning("gateway_server_error", extra={"path": path, "status_code": r.status_code})
            raise GatewayUnavailableError(
                f"gateway returned {r.status_code}", status_code=r.status_code
            )
        if r.status_code >= 400:
            description = _error_description(r)
            logger.error(
                "gateway_request_rejected",
                extra={"path": path, "status_code": r.status_code, "description": description},
            )
            raise GatewayError(description, status_code=r.status_code)

        try:
            data = r.json()
        except ValueError as exc:
            raise GatewayError("gateway returned a non-JSON body", status_code=r.status_code) from exc
        logger.info("gateway_response", extra={"path": path, "status_code": r.status_code})
        return data

    def create_order(
        self,
        amount_minor: int,
        currency: str,
        receipt_ref: str,
        notes: dict[str, str] | None = None,
    ) -> GatewayOrderResult:
        if amount_minor <= 0:
            raise GatewayError(f"order amount must be positive, got {amount_minor}")

        data = self._post(
            ORDERS_PATH,
            {
                "amount": amount_minor,
                "currency": currency,
                "receipt": receipt_ref,
                "notes": notes or {},
            },
        )
        order_id = data.get("id")
        if not order_id:
            raise GatewayError("gateway response has no order id")
        if data.get("amount", amount_minor) != amount_minor or data.get("currency", currency) != currency:
            raise GatewayError(
                f"gateway echoed {data.get('amount')} {data.get('currency')}, "
                f"requested {amount_minor} {currency}"
            )
        return GatewayOrderResult(
            order_id=order_id,
            amount_minor=amount_minor,
            currency=currency,
            receipt=data.get("receipt", receipt_ref),
            raw=data,
        )

    def verify_signature(self, order_id: str, transaction_id: str, signature: str) -> bool:
        return verify_signature(self._key_secret, order_id, transaction_id, signature)

    def verify_webhook(self, body: bytes, signature: str) -> bool:
        if not self._webhook_secret:
            raise GatewayUnavailableError("Webhook secret is not configured")
        return verify_webhook_signature(self._webhook_secret, body, signature)


def _error_description(response: httpx.Response) -> str:
    try:
        body = response.json()
    except ValueError:
        return response.text[:200] or f"HTTP {response.status_code}"
    error = body.get("error") if isinstance(body, dict) else None
    if isinstance(error, dict) and error.get("description"):
        return error["description"]
    return f"HTTP {response.status_code}"
