"""Payment gateway adapters."""

from rent_ledger.gateway.base import GatewayOrderResult, PaymentGateway, UnavailableGateway
from rent_ledger.gateway.http_gateway import HttpPaymentGateway

__all__ = [
    "GatewayOrderResult",
    "HttpPaymentGateway",
    "PaymentGateway",
    "UnavailableGateway",
]
