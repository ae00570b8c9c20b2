from .payment import (
    PaymentProvider,
    PaymentTransaction,
    PaymentTransactionStatus,
    POLLABLE_STATUSES,
    TERMINAL_STATUSES,
)
from .webhook import PaymentWebhookLog, WebhookOutcome
from .gateway import GatewayRequest, GatewayResponse, Result

__all__ = [
    "PaymentProvider", "PaymentTransaction", "PaymentTransactionStatus",
    "POLLABLE_STATUSES", "TERMINAL_STATUSES",
    "PaymentWebhookLog", "WebhookOutcome",
    "GatewayRequest", "GatewayResponse", "Result",
]
