from .crypto import generate_signature, payload_hash, verify_signature
from .factories import SwitchWebhookFactory, TransactionFactory

__all__ = [
    "generate_signature", "verify_signature", "payload_hash",
    "TransactionFactory", "SwitchWebhookFactory",
]
