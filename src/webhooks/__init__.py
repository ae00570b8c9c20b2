from .processor import PaymentWebhookProcessor
from .receiver import WebhookReceiverServer

__all__ = ["PaymentWebhookProcessor", "WebhookReceiverServer"]
