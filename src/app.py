import logging
import signal
import threading
from dataclasses import dataclass

from src.config import Settings, settings as default_settings
from src.gateways.registry import GatewayRegistry, build_default_registry
from src.ledger.service import PaymentLedgerService
from src.ledger.store import InMemoryLedgerStore, LedgerStore
from src.observability.logging import configure_logging
from src.observability.metrics import PaymentMetrics
from src.reconciliation.poller import ReconciliationPoller
from src.reconciliation.retry import RetryPolicy
from src.webhooks.processor import PaymentWebhookProcessor
from src.webhooks.receiver import WebhookReceiverServer


logger = logging.getLogger("payments")


@dataclass
class PaymentsApp:
    registry: GatewayRegistry
    store: LedgerStore
    metrics: PaymentMetrics
    ledger: PaymentLedgerService
    processor: PaymentWebhookProcessor
    poller: ReconciliationPoller
    receiver: WebhookReceiverServer

    def start(self) -> None:
        self.receiver.start()
        self.poller.start()

    def stop(self) -> None:
        self.poller.stop()
        self.receiver.stop()


def build_app(
    settings: Settings | None = None,
    store: LedgerStore | None = None,
    registry: GatewayRegistry | None = None,
) -> PaymentsApp:
    settings = settings or default_settings
    store = store or InMemoryLedgerStore()
    registry = registry or build_default_registry(settings)
    metrics = PaymentMetrics()

    processor = PaymentWebhookProcessor(
        registry, store, metrics, signature_header=settings.WEBHOOK_SIGNATURE_HEADER,
    )
    poller = ReconciliationPoller(
        registry,
        store,
        metrics,
        interval_seconds=settings.POLL_INTERVAL_SECONDS,
        batch_size=settings.POLL_BATCH_SIZE,
        retry_policy=RetryPolicy(settings.POLL_MAX_ATTEMPTS, settings.POLL_BACKOFF_SECONDS),
        call_timeout=settings.GATEWAY_TIMEOUT_SECONDS,
    )
    return PaymentsApp(
        registry=registry,
        store=store,
        metrics=metrics,
        ledger=PaymentLedgerService(registry, store),
        processor=processor,
        poller=poller,
        receiver=WebhookReceiverServer(
            processor, host=settings.RECEIVER_HOST, port=settings.RECEIVER_PORT,
        ),
    )


def main() -> None:
    configure_logging(default_settings.LOG_LEVEL)
    app = build_app()
    shutdown = threading.Event()
    signal.signal(signal.SIGINT, lambda *_: shutdown.set())
    signal.signal(signal.SIGTERM, lambda *_: shutdown.set())

    app.start()
    logger.info("Payments subsystem running; webhooks at %s", app.receiver.url_for("<provider>"))
    shutdown.wait()
    app.stop()


if __name__ == "__main__":
    main()
