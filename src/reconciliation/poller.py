"""Background reconciliation of ledger rows stuck in PENDING/PROCESSING.

Webhooks can be lost, so every ``interval_seconds`` the poller asks each
provider for the authoritative status of a bounded, oldest-first batch of
open transactions. A query that keeps failing leaves the row untouched;
the next cycle will try again.
"""

import logging
import threading
import time
from dataclasses import dataclass, field
from datetime import datetime, timezone

from src.gateways.base import PaymentGateway
from src.gateways.registry import GatewayRegistry
from src.ledger.store import LedgerStore
from src.models.errors import ConfigurationError
from src.models.gateway import GatewayResponse
from src.models.payment import PaymentProvider, PaymentTransaction, PaymentTransactionStatus
from src.observability.metrics import PaymentMetrics
from src.reconciliation.retry import RetryPolicy


logger = logging.getLogger("payments.reconciliation")


@dataclass
class CycleReport:
    scanned: int = 0
    updated: int = 0
    failed: int = 0
    attempts: dict[str, int] = field(default_factory=dict)  # reference -> status queries made


class ReconciliationPoller:

    def __init__(
        self,
        registry: GatewayRegistry,
        store: LedgerStore,
        metrics: PaymentMetrics,
        providers: list[PaymentProvider] | None = None,
        interval_seconds: float = 120,
        batch_size: int = 25,
        retry_policy: RetryPolicy | None = None,
        delay_factor: float = 1.0,
        call_timeout: float | None = None,
    ):
        """
        Args:
            providers: Providers to reconcile. Defaults to every registered
                gateway that supports status polling.
            delay_factor: Multiplier for retry backoff (use 0 in tests to skip waits).
            call_timeout: Per-call timeout handed to ``get_status``.
        """
        self.registry = registry
        self.store = store
        self.metrics = metrics
        self.interval_seconds = interval_seconds
        self.batch_size = batch_size
        self.retry_policy = retry_policy or RetryPolicy()
        self.delay_factor = delay_factor
        self.call_timeout = call_timeout

        if providers is None:
            providers = [p for p in registry.providers if registry.get(p).supports_polling]
        for provider in providers:
            if provider not in registry:
                raise ConfigurationError(f"Cannot reconcile {provider.value}: no gateway registered")
        self.providers = list(providers)

        self.cycles_completed = 0
        self._stop_event = threading.Event()
        self._thread: threading.Thread | None = None

    # -- lifecycle --------------------------------------------------------

    def start(self) -> None:
        if self.is_running:
            return
        self._stop_event.clear()
        self._thread = threading.Thread(
            target=self.run_forever, name="reconciliation-poller", daemon=True,
        )
        self._thread.start()

    def stop(self, timeout: float | None = 10) -> None:
        self._stop_event.set()
        if self._thread:
            self._thread.join(timeout=timeout)
            self._thread = None

    @property
    def is_running(self) -> bool:
        return self._thread is not None and self._thread.is_alive()

    def run_forever(self) -> None:
        logger.info(
            "Reconciliation poller started for %s every %ss",
            [p.value for p in self.providers], self.interval_seconds,
        )
        while not self._stop_event.is_set():
            try:
                report = self.run_cycle()
                if report.scanned:
                    logger.info(
                        "Reconciliation cycle: %d scanned, %d updated, %d failed",
                        report.scanned, report.updated, report.failed,
                    )
            except Exception:
                logger.exception("Reconciliation cycle failed; continuing")
            self.cycles_completed += 1
            self._stop_event.wait(self.interval_seconds)
        logger.info("Reconciliation poller stopped")

    # -- one cycle --------------------------------------------------------

    def run_cycle(self) -> CycleReport:
        report = CycleReport()
        for provider in self.providers:
            if self._stop_event.is_set():
                break
            self._reconcile_provider(provider, report)
        return report

    def _reconcile_provider(self, provider: PaymentProvider, report: CycleReport) -> None:
        gateway = self.registry.get(provider)
        batch = self.store.list_pending(provider, self.batch_size)
        updated: list[PaymentTransaction] = []

        for transaction in batch:
            if self._stop_event.is_set():
                logger.warning("Poller stopping before finishing the %s batch", provider.value)
                break
            report.scanned += 1

            response = self._query_with_retry(gateway, transaction, report)
            if response is None:
                report.failed += 1
                self.metrics.record_poll_failure()
                continue
            self.metrics.record_poll_success()

            if not response.status_recognized:
                logger.warning(
                    "%s returned an unrecognized status for %s (%s); leaving it %s",
                    provider.value, transaction.transaction_reference,
                    response.status_message, transaction.status.value,
                )
                continue
            if response.status is PaymentTransactionStatus.REFUNDED:
                # Refunds are operator-triggered; polling never applies them.
                continue
            if transaction.apply_status(
                response.status,
                response.status_message,
                now=datetime.now(timezone.utc),
            ):
                updated.append(transaction)

        if updated:
            written = self.store.save(updated, skip_refunded=True)
            if len(written) < len(updated):
                logger.info(
                    "Skipped %d %s rows refunded while their status was being queried",
                    len(updated) - len(written), provider.value,
                )
            report.updated += len(written)

    def _query_with_retry(
        self,
        gateway: PaymentGateway,
        transaction: PaymentTransaction,
        report: CycleReport,
    ) -> GatewayResponse | None:
        reference = transaction.transaction_reference
        attempts = 0

        while True:
            attempts += 1
            try:
                result = gateway.get_status(transaction.status_query_id, timeout=self.call_timeout)
                error = None if result.ok else result.error
            except Exception as e:
                result, error = None, f"{type(e).__name__}: {e}"

            if error is None:
                report.attempts[reference] = attempts
                return result.value

            logger.debug("Status query %d for %s failed: %s", attempts, reference, error)
            if not self.retry_policy.has_attempts_remaining(attempts):
                report.attempts[reference] = attempts
                logger.warning(
                    "Giving up on %s this cycle after %d attempts: %s",
                    reference, attempts, error,
                )
                return None

            delay = self.retry_policy.next_delay(attempts) * self.delay_factor
            if delay > 0:
                time.sleep(delay)
