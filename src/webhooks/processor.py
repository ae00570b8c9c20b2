"""Idempotent ingestion of provider payment callbacks.

Providers deliver at least once and replay on any non-2xx answer, so the
same payload can arrive many times. Each call appends exactly one audit row;
only the first delivery of a given payload may touch the ledger.
"""

import logging
import threading
from datetime import datetime, timezone
from typing import NamedTuple

from src.gateways.base import PaymentGateway
from src.gateways.registry import GatewayRegistry
from src.ledger.store import LedgerStore
from src.models.errors import ConfigurationError
from src.models.payment import PaymentTransactionStatus
from src.models.webhook import PaymentWebhookLog, WebhookOutcome
from src.observability.metrics import PaymentMetrics
from src.utils.crypto import payload_hash


logger = logging.getLogger("payments.webhooks")

UNMATCHED_REFERENCE = "unmatched reference"


class _Cancelled(Exception):
    pass


class _Applied(NamedTuple):
    reference: str | None
    detail: str | None


class PaymentWebhookProcessor:

    def __init__(
        self,
        registry: GatewayRegistry,
        store: LedgerStore,
        metrics: PaymentMetrics,
        signature_header: str = "X-Signature",
    ):
        self.registry = registry
        self.store = store
        self.metrics = metrics
        self.signature_header = signature_header

    def process(
        self,
        provider_name: str,
        raw_payload: str,
        headers: dict[str, str] | None = None,
        cancel_event: threading.Event | None = None,
    ) -> bool:
        """Ingest one webhook delivery.

        Returns True when the delivery is accepted, whether or not it changed
        the ledger (duplicates and unusable payloads are accepted so the
        provider stops retrying). Returns False when the signature is invalid
        or the caller cancelled before the ledger write. Unknown providers
        raise ConfigurationError; unexpected errors propagate after the
        audit row is written.
        """
        headers = dict(headers or {})

        def log(outcome: WebhookOutcome, reference: str | None = None, detail: str | None = None):
            self.store.append_webhook_log(PaymentWebhookLog(
                provider=provider_name,
                payload_hash=key,
                raw_payload=raw_payload,
                headers=headers,
                outcome=outcome,
                transaction_reference=reference,
                detail=detail,
            ))

        try:
            gateway = self.registry.get_by_name(provider_name)
        except ConfigurationError as e:
            key = payload_hash(provider_name, raw_payload)
            log(WebhookOutcome.FAILED, detail=str(e))
            raise

        # Aliases of one provider share a key.
        provider_name = gateway.provider.value
        key = payload_hash(provider_name, raw_payload)

        signature = _header(headers, self.signature_header)
        validation = gateway.validate_webhook(raw_payload, signature)
        if not validation.ok or not validation.value:
            logger.warning("Rejected %s webhook %s: invalid signature", provider_name, key[:12])
            log(WebhookOutcome.REJECTED, detail=validation.error or "invalid signature")
            return False

        if not self.store.claim_webhook(key):
            logger.info("Duplicate %s webhook %s ignored", provider_name, key[:12])
            log(WebhookOutcome.DUPLICATE_IGNORED)
            self.metrics.record_webhook_duplicate()
            return True

        try:
            applied = self._apply(gateway, raw_payload, cancel_event)
        except _Cancelled:
            self.store.release_webhook(key)
            log(WebhookOutcome.FAILED, detail="cancelled before commit")
            return False
        except Exception as e:
            # Let the provider's retry re-apply this payload.
            self.store.release_webhook(key)
            log(WebhookOutcome.FAILED, detail=f"{type(e).__name__}: {e}")
            raise

        log(WebhookOutcome.APPLIED, reference=applied.reference, detail=applied.detail)
        self.metrics.record_webhook_processed()
        return True

    def _apply(
        self,
        gateway: PaymentGateway,
        raw_payload: str,
        cancel_event: threading.Event | None,
    ) -> _Applied:
        parsed = gateway.process_webhook(raw_payload)
        if not parsed.ok:
            logger.warning("Unusable %s webhook: %s", gateway.provider.value, parsed.error)
            return _Applied(None, parsed.error)

        response = parsed.value
        reference = response.provider_reference or response.transaction_id
        transaction = self.store.find_by_provider_and_reference(gateway.provider, reference)
        if transaction is None:
            logger.warning(
                "%s webhook for unknown reference %s; nothing to update",
                gateway.provider.value, reference,
            )
            return _Applied(reference, UNMATCHED_REFERENCE)

        if transaction.status is PaymentTransactionStatus.REFUNDED:
            return _Applied(reference, "transaction already refunded")
        if response.status is PaymentTransactionStatus.REFUNDED:
            return _Applied(reference, "refund status ignored on callback")

        if cancel_event is not None and cancel_event.is_set():
            raise _Cancelled()

        changed = transaction.apply_status(
            response.status,
            response.status_message,
            now=datetime.now(timezone.utc),
        )
        if not changed:
            return _Applied(reference, "status unchanged")

        if not self.store.save([transaction], skip_refunded=True):
            return _Applied(reference, "transaction already refunded")
        logger.info(
            "%s %s -> %s via webhook",
            gateway.provider.value, reference, transaction.status.value,
        )
        return _Applied(reference, None)


def _header(headers: dict[str, str], name: str) -> str | None:
    wanted = name.lower()
    for key, value in headers.items():
        if key.lower() == wanted:
            return value
    return None
