import copy
import threading
from abc import ABC, abstractmethod
from collections.abc import Iterable

from src.models.errors import DuplicateTransactionError, TransactionNotFoundError
from src.models.payment import (
    POLLABLE_STATUSES,
    PaymentProvider,
    PaymentTransaction,
    PaymentTransactionStatus,
)
from src.models.webhook import PaymentWebhookLog, WebhookOutcome


class LedgerStore(ABC):
    """Repository for the transaction ledger and the webhook audit log.

    Reads hand out detached copies; changes take effect only through
    ``save``, so each caller builds its whole mutation before committing it.
    """

    @abstractmethod
    def add(self, transaction: PaymentTransaction) -> None: ...

    @abstractmethod
    def find_by_provider_and_reference(
        self, provider: PaymentProvider, reference: str,
    ) -> PaymentTransaction | None: ...

    @abstractmethod
    def list_pending(self, provider: PaymentProvider, limit: int) -> list[PaymentTransaction]:
        """PENDING/PROCESSING rows for ``provider``, oldest-created first."""

    @abstractmethod
    def save(
        self,
        transactions: Iterable[PaymentTransaction],
        skip_refunded: bool = False,
    ) -> list[PaymentTransaction]:
        """Commit ``transactions`` and return the rows actually written.

        With ``skip_refunded``, rows whose stored copy is already REFUNDED are
        left alone. Status updates read a row before a slow provider call,
        so a refund can land in between.
        """

    @abstractmethod
    def claim_webhook(self, payload_hash: str) -> bool:
        """Atomically claim a dedup key. False if it was already claimed."""

    @abstractmethod
    def release_webhook(self, payload_hash: str) -> None: ...

    @abstractmethod
    def append_webhook_log(self, log: PaymentWebhookLog) -> None: ...

    @abstractmethod
    def webhook_logs(
        self,
        provider: str | None = None,
        payload_hash: str | None = None,
        outcome: WebhookOutcome | None = None,
    ) -> list[PaymentWebhookLog]: ...


class InMemoryLedgerStore(LedgerStore):
    """Thread-safe in-process ledger."""

    def __init__(self):
        self._transactions: dict[tuple[PaymentProvider, str], PaymentTransaction] = {}
        self._claimed: set[str] = set()
        self._logs: list[PaymentWebhookLog] = []
        self._lock = threading.Lock()

    def add(self, transaction: PaymentTransaction) -> None:
        with self._lock:
            if transaction.key in self._transactions:
                raise DuplicateTransactionError(
                    f"Transaction {transaction.transaction_reference} already exists "
                    f"for {transaction.provider.value}"
                )
            self._transactions[transaction.key] = copy.copy(transaction)

    def find_by_provider_and_reference(
        self, provider: PaymentProvider, reference: str,
    ) -> PaymentTransaction | None:
        with self._lock:
            found = self._transactions.get((provider, reference))
            return copy.copy(found) if found else None

    def list_pending(self, provider: PaymentProvider, limit: int) -> list[PaymentTransaction]:
        with self._lock:
            pending = [
                t for t in self._transactions.values()
                if t.provider is provider and t.status in POLLABLE_STATUSES
            ]
        pending.sort(key=lambda t: t.created_date)
        return [copy.copy(t) for t in pending[:limit]]

    def save(
        self,
        transactions: Iterable[PaymentTransaction],
        skip_refunded: bool = False,
    ) -> list[PaymentTransaction]:
        transactions = list(transactions)
        with self._lock:
            missing = [t.transaction_reference for t in transactions if t.key not in self._transactions]
            if missing:
                raise TransactionNotFoundError(f"Cannot save unknown transactions: {missing}")
            written = []
            for t in transactions:
                stored = self._transactions[t.key]
                if skip_refunded and stored.status is PaymentTransactionStatus.REFUNDED:
                    continue
                self._transactions[t.key] = copy.copy(t)
                written.append(t)
            return written

    def all_transactions(self) -> list[PaymentTransaction]:
        with self._lock:
            return [copy.copy(t) for t in self._transactions.values()]

    def claim_webhook(self, payload_hash: str) -> bool:
        with self._lock:
            if payload_hash in self._claimed:
                return False
            self._claimed.add(payload_hash)
            return True

    def release_webhook(self, payload_hash: str) -> None:
        with self._lock:
            self._claimed.discard(payload_hash)

    def append_webhook_log(self, log: PaymentWebhookLog) -> None:
        with self._lock:
            self._logs.append(log)

    def webhook_logs(
        self,
        provider: str | None = None,
        payload_hash: str | None = None,
        outcome: WebhookOutcome | None = None,
    ) -> list[PaymentWebhookLog]:
        with self._lock:
            logs = list(self._logs)
        if provider is not None:
            logs = [log for log in logs if log.provider == provider]
        if payload_hash is not None:
            logs = [log for log in logs if log.payload_hash == payload_hash]
        if outcome is not None:
            logs = [log for log in logs if log.outcome is outcome]
        return logs
