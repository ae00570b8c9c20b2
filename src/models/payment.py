import uuid
from dataclasses import dataclass, field
from datetime import datetime, timezone
from decimal import Decimal
from enum import Enum

from src.models.errors import UnknownProviderError


class PaymentProvider(Enum):
    SALONE_SWITCH = "SalonePaymentSwitch"
    LOCAL = "LocalPayment"
    ORANGE_MONEY = "OrangeMoney"
    AFRICELL_MONEY = "AfricellMoney"

    @classmethod
    def from_name(cls, name: str) -> "PaymentProvider":
        """Resolve a provider from its wire name or member name, case-insensitively."""
        wanted = (name or "").strip().lower()
        for member in cls:
            if wanted in (member.value.lower(), member.name.lower()):
                return member
        raise UnknownProviderError(f"Unknown payment provider: {name!r}")


class PaymentTransactionStatus(Enum):
    INITIATED = "INITIATED"
    PENDING = "PENDING"
    PROCESSING = "PROCESSING"
    COMPLETED = "COMPLETED"
    FAILED = "FAILED"
    REFUNDED = "REFUNDED"

    @property
    def is_terminal(self) -> bool:
        return self in TERMINAL_STATUSES


TERMINAL_STATUSES = frozenset({
    PaymentTransactionStatus.COMPLETED,
    PaymentTransactionStatus.FAILED,
    PaymentTransactionStatus.REFUNDED,
})

# Statuses the reconciliation poller re-queries
POLLABLE_STATUSES = frozenset({
    PaymentTransactionStatus.PENDING,
    PaymentTransactionStatus.PROCESSING,
})


@dataclass
class PaymentTransaction:
    payment_id: str
    transaction_reference: str
    provider: PaymentProvider
    amount: Decimal
    currency: str
    status: PaymentTransactionStatus = PaymentTransactionStatus.INITIATED
    provider_response: str = ""
    created_date: datetime = field(default_factory=lambda: datetime.now(timezone.utc))
    completed_date: datetime | None = None
    provider_transaction_id: str | None = None
    transaction_id: str = field(default_factory=lambda: f"txn_{uuid.uuid4().hex[:16]}")

    @property
    def key(self) -> tuple[PaymentProvider, str]:
        return (self.provider, self.transaction_reference)

    @property
    def status_query_id(self) -> str:
        """Identifier used when asking the provider for this transaction's status."""
        return self.provider_transaction_id or self.transaction_reference

    def apply_status(
        self,
        status: PaymentTransactionStatus,
        message: str | None = None,
        now: datetime | None = None,
    ) -> bool:
        """Move to ``status``, keeping completed_date set only while COMPLETED.

        Returns True if any field changed.
        """
        before = (self.status, self.provider_response, self.completed_date)

        self.status = status
        if message is not None:
            self.provider_response = message
        if status is PaymentTransactionStatus.COMPLETED:
            if self.completed_date is None:
                self.completed_date = now or datetime.now(timezone.utc)
        else:
            self.completed_date = None

        return before != (self.status, self.provider_response, self.completed_date)
