from dataclasses import dataclass
from decimal import Decimal
from typing import Generic, TypeVar

from src.models.payment import PaymentTransactionStatus


T = TypeVar("T")


@dataclass(frozen=True)
class Result(Generic[T]):
    """Tagged outcome of a gateway call: a value on success, a message on failure."""

    ok: bool
    value: T | None = None
    error: str | None = None

    @classmethod
    def success(cls, value: T) -> "Result[T]":
        return cls(ok=True, value=value)

    @classmethod
    def failure(cls, error: str) -> "Result[T]":
        return cls(ok=False, error=error)


@dataclass
class GatewayRequest:
    transaction_reference: str
    amount: Decimal
    currency: str = "SLE"
    payer_phone: str | None = None
    description: str = ""


@dataclass
class GatewayResponse:
    success: bool
    transaction_id: str
    provider_reference: str
    status: PaymentTransactionStatus
    status_message: str = ""
    amount: Decimal | None = None
    # False when the provider's code was not in the status table; ``status``
    # then holds the PENDING fallback and must not overwrite the ledger.
    status_recognized: bool = True
