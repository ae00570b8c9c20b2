import logging

from src.gateways.registry import GatewayRegistry
from src.ledger.store import LedgerStore
from src.models.errors import PaymentOperationError, TransactionNotFoundError
from src.models.gateway import GatewayRequest
from src.models.payment import PaymentProvider, PaymentTransaction, PaymentTransactionStatus


logger = logging.getLogger("payments.ledger")


class PaymentLedgerService:
    """Operator-facing entry points that create ledger rows or refund them."""

    def __init__(self, registry: GatewayRegistry, store: LedgerStore):
        self.registry = registry
        self.store = store

    def initiate_payment(
        self,
        payment_id: str,
        provider: PaymentProvider,
        request: GatewayRequest,
        timeout: float | None = None,
    ) -> PaymentTransaction:
        """Start a payment at the provider and record it in the ledger."""
        gateway = self.registry.get(provider)
        result = gateway.initiate(request, timeout=timeout)
        if not result.ok:
            raise PaymentOperationError(
                f"Could not initiate {request.transaction_reference} with {provider.value}: {result.error}"
            )

        response = result.value
        status = response.status
        if not response.status_recognized or status is PaymentTransactionStatus.REFUNDED:
            # Leave it pollable until the provider reports something usable.
            status = PaymentTransactionStatus.PENDING

        transaction = PaymentTransaction(
            payment_id=payment_id,
            transaction_reference=request.transaction_reference,
            provider=provider,
            amount=request.amount,
            currency=request.currency,
            provider_transaction_id=response.transaction_id,
        )
        transaction.apply_status(status, response.status_message)
        self.store.add(transaction)
        logger.info(
            "Initiated %s via %s (%s)",
            transaction.transaction_reference, provider.value, status.value,
        )
        return transaction

    def refund_payment(
        self,
        provider: PaymentProvider,
        reference: str,
        timeout: float | None = None,
    ) -> PaymentTransaction:
        """Refund a COMPLETED transaction. Any other status is refused."""
        transaction = self.store.find_by_provider_and_reference(provider, reference)
        if transaction is None:
            raise TransactionNotFoundError(f"No {provider.value} transaction {reference}")
        if transaction.status is not PaymentTransactionStatus.COMPLETED:
            raise PaymentOperationError(
                f"Only completed transactions can be refunded; {reference} is {transaction.status.value}"
            )

        gateway = self.registry.get(provider)
        result = gateway.refund(transaction.status_query_id, transaction.amount, timeout=timeout)
        if not result.ok:
            raise PaymentOperationError(f"Refund of {reference} failed: {result.error}")

        transaction.apply_status(PaymentTransactionStatus.REFUNDED, result.value.status_message)
        self.store.save([transaction])
        logger.info("Refunded %s via %s", reference, provider.value)
        return transaction
