import uuid
from decimal import Decimal

from src.gateways.base import PaymentGateway
from src.models.gateway import GatewayRequest, GatewayResponse, Result
from src.models.payment import PaymentProvider, PaymentTransactionStatus


WEBHOOKS_NOT_SUPPORTED = "webhooks not supported for this provider"


class LocalPaymentGateway(PaymentGateway):
    """Manual/offline payment methods (bank deposit, cash, cheque).

    Nothing here talks to a network: payments wait for a staff member to
    confirm them, and there are no provider callbacks.
    """

    provider = PaymentProvider.LOCAL
    supports_webhooks = False
    supports_polling = False

    def initiate(self, request: GatewayRequest, timeout: float | None = None) -> Result[GatewayResponse]:
        transaction_id = f"LOCAL-{uuid.uuid4().hex[:12].upper()}"
        return Result.success(GatewayResponse(
            success=True,
            transaction_id=transaction_id,
            provider_reference=request.transaction_reference,
            status=PaymentTransactionStatus.INITIATED,
            status_message="Awaiting manual confirmation",
            amount=request.amount,
        ))

    def get_status(self, provider_transaction_id: str, timeout: float | None = None) -> Result[GatewayResponse]:
        return Result.success(GatewayResponse(
            success=True,
            transaction_id=provider_transaction_id,
            provider_reference=provider_transaction_id,
            status=PaymentTransactionStatus.PENDING,
            status_message="Awaiting manual confirmation",
        ))

    def refund(
        self,
        provider_transaction_id: str,
        amount: Decimal,
        timeout: float | None = None,
    ) -> Result[GatewayResponse]:
        return Result.success(GatewayResponse(
            success=True,
            transaction_id=provider_transaction_id,
            provider_reference=provider_transaction_id,
            status=PaymentTransactionStatus.REFUNDED,
            status_message="Refund recorded for manual settlement",
            amount=amount,
        ))

    def validate_webhook(self, raw_body: str, signature_header: str | None) -> Result[bool]:
        return Result.success(True)

    def process_webhook(self, raw_body: str) -> Result[GatewayResponse]:
        return Result.failure(WEBHOOKS_NOT_SUPPORTED)
