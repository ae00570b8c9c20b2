from abc import ABC, abstractmethod
from decimal import Decimal

from src.models.gateway import GatewayRequest, GatewayResponse, Result
from src.models.payment import PaymentProvider


class PaymentGateway(ABC):
    """Uniform capability set implemented once per payment provider.

    Every operation returns a ``Result``. Expected conditions (network
    failure, provider rejection, missing webhook support) are failure
    results, never exceptions.
    """

    provider: PaymentProvider
    supports_webhooks: bool = True
    supports_polling: bool = True

    @abstractmethod
    def initiate(
        self, request: GatewayRequest, timeout: float | None = None,
    ) -> Result[GatewayResponse]:
        """Start a transaction at the provider."""

    @abstractmethod
    def get_status(
        self, provider_transaction_id: str, timeout: float | None = None,
    ) -> Result[GatewayResponse]:
        """Authoritative status pull. Must have no side effects at the provider."""

    @abstractmethod
    def refund(
        self,
        provider_transaction_id: str,
        amount: Decimal,
        timeout: float | None = None,
    ) -> Result[GatewayResponse]:
        """Refund a completed transaction."""

    @abstractmethod
    def validate_webhook(self, raw_body: str, signature_header: str | None) -> Result[bool]:
        """Check a webhook's authenticity."""

    @abstractmethod
    def process_webhook(self, raw_body: str) -> Result[GatewayResponse]:
        """Parse a provider webhook into a GatewayResponse."""

    def __repr__(self) -> str:
        return f"<{type(self).__name__} provider={self.provider.value}>"
