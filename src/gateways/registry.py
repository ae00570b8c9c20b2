from collections.abc import Iterable

from src.config import Settings
from src.gateways.base import PaymentGateway
from src.gateways.local import LocalPaymentGateway
from src.gateways.salone_switch import SaloneSwitchGateway
from src.models.errors import ConfigurationError, GatewayNotConfiguredError
from src.models.payment import PaymentProvider


class GatewayRegistry:
    """Fixed map from provider identity to its gateway, built once at startup."""

    def __init__(self, gateways: Iterable[PaymentGateway]):
        self._gateways: dict[PaymentProvider, PaymentGateway] = {}
        for gateway in gateways:
            if gateway.provider in self._gateways:
                raise ConfigurationError(
                    f"More than one gateway registered for {gateway.provider.value}"
                )
            self._gateways[gateway.provider] = gateway

    def get(self, provider: PaymentProvider) -> PaymentGateway:
        gateway = self._gateways.get(provider)
        if gateway is None:
            raise GatewayNotConfiguredError(
                f"No payment gateway registered for provider {provider.value}"
            )
        return gateway

    def get_by_name(self, provider_name: str) -> PaymentGateway:
        return self.get(PaymentProvider.from_name(provider_name))

    @property
    def providers(self) -> list[PaymentProvider]:
        return list(self._gateways)

    def __contains__(self, provider: PaymentProvider) -> bool:
        return provider in self._gateways


def build_default_registry(settings: Settings) -> GatewayRegistry:
    return GatewayRegistry([
        SaloneSwitchGateway(
            base_url=settings.SWITCH_BASE_URL,
            api_key=settings.SWITCH_API_KEY,
            webhook_secret=settings.SWITCH_WEBHOOK_SECRET,
            timeout_seconds=settings.GATEWAY_TIMEOUT_SECONDS,
        ),
        LocalPaymentGateway(),
    ])
