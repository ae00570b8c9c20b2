from .base import PaymentGateway
from .local import LocalPaymentGateway
from .registry import GatewayRegistry, build_default_registry
from .salone_switch import SaloneSwitchGateway
from .status_map import map_status

__all__ = [
    "PaymentGateway",
    "LocalPaymentGateway",
    "SaloneSwitchGateway",
    "GatewayRegistry",
    "build_default_registry",
    "map_status",
]
