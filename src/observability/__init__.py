from .logging import configure_logging
from .metrics import PaymentMetrics

__all__ = ["PaymentMetrics", "configure_logging"]
