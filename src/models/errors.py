class PaymentSubsystemError(Exception):
    """Base class for errors raised by the payments subsystem."""


class ConfigurationError(PaymentSubsystemError):
    """Wiring problem. Fatal at call time and never retried."""


class GatewayNotConfiguredError(ConfigurationError):
    pass


class UnknownProviderError(ConfigurationError):
    pass


class GatewayError(PaymentSubsystemError):
    """Transient provider failure (network, timeout, non-2xx)."""


class LedgerError(PaymentSubsystemError):
    pass


class DuplicateTransactionError(LedgerError):
    pass


class TransactionNotFoundError(LedgerError):
    pass


class PaymentOperationError(PaymentSubsystemError):
    """An operator-triggered payment operation could not be carried out."""
