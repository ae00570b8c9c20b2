from src.models.payment import PaymentTransactionStatus


# Provider status token -> domain status. ISO 20022 codes and the literal
# forms some providers send instead.
STATUS_TABLE: dict[str, PaymentTransactionStatus] = {
    "ACSC": PaymentTransactionStatus.COMPLETED,
    "COMPLETED": PaymentTransactionStatus.COMPLETED,
    "RJCT": PaymentTransactionStatus.FAILED,
    "FAILED": PaymentTransactionStatus.FAILED,
    "PDNG": PaymentTransactionStatus.PENDING,
    "PENDING": PaymentTransactionStatus.PENDING,
    "ACTC": PaymentTransactionStatus.PROCESSING,
    "ACSP": PaymentTransactionStatus.PROCESSING,
    "PROCESSING": PaymentTransactionStatus.PROCESSING,
    "REFUNDED": PaymentTransactionStatus.REFUNDED,
}

DEFAULT_STATUS = PaymentTransactionStatus.PENDING


def map_status(code: str | None) -> PaymentTransactionStatus:
    """Map a provider status token to the domain enum. Unknown tokens map to PENDING."""
    if not code:
        return DEFAULT_STATUS
    return STATUS_TABLE.get(code.strip().upper(), DEFAULT_STATUS)


def is_known_status(code: str | None) -> bool:
    return bool(code) and code.strip().upper() in STATUS_TABLE
