import uuid
from datetime import datetime, timezone
from decimal import Decimal

from src.models.payment import PaymentProvider, PaymentTransaction, PaymentTransactionStatus
from src.utils.crypto import generate_signature


class TransactionFactory:
    """Factory for creating PaymentTransaction instances with sensible defaults."""

    @staticmethod
    def create(**overrides) -> PaymentTransaction:
        defaults = {
            "payment_id": f"pay_{uuid.uuid4().hex[:16]}",
            "transaction_reference": f"REF-{uuid.uuid4().hex[:10].upper()}",
            "provider": PaymentProvider.SALONE_SWITCH,
            "amount": Decimal("100.00"),
            "currency": "SLE",
            "status": PaymentTransactionStatus.PENDING,
            "created_date": datetime.now(timezone.utc),
        }
        defaults.update(overrides)
        return PaymentTransaction(**defaults)


class SwitchWebhookFactory:
    """Builds switch payment status reports (ISO 20022 style XML)."""

    NAMESPACE = "urn:iso:std:iso:20022:tech:xsd:pain.002.001.03"

    @staticmethod
    def create_body(
        end_to_end_id: str,
        status: str = "ACSC",
        amount: str | None = None,
        info: str | None = None,
        namespaced: bool = False,
    ) -> str:
        extra = ""
        if amount is not None:
            extra += f'<InstdAmt Ccy="SLE">{amount}</InstdAmt>'
        if info is not None:
            extra += f"<StsRsnInf><AddtlInf>{info}</AddtlInf></StsRsnInf>"

        inner = (
            "<OrgnlPmtInfAndSts><TxInfAndSts>"
            f"<EndToEndId>{end_to_end_id}</EndToEndId>"
            f"<TxSts>{status}</TxSts>"
            f"{extra}"
            "</TxInfAndSts></OrgnlPmtInfAndSts>"
        )
        if namespaced:
            return f'<Document xmlns="{SwitchWebhookFactory.NAMESPACE}">{inner}</Document>'
        return f"<Document>{inner}</Document>"

    @staticmethod
    def signed_headers(body: str, secret: str, header: str = "X-Signature") -> dict[str, str]:
        return {
            "Content-Type": "application/xml",
            header: generate_signature(body, secret),
        }
