"""Gateway for the Salone Payment Switch, Sierra Leone's national payment switch.

Payment initiation, status and refunds go over the switch's JSON API.
Status callbacks arrive as ISO 20022 payment status reports (XML) carrying
at least an ``EndToEndId`` and a ``TxSts`` code.
"""

import logging
from decimal import Decimal, InvalidOperation
from xml.etree import ElementTree

import requests

from src.gateways.base import PaymentGateway
from src.gateways.status_map import is_known_status, map_status
from src.models.gateway import GatewayRequest, GatewayResponse, Result
from src.models.payment import PaymentProvider, PaymentTransactionStatus
from src.utils.crypto import verify_signature


logger = logging.getLogger("payments.gateways")


class SaloneSwitchGateway(PaymentGateway):

    provider = PaymentProvider.SALONE_SWITCH

    def __init__(
        self,
        base_url: str,
        api_key: str = "",
        webhook_secret: str | None = None,
        timeout_seconds: float = 10,
        session: requests.Session | None = None,
    ):
        self.base_url = base_url.rstrip("/")
        self.api_key = api_key
        self.webhook_secret = webhook_secret
        self.timeout_seconds = timeout_seconds
        self.session = session or requests.Session()

    # -- JSON API ---------------------------------------------------------

    def initiate(self, request: GatewayRequest, timeout: float | None = None) -> Result[GatewayResponse]:
        body = {
            "endToEndId": request.transaction_reference,
            "amount": str(request.amount),
            "currency": request.currency,
            "payerPhone": request.payer_phone,
            "description": request.description,
        }
        result = self._request("POST", "/payments", timeout, json=body)
        if not result.ok:
            return Result.failure(result.error)
        return Result.success(self._to_response(result.value, request.transaction_reference))

    def get_status(self, provider_transaction_id: str, timeout: float | None = None) -> Result[GatewayResponse]:
        result = self._request("GET", f"/payments/{provider_transaction_id}", timeout)
        if not result.ok:
            return Result.failure(result.error)
        return Result.success(self._to_response(result.value, provider_transaction_id))

    def refund(
        self,
        provider_transaction_id: str,
        amount: Decimal,
        timeout: float | None = None,
    ) -> Result[GatewayResponse]:
        result = self._request(
            "POST",
            f"/payments/{provider_transaction_id}/refunds",
            timeout,
            json={"amount": str(amount)},
        )
        if not result.ok:
            return Result.failure(result.error)

        response = self._to_response(result.value, provider_transaction_id)
        # A 2xx from the refunds endpoint is the provider's acknowledgement.
        response.status = PaymentTransactionStatus.REFUNDED
        response.status_recognized = True
        return Result.success(response)

    def _request(self, method: str, path: str, timeout: float | None, **kwargs) -> Result[dict]:
        headers = {"Accept": "application/json"}
        if self.api_key:
            headers["Authorization"] = f"Bearer {self.api_key}"

        try:
            resp = self.session.request(
                method,
                f"{self.base_url}{path}",
                headers=headers,
                timeout=timeout or self.timeout_seconds,
                **kwargs,
            )
        except requests.exceptions.Timeout:
            return Result.failure("timeout")
        except requests.exceptions.ConnectionError:
            return Result.failure("connection_error")
        except requests.exceptions.RequestException as e:
            return Result.failure(str(e))

        if not 200 <= resp.status_code < 300:
            logger.info("Switch %s %s returned HTTP %s", method, path, resp.status_code)
            return Result.failure(f"HTTP {resp.status_code}")

        try:
            data = resp.json()
        except ValueError:
            return Result.failure("invalid JSON in switch response")
        if not isinstance(data, dict):
            return Result.failure("unexpected switch response shape")
        return Result.success(data)

    @staticmethod
    def _to_response(data: dict, fallback_id: str) -> GatewayResponse:
        code = data.get("status")
        return GatewayResponse(
            success=True,
            transaction_id=str(data.get("transactionId") or fallback_id),
            provider_reference=str(data.get("endToEndId") or fallback_id),
            status=map_status(code),
            status_message=data.get("statusMessage") or (code or ""),
            amount=_parse_amount(data.get("amount")),
            status_recognized=is_known_status(code),
        )

    # -- Webhooks ---------------------------------------------------------

    def validate_webhook(self, raw_body: str, signature_header: str | None) -> Result[bool]:
        if not self.webhook_secret:
            return Result.success(True)  # no secret configured
        return Result.success(verify_signature(raw_body, self.webhook_secret, signature_header))

    def process_webhook(self, raw_body: str) -> Result[GatewayResponse]:
        try:
            root = ElementTree.fromstring(raw_body.encode("utf-8"))
        except ElementTree.ParseError as e:
            return Result.failure(f"malformed XML: {e}")

        fields = _collect_fields(root)
        end_to_end_id = fields.get("EndToEndId") or fields.get("OrgnlEndToEndId")
        code = fields.get("TxSts")
        if not end_to_end_id:
            return Result.failure("missing EndToEndId")
        if not code:
            return Result.failure("missing TxSts")

        if not is_known_status(code):
            return Result.failure(f"unrecognized status code {code}")

        return Result.success(GatewayResponse(
            success=True,
            transaction_id=end_to_end_id,
            provider_reference=end_to_end_id,
            status=map_status(code),
            status_message=fields.get("AddtlInf") or code,
            amount=_parse_amount(fields.get("InstdAmt") or fields.get("Amt")),
        ))


def _collect_fields(root: ElementTree.Element) -> dict[str, str]:
    """First non-empty text per element local name, namespaces ignored."""
    fields: dict[str, str] = {}
    for element in root.iter():
        name = element.tag.rsplit("}", 1)[-1]
        text = (element.text or "").strip()
        if text and name not in fields:
            fields[name] = text
    return fields


def _parse_amount(value) -> Decimal | None:
    if value is None or value == "":
        return None
    try:
        return Decimal(str(value))
    except InvalidOperation:
        return None
