import json
import threading
import time
from collections import defaultdict
from http.server import BaseHTTPRequestHandler, ThreadingHTTPServer

import pytest

from src.gateways.base import PaymentGateway
from src.gateways.local import LocalPaymentGateway
from src.gateways.registry import GatewayRegistry
from src.gateways.salone_switch import SaloneSwitchGateway
from src.gateways.status_map import is_known_status, map_status
from src.ledger.service import PaymentLedgerService
from src.ledger.store import InMemoryLedgerStore
from src.models.gateway import GatewayResponse, Result
from src.models.payment import PaymentProvider
from src.observability.metrics import PaymentMetrics
from src.reconciliation.poller import ReconciliationPoller
from src.reconciliation.retry import RetryPolicy
from src.utils.factories import SwitchWebhookFactory, TransactionFactory
from src.webhooks.processor import PaymentWebhookProcessor
from src.webhooks.receiver import WebhookReceiverServer


WEBHOOK_SECRET = "test-secret-key-for-hmac"
SWITCH = PaymentProvider.SALONE_SWITCH.value


# ---------------------------------------------------------------------------
# Fake Salone switch JSON API
# ---------------------------------------------------------------------------
class _FakeSwitchHandler(BaseHTTPRequestHandler):

    def do_GET(self):
        config = self.server.config  # type: ignore[attr-defined]
        self._record()
        if self._maybe_fail(config):
            return
        parts = self.path.strip("/").split("/")
        if len(parts) != 2 or parts[0] != "payments":
            self._send(404, {"error": "not found"})
            return
        txn_id = parts[1]
        with config["lock"]:
            code = config["statuses"].get(txn_id)
        if code is None:
            self._send(404, {"error": "unknown transaction"})
            return
        self._send(200, {
            "transactionId": txn_id,
            "endToEndId": txn_id,
            "status": code,
            "statusMessage": f"status {code}",
        })

    def do_POST(self):
        config = self.server.config  # type: ignore[attr-defined]
        length = int(self.headers.get("Content-Length", 0))
        body = json.loads(self.rfile.read(length) or b"{}")
        self._record(body)
        if self._maybe_fail(config):
            return
        parts = self.path.strip("/").split("/")
        if parts == ["payments"]:
            e2e = body["endToEndId"]
            with config["lock"]:
                config["statuses"].setdefault(f"SW-{e2e}", "PDNG")
            self._send(201, {
                "transactionId": f"SW-{e2e}",
                "endToEndId": e2e,
                "status": "PDNG",
                "statusMessage": "Awaiting payer approval",
                "amount": body["amount"],
            })
        elif len(parts) == 3 and parts[0] == "payments" and parts[2] == "refunds":
            self._send(200, {
                "transactionId": parts[1],
                "status": "REFUNDED",
                "statusMessage": "Refund accepted",
                "amount": body.get("amount"),
            })
        else:
            self._send(404, {"error": "not found"})

    def _maybe_fail(self, config) -> bool:
        if config["response_delay"] > 0:
            time.sleep(config["response_delay"])
        with config["lock"]:
            if config["fail_remaining"] > 0:
                config["fail_remaining"] -= 1
                code = config["fail_code"]
            else:
                code = None
        if code is not None:
            self._send(code, {"error": "switch unavailable"})
            return True
        return False

    def _record(self, body=None):
        config = self.server.config  # type: ignore[attr-defined]
        with config["lock"]:
            config["requests"].append({
                "method": self.command,
                "path": self.path,
                "headers": dict(self.headers),
                "body": body,
            })

    def _send(self, code: int, payload: dict):
        data = json.dumps(payload).encode()
        self.send_response(code)
        self.send_header("Content-Type", "application/json")
        self.send_header("Content-Length", str(len(data)))
        self.end_headers()
        self.wfile.write(data)

    def log_message(self, format, *args):
        """Suppress default request logging."""
        pass


class FakeSwitchServer:
    """Local stand-in for the switch's JSON API."""

    def __init__(self, host: str = "127.0.0.1", port: int = 0):
        self._host = host
        self._port = port
        self.config = {
            "statuses": {},
            "requests": [],
            "fail_remaining": 0,
            "fail_code": 503,
            "response_delay": 0,
            "lock": threading.Lock(),
        }
        self._server = None
        self._thread = None

    def set_status(self, txn_id: str, code: str) -> None:
        with self.config["lock"]:
            self.config["statuses"][txn_id] = code

    def fail_next(self, count: int, code: int = 503) -> None:
        with self.config["lock"]:
            self.config["fail_remaining"] = count
            self.config["fail_code"] = code

    def set_response_delay(self, seconds: float) -> None:
        self.config["response_delay"] = seconds

    def get_requests(self, method: str | None = None) -> list[dict]:
        with self.config["lock"]:
            reqs = list(self.config["requests"])
        return [r for r in reqs if method is None or r["method"] == method]

    def start(self) -> None:
        self._server = ThreadingHTTPServer((self._host, self._port), _FakeSwitchHandler)
        self._server.config = self.config  # type: ignore[attr-defined]
        self._port = self._server.server_address[1]
        self._thread = threading.Thread(target=self._server.serve_forever, daemon=True)
        self._thread.start()

    def stop(self) -> None:
        if self._server:
            self._server.shutdown()
            self._server.server_close()
            self._server = None
        if self._thread:
            self._thread.join(timeout=5)
            self._thread = None

    @property
    def url(self) -> str:
        return f"http://{self._host}:{self._port}"


# ---------------------------------------------------------------------------
# In-process gateway with scripted status answers
# ---------------------------------------------------------------------------
class ScriptedGateway(PaymentGateway):
    """Answers get_status from per-id scripts; ``None`` entries are failures.

    Once a script is exhausted its last entry repeats.
    """

    provider = PaymentProvider.SALONE_SWITCH

    def __init__(self, provider: PaymentProvider | None = None):
        if provider is not None:
            self.provider = provider
        self.scripts: dict[str, list[str | None]] = {}
        self.calls: dict[str, int] = defaultdict(int)
        self.call_order: list[str] = []
        self.raise_on: set[str] = set()

    def script(self, txn_id: str, *codes: str | None) -> None:
        self.scripts[txn_id] = list(codes)

    def get_status(self, provider_transaction_id, timeout=None):
        self.calls[provider_transaction_id] += 1
        self.call_order.append(provider_transaction_id)
        if provider_transaction_id in self.raise_on:
            raise RuntimeError("gateway exploded")
        script = self.scripts.get(provider_transaction_id, [None])
        code = script.pop(0) if len(script) > 1 else script[0]
        if code is None:
            return Result.failure("connection_error")
        return Result.success(GatewayResponse(
            success=True,
            transaction_id=provider_transaction_id,
            provider_reference=provider_transaction_id,
            status=map_status(code),
            status_message=f"status {code}",
            status_recognized=is_known_status(code),
        ))

    def initiate(self, request, timeout=None):
        return Result.failure("not scripted")

    def refund(self, provider_transaction_id, amount, timeout=None):
        return Result.failure("not scripted")

    def validate_webhook(self, raw_body, signature_header):
        return Result.success(True)

    def process_webhook(self, raw_body):
        return Result.failure("not scripted")


# ---------------------------------------------------------------------------
# Fixtures
# ---------------------------------------------------------------------------
@pytest.fixture
def webhook_secret():
    return WEBHOOK_SECRET


@pytest.fixture
def store():
    return InMemoryLedgerStore()


@pytest.fixture
def metrics():
    return PaymentMetrics()


@pytest.fixture
def fake_switch():
    server = FakeSwitchServer()
    server.start()
    yield server
    server.stop()


@pytest.fixture
def switch_gateway(fake_switch):
    return SaloneSwitchGateway(base_url=fake_switch.url, api_key="test-api-key", timeout_seconds=5)


@pytest.fixture
def offline_switch_gateway():
    """Switch gateway for webhook parsing only; its API is never called."""
    return SaloneSwitchGateway(base_url="http://127.0.0.1:1", webhook_secret=None)


@pytest.fixture
def signed_switch_gateway(webhook_secret):
    return SaloneSwitchGateway(base_url="http://127.0.0.1:1", webhook_secret=webhook_secret)


@pytest.fixture
def local_gateway():
    return LocalPaymentGateway()


@pytest.fixture
def scripted_gateway():
    return ScriptedGateway()


@pytest.fixture
def registry(offline_switch_gateway, local_gateway):
    return GatewayRegistry([offline_switch_gateway, local_gateway])


@pytest.fixture
def signed_registry(signed_switch_gateway, local_gateway):
    return GatewayRegistry([signed_switch_gateway, local_gateway])


@pytest.fixture
def processor(registry, store, metrics):
    return PaymentWebhookProcessor(registry, store, metrics)


@pytest.fixture
def signed_processor(signed_registry, store, metrics):
    return PaymentWebhookProcessor(signed_registry, store, metrics)


@pytest.fixture
def poller(scripted_gateway, store, metrics):
    return ReconciliationPoller(
        GatewayRegistry([scripted_gateway]),
        store,
        metrics,
        interval_seconds=0.05,
        batch_size=25,
        retry_policy=RetryPolicy(max_attempts=3, backoff_seconds=2),
        delay_factor=0,
    )


@pytest.fixture
def ledger_service(registry, store):
    return PaymentLedgerService(registry, store)


@pytest.fixture
def receiver(signed_processor):
    server = WebhookReceiverServer(signed_processor)
    server.start()
    yield server
    server.stop()


@pytest.fixture
def transaction_factory():
    return TransactionFactory


@pytest.fixture
def webhook_factory():
    return SwitchWebhookFactory
