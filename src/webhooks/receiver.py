import json
import logging
import threading
from http.server import BaseHTTPRequestHandler, ThreadingHTTPServer

from src.models.errors import ConfigurationError
from src.webhooks.processor import PaymentWebhookProcessor


logger = logging.getLogger("payments.webhooks")

WEBHOOK_PREFIX = "/webhooks/"


class _WebhookHandler(BaseHTTPRequestHandler):
    """Hands provider callbacks to the processor and maps its answer to HTTP."""

    def do_POST(self):
        if not self.path.startswith(WEBHOOK_PREFIX):
            self._send_json(404, {"error": "not found"})
            return
        provider_name = self.path[len(WEBHOOK_PREFIX):].strip("/")

        try:
            content_length = int(self.headers.get("Content-Length", 0))
        except ValueError:
            content_length = -1
        if content_length < 0:
            self._send_json(400, {"error": "invalid Content-Length"})
            return
        body = self.rfile.read(content_length).decode("utf-8", errors="replace")
        processor: PaymentWebhookProcessor = self.server.processor  # type: ignore[attr-defined]

        try:
            accepted = processor.process(provider_name, body, dict(self.headers))
        except ConfigurationError as e:
            self._send_json(404, {"error": str(e)})
            return
        except Exception:
            logger.exception("Error processing %s webhook", provider_name)
            self._send_json(500, {"error": "internal error"})
            return

        if accepted:
            self._send_json(200, {"status": "ok"})
        else:
            # Non-2xx makes the provider redeliver.
            self._send_json(500, {"status": "rejected"})

    def do_GET(self):
        if self.path != "/metrics":
            self._send_json(404, {"error": "not found"})
            return
        metrics = self.server.processor.metrics  # type: ignore[attr-defined]
        body = metrics.render_text().encode()
        self.send_response(200)
        self.send_header("Content-Type", "text/plain; version=0.0.4")
        self.send_header("Content-Length", str(len(body)))
        self.end_headers()
        self.wfile.write(body)

    def _send_json(self, code: int, payload: dict) -> None:
        body = json.dumps(payload).encode()
        self.send_response(code)
        self.send_header("Content-Type", "application/json")
        self.send_header("Content-Length", str(len(body)))
        self.end_headers()
        self.wfile.write(body)

    def log_message(self, format, *args):
        logger.debug("%s - %s", self.address_string(), format % args)


class WebhookReceiverServer:
    """HTTP front door for provider callbacks: ``POST /webhooks/<provider>``."""

    def __init__(self, processor: PaymentWebhookProcessor, host: str = "127.0.0.1", port: int = 0):
        self.processor = processor
        self._host = host
        self._port = port
        self._server: ThreadingHTTPServer | None = None
        self._thread: threading.Thread | None = None

    def start(self) -> None:
        self._server = ThreadingHTTPServer((self._host, self._port), _WebhookHandler)
        self._server.processor = self.processor  # type: ignore[attr-defined]
        # Get the actual port (useful when port=0)
        self._port = self._server.server_address[1]
        self._thread = threading.Thread(target=self._server.serve_forever, daemon=True)
        self._thread.start()
        logger.info("Webhook receiver listening on %s:%s", self._host, self._port)

    def stop(self) -> None:
        if self._server:
            self._server.shutdown()
            self._server.server_close()
            self._server = None
        if self._thread:
            self._thread.join(timeout=5)
            self._thread = None

    @property
    def port(self) -> int:
        return self._port

    @property
    def base_url(self) -> str:
        return f"http://{self._host}:{self._port}"

    def url_for(self, provider_name: str) -> str:
        return f"{self.base_url}{WEBHOOK_PREFIX}{provider_name}"
