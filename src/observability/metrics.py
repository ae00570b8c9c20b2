import threading


class PaymentMetrics:
    """Monotonic counters for webhook ingestion and reconciliation polling.

    Side effect only: nothing in the subsystem reads these to make decisions.
    """

    COUNTERS = (
        "webhooks_processed",
        "webhooks_duplicate",
        "polling_success",
        "polling_failure",
    )

    def __init__(self, namespace: str = "payments"):
        self.namespace = namespace
        self._counts = dict.fromkeys(self.COUNTERS, 0)
        self._lock = threading.Lock()

    def _increment(self, name: str, amount: int = 1) -> None:
        with self._lock:
            self._counts[name] += amount

    def record_webhook_processed(self) -> None:
        self._increment("webhooks_processed")

    def record_webhook_duplicate(self) -> None:
        self._increment("webhooks_duplicate")

    def record_poll_success(self) -> None:
        self._increment("polling_success")

    def record_poll_failure(self) -> None:
        self._increment("polling_failure")

    @property
    def webhooks_processed(self) -> int:
        return self._get("webhooks_processed")

    @property
    def webhooks_duplicate(self) -> int:
        return self._get("webhooks_duplicate")

    @property
    def polling_success(self) -> int:
        return self._get("polling_success")

    @property
    def polling_failure(self) -> int:
        return self._get("polling_failure")

    def _get(self, name: str) -> int:
        with self._lock:
            return self._counts[name]

    def snapshot(self) -> dict[str, int]:
        with self._lock:
            return dict(self._counts)

    def polling_failure_rate(self) -> float:
        """Share of status polls that exhausted their retries (0.0 to 1.0)."""
        with self._lock:
            total = self._counts["polling_success"] + self._counts["polling_failure"]
            if total == 0:
                return 0.0
            return self._counts["polling_failure"] / total

    def render_text(self) -> str:
        """Prometheus text exposition of the counters, for a pull endpoint."""
        lines = []
        for name, value in self.snapshot().items():
            metric = f"{self.namespace}_{name}_total"
            lines.append(f"# TYPE {metric} counter")
            lines.append(f"{metric} {value}")
        return "\n".join(lines) + "\n"

    def reset(self) -> None:
        with self._lock:
            for name in self._counts:
                self._counts[name] = 0
