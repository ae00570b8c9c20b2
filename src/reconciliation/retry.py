class RetryPolicy:
    """Bounded per-transaction retries with linearly increasing backoff."""

    DEFAULT_MAX_ATTEMPTS = 3
    DEFAULT_BACKOFF_SECONDS = 2.0

    def __init__(self, max_attempts: int | None = None, backoff_seconds: float | None = None):
        self.max_attempts = max_attempts if max_attempts is not None else self.DEFAULT_MAX_ATTEMPTS
        self.backoff_seconds = (
            backoff_seconds if backoff_seconds is not None else self.DEFAULT_BACKOFF_SECONDS
        )
        if self.max_attempts < 1:
            raise ValueError("max_attempts must be at least 1")

    def next_delay(self, attempt: int) -> float:
        """Seconds to wait after failed attempt number ``attempt`` (1-indexed)."""
        return float(self.backoff_seconds * attempt)

    def has_attempts_remaining(self, attempts_made: int) -> bool:
        return attempts_made < self.max_attempts
