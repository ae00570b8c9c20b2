import uuid
from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum


class WebhookOutcome(Enum):
    APPLIED = "APPLIED"
    DUPLICATE_IGNORED = "DUPLICATE_IGNORED"
    REJECTED = "REJECTED"  # signature check failed
    FAILED = "FAILED"  # processor hard failure, dedup claim released


@dataclass(frozen=True)
class PaymentWebhookLog:
    """One row per inbound webhook call. Never mutated after append."""

    provider: str
    payload_hash: str
    raw_payload: str
    headers: dict
    outcome: WebhookOutcome
    received_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))
    transaction_reference: str | None = None
    detail: str | None = None
    log_id: str = field(default_factory=lambda: f"whl_{uuid.uuid4().hex[:16]}")
