from typing import Optional

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    # ────────────────────────────────
    # 1. SALONE PAYMENT SWITCH
    # ────────────────────────────────
    SWITCH_BASE_URL: str = Field(
        default="http://127.0.0.1:9090",
        description="Base URL of the switch JSON API",
    )
    SWITCH_API_KEY: str = ""
    SWITCH_WEBHOOK_SECRET: Optional[str] = Field(
        default=None,
        description="HMAC secret for switch callbacks; unset disables signature checks",
    )
    GATEWAY_TIMEOUT_SECONDS: float = 10.0

    # ────────────────────────────────
    # 2. WEBHOOK INGESTION
    # ────────────────────────────────
    WEBHOOK_SIGNATURE_HEADER: str = "X-Signature"
    RECEIVER_HOST: str = "127.0.0.1"
    RECEIVER_PORT: int = 8080

    # ────────────────────────────────
    # 3. RECONCILIATION POLLER
    # ────────────────────────────────
    POLL_INTERVAL_SECONDS: float = 120.0  # 2 minutes
    POLL_BATCH_SIZE: int = Field(default=25, gt=0)
    POLL_MAX_ATTEMPTS: int = Field(default=3, gt=0)
    POLL_BACKOFF_SECONDS: float = 2.0

    # ────────────────────────────────
    # 4. LOGGING
    # ────────────────────────────────
    LOG_LEVEL: str = "INFO"

    model_config = SettingsConfigDict(
        case_sensitive=False,
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )


settings = Settings()
