from __future__ import annotations

import logging
import os
from functools import lru_cache

from pydantic import BaseModel, Field

_TRUTHY = {"1", "true", "yes", "on"}


def _env(name: str) -> str | None:
    # Treat empty strings the same as unset
    return os.getenv(name) or None


class Settings(BaseModel):
    # --- Contact store (system of record for sms_opt_out) ---
    contact_store_url: str | None = Field(default_factory=lambda: _env("IMPOWR_DB_URL"))
    contact_store_api_key: str | None = Field(default_factory=lambda: _env("IMPOWR_DB_API_KEY"))

    # --- Audit log (best-effort event sink) ---
    audit_log_url: str | None = Field(default_factory=lambda: _env("LOGGING_DB_URL"))
    audit_log_api_key: str | None = Field(default_factory=lambda: _env("LOGGING_DB_API_KEY"))

    # Applies to every outbound call; no retries are layered on top.
    http_timeout_seconds: float = Field(
        default_factory=lambda: float(os.getenv("HTTP_TIMEOUT_SECONDS", "10"))
    )

    log_level: str = Field(default_factory=lambda: os.getenv("LOG_LEVEL", "INFO").upper())

    # --- Twilio request signing ---
    twilio_auth_token: str | None = Field(default_factory=lambda: _env("TWILIO_AUTH_TOKEN"))
    twilio_validate_signature: bool = Field(
        default_factory=lambda: os.getenv("TWILIO_VALIDATE_SIGNATURE", "").lower() in _TRUTHY
    )


@lru_cache
def get_settings() -> Settings:
    return Settings()


def configure_logging(level: str = "INFO") -> None:
    """
    Configure root logging once for the service.

    Called from the app lifespan; calling it again only adjusts the level.
    """
    root = logging.getLogger()
    if not root.handlers:
        logging.basicConfig(
            format="%(asctime)s %(levelname)s [%(name)s] %(message)s",
        )
    root.setLevel(level.upper())
