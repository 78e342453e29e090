from __future__ import annotations

import logging
from typing import Any

import httpx
from pydantic import BaseModel, ConfigDict, Field

from .config import Settings
from .contacts import UpdateOutcome, utcnow_iso

logger = logging.getLogger(__name__)


class AuditEvent(BaseModel):
    """One webhook outcome, as written to the audit log."""

    model_config = ConfigDict(populate_by_name=True)

    phone_number: str | None = Field(default=None, alias="phoneNumber")
    original_phone_number: str | None = Field(default=None, alias="originalPhoneNumber")
    message_body: str | None = Field(default=None, alias="messageBody")
    message_sid: str | None = Field(default=None, alias="messageSid")
    account_sid: str | None = Field(default=None, alias="accountSid")
    to_number: str | None = Field(default=None, alias="toNumber")
    action: str | None = None
    sms_opt_out_value: bool | None = Field(default=None, alias="smsOptOutValue")
    update_result: UpdateOutcome | None = Field(default=None, alias="updateResult")
    timestamp: str = Field(default_factory=utcnow_iso)
    error: str | None = None

    def to_payload(self) -> dict[str, Any]:
        return self.model_dump(by_alias=True, exclude_none=True)


class AuditLogClient:
    """
    Best-effort writer for the audit log (POST {base}/webhook-events).

    ``log_event`` never raises: missing configuration or a failed request is
    logged locally and reported as False.
    """

    def __init__(
        self,
        base_url: str | None,
        api_key: str | None,
        *,
        timeout: float = 10.0,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self.base_url = base_url.rstrip("/") if base_url else None
        self.api_key = api_key
        self.timeout = timeout
        self._transport = transport

    @classmethod
    def from_settings(
        cls, settings: Settings, *, transport: httpx.AsyncBaseTransport | None = None
    ) -> AuditLogClient:
        return cls(
            settings.audit_log_url,
            settings.audit_log_api_key,
            timeout=settings.http_timeout_seconds,
            transport=transport,
        )

    @property
    def configured(self) -> bool:
        return bool(self.base_url and self.api_key)

    async def log_event(self, event: AuditEvent) -> bool:
        if not self.configured:
            logger.warning("Audit log configuration missing, skipping log")
            return False

        try:
            async with httpx.AsyncClient(
                headers={
                    "Authorization": f"Bearer {self.api_key}",
                    "Content-Type": "application/json",
                },
                timeout=self.timeout,
                transport=self._transport,
            ) as client:
                response = await client.post(
                    f"{self.base_url}/webhook-events",
                    json=event.to_payload(),
                )
                response.raise_for_status()
        except Exception:
            # Audit failures must never reach the webhook response.
            logger.exception("Error logging webhook event")
            return False

        logger.debug("Webhook event logged")
        return True
