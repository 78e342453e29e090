from __future__ import annotations

import logging
from datetime import UTC, datetime
from typing import Any

import httpx
from pydantic import BaseModel, ConfigDict, Field

from .config import Settings

logger = logging.getLogger(__name__)


class ConfigurationError(RuntimeError):
    """A required remote endpoint or credential is not configured."""


def utcnow_iso() -> str:
    """Current UTC time as an ISO-8601 string with millisecond precision."""
    return datetime.now(UTC).isoformat(timespec="milliseconds").replace("+00:00", "Z")


class UpdateOutcome(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    success: bool
    contact_id: str | None = Field(default=None, alias="contactId")
    reason: str | None = None
    sms_opt_out_value: bool | None = Field(default=None, alias="smsOptOutValue")
    updated_at: str | None = Field(default=None, alias="updatedAt")


class ContactStoreClient:
    """
    Thin client for the contact store's REST API.

    Only two calls are used:
      GET   {base}/contacts/search?phone_number=...
      PATCH {base}/contacts/{id}

    Nothing is retried; HTTP and transport errors propagate to the caller.
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
    ) -> ContactStoreClient:
        return cls(
            settings.contact_store_url,
            settings.contact_store_api_key,
            timeout=settings.http_timeout_seconds,
            transport=transport,
        )

    def _require_config(self) -> tuple[str, str]:
        if not self.base_url or not self.api_key:
            raise ConfigurationError(
                "Contact store configuration missing (IMPOWR_DB_URL / IMPOWR_DB_API_KEY)"
            )
        return self.base_url, self.api_key

    def _client(self, api_key: str) -> httpx.AsyncClient:
        return httpx.AsyncClient(
            headers={
                "Authorization": f"Bearer {api_key}",
                "Content-Type": "application/json",
            },
            timeout=self.timeout,
            transport=self._transport,
        )

    async def search(self, phone: str | None) -> list[dict[str, Any]]:
        """Return the contacts whose phone number matches, in store order."""
        base_url, api_key = self._require_config()
        async with self._client(api_key) as client:
            response = await client.get(
                f"{base_url}/contacts/search",
                params={"phone_number": phone or ""},
            )
            response.raise_for_status()
            data = response.json() if response.content else None

        if not isinstance(data, dict):
            return []
        contacts = data.get("contacts") or []
        return [c for c in contacts if isinstance(c, dict)]

    async def patch(self, contact_id: str, opt_out: bool, updated_at: str) -> None:
        base_url, api_key = self._require_config()
        async with self._client(api_key) as client:
            response = await client.patch(
                f"{base_url}/contacts/{contact_id}",
                json={"sms_opt_out": opt_out, "sms_opt_out_updated_at": updated_at},
            )
            response.raise_for_status()

    async def update_subscription(self, phone: str | None, opt_out: bool) -> UpdateOutcome:
        """
        Set ``sms_opt_out`` on the first contact matching ``phone``.

        A missing contact is an outcome, not an error.
        """
        self._require_config()

        contacts = await self.search(phone)
        raw_id = contacts[0].get("id") if contacts else None
        if raw_id is None or raw_id == "":
            # A match without an id can't be patched; same outcome as no match.
            logger.warning("No contact found for phone number: %s", phone)
            return UpdateOutcome(success=False, reason="contact_not_found")

        contact_id = str(raw_id)
        updated_at = utcnow_iso()
        await self.patch(contact_id, opt_out, updated_at)

        logger.info("Updated contact %s with sms_opt_out=%s", contact_id, opt_out)
        return UpdateOutcome(
            success=True,
            contact_id=contact_id,
            sms_opt_out_value=opt_out,
            updated_at=updated_at,
        )
