from __future__ import annotations

from collections.abc import Mapping
from typing import Any

from pydantic import BaseModel, ConfigDict, Field

_ALIASES = frozenset({"From", "Body", "MessageSid", "AccountSid", "To"})


class InboundSms(BaseModel):
    """Fields we read from a Twilio-style inbound SMS webhook."""

    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    from_number: str | None = Field(default=None, alias="From")
    body: str | None = Field(default=None, alias="Body")
    message_sid: str | None = Field(default=None, alias="MessageSid")
    account_sid: str | None = Field(default=None, alias="AccountSid")
    to_number: str | None = Field(default=None, alias="To")

    @classmethod
    def from_payload(cls, payload: Mapping[str, Any]) -> InboundSms:
        """
        Build from a decoded form/JSON body.

        Missing fields stay None; non-string values (e.g. numbers in a JSON
        test payload) are coerced to str.
        """
        known = {
            key: str(value)
            for key, value in payload.items()
            if key in _ALIASES and value is not None
        }
        return cls.model_validate(known)
