from __future__ import annotations

from collections.abc import Mapping
from typing import Any

from twilio.request_validator import RequestValidator

from .config import Settings

SIGNATURE_HEADER = "X-Twilio-Signature"


def get_request_validator(settings: Settings) -> RequestValidator | None:
    """
    Return a validator when signature checking is switched on.

    Checking is opt-in (TWILIO_VALIDATE_SIGNATURE); enabling it without an
    auth token is a misconfiguration.
    """
    if not settings.twilio_validate_signature:
        return None

    if not settings.twilio_auth_token:
        raise RuntimeError(
            "TWILIO_VALIDATE_SIGNATURE is set but TWILIO_AUTH_TOKEN is not configured"
        )

    return RequestValidator(settings.twilio_auth_token)


def is_valid_signature(
    validator: RequestValidator,
    url: str,
    params: Mapping[str, Any] | str,
    signature: str | None,
) -> bool:
    """
    Check a Twilio webhook signature.

    ``params`` is the decoded form body, or the raw body string for JSON
    webhooks signed with ``bodySHA256``.
    """
    if not signature:
        return False
    return bool(validator.validate(url, params, signature))
