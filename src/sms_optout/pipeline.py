from __future__ import annotations

import logging
from collections.abc import Mapping
from dataclasses import dataclass, field
from types import MappingProxyType
from typing import Any, Final

from .audit import AuditEvent, AuditLogClient
from .contacts import ContactStoreClient
from .keywords import classify
from .phone import normalize_phone
from .sms import InboundSms

logger = logging.getLogger(__name__)

CORS_HEADERS: Final[Mapping[str, str]] = MappingProxyType(
    {
        "Content-Type": "application/json",
        "Access-Control-Allow-Origin": "*",
        "Access-Control-Allow-Methods": "POST, OPTIONS",
        "Access-Control-Allow-Headers": "Content-Type",
    }
)

IGNORED_MESSAGE: Final[str] = "Not an opt-out/opt-in message"
ERROR_MESSAGE: Final[str] = "Internal server error processing webhook"


@dataclass(frozen=True)
class WebhookResponse:
    status_code: int
    body: Mapping[str, Any] | None = None
    headers: Mapping[str, str] = field(default_factory=lambda: CORS_HEADERS)


def _ignored() -> WebhookResponse:
    return WebhookResponse(200, {"status": "ignored", "message": IGNORED_MESSAGE})


def _success(action: str, phone: str | None, **extra: Any) -> WebhookResponse:
    return WebhookResponse(
        200,
        {
            "status": "success",
            "action": action,
            "phoneNumber": phone,
            "message": f"Successfully processed {action} for {phone}",
            **extra,
        },
    )


def _error() -> WebhookResponse:
    return WebhookResponse(500, {"status": "error", "message": ERROR_MESSAGE})


async def handle_webhook(
    method: str,
    payload: Mapping[str, Any],
    *,
    contacts: ContactStoreClient,
    audit: AuditLogClient,
) -> WebhookResponse:
    """
    Process one inbound SMS webhook.

    - OPTIONS pre-flight: 200, nothing else happens
    - body without an opt-out/opt-in phrase: 200 "ignored", no outbound calls
    - otherwise: update the contact's sms_opt_out flag, write an audit event,
      return 200 "success" (also when no contact matched)
    - any failure on the way: 500 "error", plus a best-effort error audit event

    Duplicate deliveries of the same MessageSid are processed again.
    """
    if method.upper() == "OPTIONS":
        return WebhookResponse(200)

    try:
        sms = InboundSms.from_payload(payload)
        logger.info("Received SMS webhook: %s - %s", sms.from_number, sms.body)

        phone = normalize_phone(sms.from_number)
        classification = classify(sms.body)

        action = classification.action
        opt_out = classification.opt_out_value
        if action is None or opt_out is None:
            return _ignored()

        outcome = await contacts.update_subscription(phone, opt_out)

        await audit.log_event(
            AuditEvent(
                phone_number=phone,
                original_phone_number=sms.from_number,
                message_body=sms.body,
                message_sid=sms.message_sid,
                account_sid=sms.account_sid,
                to_number=sms.to_number,
                action=action,
                sms_opt_out_value=opt_out,
                update_result=outcome,
            )
        )
    except Exception as exc:
        logger.exception("SMS webhook error")
        await audit.log_event(
            AuditEvent(
                phone_number=_field(payload, "From"),
                message_body=_field(payload, "Body"),
                error=str(exc),
            )
        )
        return _error()

    return _success(action, phone)


async def handle_webhook_dry_run(method: str, payload: Mapping[str, Any]) -> WebhookResponse:
    """
    Same contract as ``handle_webhook`` but never talks to the contact store
    or the audit log; the would-be update is only logged.
    """
    if method.upper() == "OPTIONS":
        return WebhookResponse(200)

    try:
        sms = InboundSms.from_payload(payload)
        phone = normalize_phone(sms.from_number)
        classification = classify(sms.body)

        action = classification.action
        if action is None:
            logger.info("Ignoring non-opt message: %r", sms.body)
            return _ignored()

        logger.info(
            "[dry-run] %s: would set sms_opt_out=%s for %s",
            action,
            classification.opt_out_value,
            phone,
        )
    except Exception:
        logger.exception("SMS webhook (dry-run) error")
        return _error()

    return _success(action, phone, mock=True)


def _field(payload: Mapping[str, Any], key: str) -> str:
    value = payload.get(key)
    return str(value) if value else "unknown"
