from __future__ import annotations

import logging
import os
from collections.abc import Mapping
from contextlib import asynccontextmanager
from typing import Any

from fastapi import Depends, FastAPI, Request, Response
from fastapi.responses import JSONResponse

from .audit import AuditLogClient
from .config import Settings, configure_logging, get_settings
from .contacts import ContactStoreClient
from .pipeline import (
    CORS_HEADERS,
    ERROR_MESSAGE,
    WebhookResponse,
    handle_webhook,
    handle_webhook_dry_run,
)
from .twilio_client import SIGNATURE_HEADER, get_request_validator, is_valid_signature

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    # Startup: runs once before the app starts serving requests
    configure_logging(get_settings().log_level)
    yield


app = FastAPI(title="sms-optout", version="0.1.0", lifespan=lifespan)


# --- Dependencies ---


def get_contact_store(settings: Settings = Depends(get_settings)) -> ContactStoreClient:
    return ContactStoreClient.from_settings(settings)


def get_audit_log(settings: Settings = Depends(get_settings)) -> AuditLogClient:
    return AuditLogClient.from_settings(settings)


# --- Helpers ---


async def read_payload(request: Request) -> dict[str, Any]:
    """
    Decode a webhook body: form-encoded (what Twilio sends) or JSON.

    An unreadable body is treated as empty; the handler then reports
    the message as ignored.
    """
    content_type = request.headers.get("content-type", "")
    try:
        if content_type.startswith("application/json"):
            data = await request.json()
            return data if isinstance(data, dict) else {}
        form = await request.form()
        return {key: value for key, value in form.items() if isinstance(value, str)}
    except ValueError:
        logger.warning("Could not decode webhook body (content-type=%s)", content_type)
        return {}


def to_http(result: WebhookResponse) -> Response:
    headers = dict(result.headers)
    if result.body is None:
        return Response(status_code=result.status_code, headers=headers)
    return JSONResponse(dict(result.body), status_code=result.status_code, headers=headers)


async def signature_ok(request: Request, payload: Mapping[str, Any], settings: Settings) -> bool:
    validator = get_request_validator(settings)
    if validator is None:
        return True

    params: Mapping[str, Any] | str = payload
    if request.headers.get("content-type", "").startswith("application/json"):
        # JSON webhooks are signed over the raw body via the bodySHA256 query param
        params = (await request.body()).decode() if "bodySHA256" in request.url.query else {}

    return is_valid_signature(
        validator, str(request.url), params, request.headers.get(SIGNATURE_HEADER)
    )


# --- Routes ---


@app.get("/health")
def health() -> JSONResponse:
    return JSONResponse({"status": "ok"})


@app.api_route("/sms-webhook", methods=["POST", "OPTIONS"])
async def sms_webhook(
    request: Request,
    contacts: ContactStoreClient = Depends(get_contact_store),
    audit: AuditLogClient = Depends(get_audit_log),
    settings: Settings = Depends(get_settings),
) -> Response:
    """
    Inbound SMS webhook.

    Updates the contact's sms_opt_out flag for "OPT OUT" / "OPT IN"
    messages and answers 200 for everything it could process.
    """
    if request.method == "OPTIONS":
        return to_http(await handle_webhook(request.method, {}, contacts=contacts, audit=audit))

    payload = await read_payload(request)

    try:
        verified = await signature_ok(request, payload, settings)
    except RuntimeError:
        logger.exception("Signature validation misconfigured")
        return to_http(WebhookResponse(500, {"status": "error", "message": ERROR_MESSAGE}))

    if not verified:
        logger.warning("Rejected webhook with invalid %s", SIGNATURE_HEADER)
        return JSONResponse(
            {"status": "error", "message": "Invalid request signature"},
            status_code=403,
            headers=dict(CORS_HEADERS),
        )

    result = await handle_webhook(request.method, payload, contacts=contacts, audit=audit)
    return to_http(result)


@app.api_route("/sms-webhook-mock", methods=["POST", "OPTIONS"])
async def sms_webhook_mock(request: Request) -> Response:
    """
    Dry-run variant of /sms-webhook: classifies and normalizes, but never
    calls the contact store or the audit log.
    """
    payload = {} if request.method == "OPTIONS" else await read_payload(request)
    return to_http(await handle_webhook_dry_run(request.method, payload))


def run() -> None:
    import uvicorn

    uvicorn.run(
        "sms_optout.main:app",
        host=os.getenv("HOST", "0.0.0.0"),
        port=int(os.getenv("PORT", "8000")),
    )
