from __future__ import annotations

import asyncio

import httpx
import pytest

from sms_optout.audit import AuditEvent, AuditLogClient
from sms_optout.config import get_settings
from sms_optout.contacts import ConfigurationError, ContactStoreClient, UpdateOutcome
from sms_optout.debug import main as debug_main

from conftest import AUDIT_URL, CONTACTS_URL, FakeRemote, contact_store_handler, ok_handler


def test_settings_read_from_environment(monkeypatch: pytest.MonkeyPatch) -> None:
    """Test that get_settings picks up env vars after a cache clear."""
    monkeypatch.setenv("IMPOWR_DB_URL", CONTACTS_URL)
    monkeypatch.setenv("IMPOWR_DB_API_KEY", "k1")
    monkeypatch.setenv("LOGGING_DB_URL", "")
    monkeypatch.setenv("HTTP_TIMEOUT_SECONDS", "2.5")
    monkeypatch.setenv("TWILIO_VALIDATE_SIGNATURE", "true")

    get_settings.cache_clear()
    try:
        settings = get_settings()
    finally:
        get_settings.cache_clear()

    assert settings.contact_store_url == CONTACTS_URL
    assert settings.contact_store_api_key == "k1"
    assert settings.audit_log_url is None  # empty string counts as unset
    assert settings.http_timeout_seconds == 2.5
    assert settings.twilio_validate_signature is True


def test_update_subscription_requires_configuration() -> None:
    remote = FakeRemote(contact_store_handler())
    client = ContactStoreClient(None, "key", transport=remote.transport)

    with pytest.raises(ConfigurationError):
        asyncio.run(client.update_subscription("+11234567890", True))

    assert remote.requests == []


def test_update_subscription_uses_first_match() -> None:
    remote = FakeRemote(contact_store_handler(contacts=[{"id": 7}, {"id": 8}]))
    client = ContactStoreClient(CONTACTS_URL + "/", "key", transport=remote.transport)

    outcome = asyncio.run(client.update_subscription("+11234567890", False))

    assert outcome.success is True
    assert outcome.contact_id == "7"
    assert outcome.sms_opt_out_value is False
    assert str(remote.requests[1].url) == f"{CONTACTS_URL}/contacts/7"


def test_search_tolerates_unexpected_response_shape() -> None:
    remote = FakeRemote(lambda request: httpx.Response(200, json={"results": []}))
    client = ContactStoreClient(CONTACTS_URL, "key", transport=remote.transport)

    assert asyncio.run(client.search("+11234567890")) == []


def test_audit_event_payload_uses_camel_case_and_drops_empty_fields() -> None:
    event = AuditEvent(
        phone_number="+11234567890",
        action="opt_in",
        sms_opt_out_value=False,
        update_result=UpdateOutcome(success=False, reason="contact_not_found"),
    )

    payload = event.to_payload()

    assert payload["phoneNumber"] == "+11234567890"
    assert payload["smsOptOutValue"] is False
    assert payload["updateResult"] == {"success": False, "reason": "contact_not_found"}
    assert "messageSid" not in payload
    assert "error" not in payload
    assert payload["timestamp"].endswith("Z")


def test_audit_log_reports_success_and_failure() -> None:
    good = FakeRemote(ok_handler)
    bad = FakeRemote(lambda request: httpx.Response(502))
    event = AuditEvent(error="boom")

    assert asyncio.run(AuditLogClient(AUDIT_URL, "k", transport=good.transport).log_event(event))
    assert not asyncio.run(AuditLogClient(AUDIT_URL, "k", transport=bad.transport).log_event(event))
    assert str(good.requests[0].url) == f"{AUDIT_URL}/webhook-events"


def test_audit_log_without_configuration_is_a_no_op(caplog: pytest.LogCaptureFixture) -> None:
    remote = FakeRemote(ok_handler)
    client = AuditLogClient(AUDIT_URL, None, transport=remote.transport)

    assert asyncio.run(client.log_event(AuditEvent())) is False
    assert remote.requests == []
    assert "configuration missing" in caplog.text


def test_debug_cli_prints_classification_and_phone(capsys: pytest.CaptureFixture[str]) -> None:
    debug_main(["please opt in", "--phone", "(123) 456-7890"])

    out = capsys.readouterr().out
    assert "classification: opt_in" in out
    assert "phone: (123) 456-7890 -> +11234567890" in out


def test_audit_log_swallows_invalid_url() -> None:
    remote = FakeRemote(ok_handler)
    client = AuditLogClient("https://audit.example.test:notaport", "k", transport=remote.transport)

    assert asyncio.run(client.log_event(AuditEvent())) is False
    assert remote.requests == []


def test_first_match_without_id_counts_as_not_found() -> None:
    remote = FakeRemote(contact_store_handler(contacts=[{"phone_number": "+11234567890"}]))
    client = ContactStoreClient(CONTACTS_URL, "key", transport=remote.transport)

    outcome = asyncio.run(client.update_subscription("+11234567890", True))

    assert outcome == UpdateOutcome(success=False, reason="contact_not_found")
    assert remote.methods() == ["GET"]
