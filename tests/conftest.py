from __future__ import annotations

import json
from collections.abc import Callable, Iterator
from typing import Any

import httpx
import pytest
from fastapi.testclient import TestClient

from sms_optout.audit import AuditLogClient
from sms_optout.config import Settings, get_settings
from sms_optout.contacts import ContactStoreClient
from sms_optout.main import app, get_audit_log, get_contact_store

CONTACTS_URL = "https://contacts.example.test/api/v1"
AUDIT_URL = "https://audit.example.test/api/v1"


class FakeRemote:
    """Records every outbound request and answers with a canned handler."""

    def __init__(self, handler: Callable[[httpx.Request], httpx.Response]) -> None:
        self.handler = handler
        self.requests: list[httpx.Request] = []
        self.transport = httpx.MockTransport(self._handle)

    def _handle(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        return self.handler(request)

    def methods(self) -> list[str]:
        return [r.method for r in self.requests]

    def json_bodies(self) -> list[Any]:
        return [json.loads(r.content) for r in self.requests if r.content]


def contact_store_handler(
    contacts: list[dict[str, Any]] | None = None,
) -> Callable[[httpx.Request], httpx.Response]:
    """Search returns ``contacts``; patch succeeds."""
    found = contacts if contacts is not None else [{"id": "contact123"}]

    def handler(request: httpx.Request) -> httpx.Response:
        if request.method == "GET" and request.url.path.endswith("/contacts/search"):
            return httpx.Response(200, json={"contacts": found})
        if request.method == "PATCH":
            return httpx.Response(200, json={"success": True})
        return httpx.Response(404)

    return handler


def ok_handler(request: httpx.Request) -> httpx.Response:
    return httpx.Response(200, json={"success": True})


@pytest.fixture
def settings() -> Settings:
    return Settings(
        contact_store_url=CONTACTS_URL,
        contact_store_api_key="contacts-key",
        audit_log_url=AUDIT_URL,
        audit_log_api_key="audit-key",
        twilio_auth_token=None,
        twilio_validate_signature=False,
    )


@pytest.fixture
def contact_store() -> FakeRemote:
    return FakeRemote(contact_store_handler())


@pytest.fixture
def audit_log() -> FakeRemote:
    return FakeRemote(ok_handler)


@pytest.fixture
def client(
    settings: Settings, contact_store: FakeRemote, audit_log: FakeRemote
) -> Iterator[TestClient]:
    """TestClient whose outbound calls go to the fake remotes above."""
    app.dependency_overrides[get_settings] = lambda: settings
    app.dependency_overrides[get_contact_store] = lambda: ContactStoreClient.from_settings(
        settings, transport=contact_store.transport
    )
    app.dependency_overrides[get_audit_log] = lambda: AuditLogClient.from_settings(
        settings, transport=audit_log.transport
    )
    try:
        yield TestClient(app)
    finally:
        app.dependency_overrides.clear()
