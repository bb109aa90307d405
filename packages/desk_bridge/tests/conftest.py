"""
Pytest fixtures for desk bridge tests.
"""

import json
import re
from datetime import datetime, timezone

import httpx
import pytest

from basecore.settings import Settings

from desk_bridge.contracts.inbound import InboundMessage, TextContent
from desk_bridge.contracts.tenant import TenantConfig
from desk_bridge.desk.client import DeskClient
from desk_bridge.network.stub import StubGateway
from desk_bridge.persistence.tenants import InMemoryTenantDirectory
from desk_bridge.routing.tenant_resolver import InboxResolver, TenantResolver

ACCOUNT_PREFIX = "/api/v1/accounts/1"
NOW = datetime(2024, 1, 1, 12, 0, 0, tzinfo=timezone.utc)


class FakeDeskApi:
    """
    In-memory desk API served through httpx.MockTransport.

    Contacts are deduplicated by phone like the real desk.
    """

    def __init__(self):
        self.contacts: list[dict] = []
        self.conversations: dict[int, list[dict]] = {}
        self.inboxes: list[dict] = [{"id": 7, "name": "WhatsApp"}, {"id": 8, "name": "Email"}]
        self.messages: list[dict] = []
        self.requests: list[httpx.Request] = []
        self.fail_messages = False
        self.flat_create_response = False
        self._next_id = 100

    def _id(self) -> int:
        self._next_id += 1
        return self._next_id

    def add_conversation(self, contact_id: int, conversation_id: int, inbox_id: int, status: str) -> None:
        self.conversations.setdefault(contact_id, []).append(
            {"id": conversation_id, "inbox_id": inbox_id, "status": status}
        )

    def add_contact(self, phone: str, name: str = "Existing") -> int:
        contact_id = self._id()
        self.contacts.append({"id": contact_id, "phone_number": f"+{phone}", "name": name})
        return contact_id

    @property
    def writes(self) -> list[httpx.Request]:
        """Requests that change desk state."""
        return [r for r in self.requests if r.method == "POST" and not r.url.path.endswith("/filter")]

    def paths(self) -> list[str]:
        return [f"{r.method} {r.url.path[len(ACCOUNT_PREFIX):]}" for r in self.requests]

    def handler(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        assert request.headers["api_access_token"] == "desk-token"
        assert request.url.path.startswith(ACCOUNT_PREFIX)

        route = request.url.path[len(ACCOUNT_PREFIX):]
        method = request.method

        if method == "POST" and route == "/contacts/filter":
            phone = json.loads(request.content)["payload"][0]["values"][0]
            return httpx.Response(200, json={"payload": [c for c in self.contacts if c["phone_number"] == phone]})

        if method == "POST" and route == "/contacts":
            body = json.loads(request.content)
            contact = {"id": self._id(), **body}
            self.contacts.append(contact)
            if self.flat_create_response:
                return httpx.Response(200, json={"payload": {"id": contact["id"]}})
            return httpx.Response(200, json={"payload": {"contact": contact}})

        match = re.fullmatch(r"/contacts/(\d+)/conversations", route)
        if method == "GET" and match:
            return httpx.Response(200, json={"payload": self.conversations.get(int(match.group(1)), [])})

        if method == "POST" and route == "/conversations":
            body = json.loads(request.content)
            conversation_id = self._id()
            self.add_conversation(body["contact_id"], conversation_id, body["inbox_id"], "open")
            return httpx.Response(200, json={"id": conversation_id})

        match = re.fullmatch(r"/conversations/(\d+)/messages", route)
        if method == "POST" and match:
            if self.fail_messages:
                return httpx.Response(500, json={"error": "boom"})
            record = {
                "conversation_id": int(match.group(1)),
                "content_type": request.headers.get("content-type", ""),
                "raw": request.content,
            }
            if record["content_type"].startswith("application/json"):
                record["json"] = json.loads(request.content)
            self.messages.append(record)
            return httpx.Response(200, json={"id": self._id()})

        if method == "GET" and route == "/inboxes":
            return httpx.Response(200, json={"payload": self.inboxes})

        return httpx.Response(404, json={"error": "not found"})


@pytest.fixture
def settings():
    """Settings with fast deadlines and no external backends."""
    return Settings(
        dedup_backend="memory",
        tenant_backend="memory",
        inbound_deadline_seconds=5.0,
        outbound_deadline_seconds=5.0,
        staleness_threshold_seconds=30.0,
    )


@pytest.fixture
def tenant():
    return TenantConfig(
        tenant_id="acme",
        desk_url="https://desk.test",
        account_id="1",
        access_token="desk-token",
        inbox_id=7,
        instance_name="acme-session",
    )


@pytest.fixture
def desk_api():
    return FakeDeskApi()


@pytest.fixture
def desk_factory(desk_api):
    def factory(tenant: TenantConfig) -> DeskClient:
        return DeskClient.for_tenant(tenant, transport=httpx.MockTransport(desk_api.handler))

    return factory


@pytest.fixture
def directory(tenant):
    return InMemoryTenantDirectory([tenant])


@pytest.fixture
def tenant_resolver(directory, desk_factory):
    return TenantResolver(directory, InboxResolver(desk_factory=desk_factory))


@pytest.fixture
def stub_gateway():
    return StubGateway()


@pytest.fixture
def now():
    return NOW


@pytest.fixture
def make_message():
    """Build an inbound message; defaults to a fresh text from a phone peer."""

    def factory(**overrides) -> InboundMessage:
        fields = {
            "message_id": "ABC123",
            "remote_jid": "5511999999999@s.whatsapp.net",
            "from_me": False,
            "push_name": "Maria",
            "timestamp": NOW,
            "content": TextContent(text="Olá"),
        }
        fields.update(overrides)
        return InboundMessage(**fields)

    return factory
