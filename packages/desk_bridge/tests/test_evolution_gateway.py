"""
Tests for the Evolution API gateway and gateway selection.
"""

import json

import httpx
import pytest

from basecore.settings import get_settings

from desk_bridge.contracts.tenant import TenantConfig
from desk_bridge.errors import UpstreamError, ValidationError
from desk_bridge.network import EvolutionGateway, Presence, StubGateway, gateway_for_tenant
from desk_bridge.network.base import parse_peer_id, phone_from_peer_id

PEER = "5511999999999@s.whatsapp.net"


class RecordingApi:
    def __init__(self, status_code: int = 201, body: dict | None = None):
        self.status_code = status_code
        self.body = body if body is not None else {"key": {"id": "3EB0SENT"}}
        self.requests: list[httpx.Request] = []

    def handler(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        return httpx.Response(self.status_code, json=self.body)

    @property
    def last(self) -> tuple[str, dict]:
        request = self.requests[-1]
        return request.url.path, json.loads(request.content)


@pytest.fixture
def api():
    return RecordingApi()


@pytest.fixture
def gateway(api):
    return EvolutionGateway(
        api_url="https://evo.test/",
        api_key="evo-key",
        instance_name="acme-session",
        transport=httpx.MockTransport(api.handler),
    )


class TestEvolutionGateway:
    """Tests for request shapes."""

    @pytest.mark.asyncio
    async def test_send_text(self, gateway, api):
        result = await gateway.send_text(PEER, "*hi*")

        path, body = api.last
        assert path == "/message/sendText/acme-session"
        assert body == {"number": PEER, "text": "*hi*"}
        assert api.requests[-1].headers["apikey"] == "evo-key"
        assert result.message_id == "3EB0SENT"

    @pytest.mark.asyncio
    async def test_send_text_with_quote(self, gateway, api):
        await gateway.send_text(PEER, "ok", quoted_id="3EB0OLD")

        assert api.last[1]["quoted"] == {"key": {"id": "3EB0OLD"}}

    @pytest.mark.asyncio
    async def test_send_image(self, gateway, api):
        await gateway.send_image(PEER, "https://desk.test/a.png", caption="look")

        path, body = api.last
        assert path == "/message/sendMedia/acme-session"
        assert body == {"number": PEER, "mediatype": "image", "media": "https://desk.test/a.png", "caption": "look"}

    @pytest.mark.asyncio
    async def test_send_document_derives_filename(self, gateway, api):
        await gateway.send_document(PEER, "https://desk.test/files/c.pdf?sig=1", mimetype="application/pdf")

        body = api.last[1]
        assert body["mediatype"] == "document"
        assert body["fileName"] == "c.pdf"
        assert body["mimetype"] == "application/pdf"
        assert "caption" not in body

    @pytest.mark.asyncio
    async def test_send_audio(self, gateway, api):
        await gateway.send_audio(PEER, "https://desk.test/b.ogg")

        assert api.last == ("/message/sendWhatsAppAudio/acme-session", {"number": PEER, "audio": "https://desk.test/b.ogg"})

    @pytest.mark.asyncio
    async def test_send_reaction(self, gateway, api):
        await gateway.send_reaction(PEER, "3EB0OLD", "👍")

        path, body = api.last
        assert path == "/message/sendReaction/acme-session"
        assert body == {"key": {"remoteJid": PEER, "fromMe": False, "id": "3EB0OLD"}, "reaction": "👍"}

    @pytest.mark.asyncio
    async def test_set_presence(self, gateway, api):
        await gateway.set_presence(PEER, Presence.COMPOSING)

        assert api.last == ("/chat/sendPresence/acme-session", {"number": PEER, "presence": "composing", "delay": 0})

    @pytest.mark.asyncio
    async def test_error_status_raises_upstream_error(self):
        api = RecordingApi(status_code=400, body={"message": "number not on network"})
        gateway = EvolutionGateway("https://evo.test", "k", "acme", transport=httpx.MockTransport(api.handler))

        with pytest.raises(UpstreamError) as exc_info:
            await gateway.send_text(PEER, "hi")

        assert exc_info.value.status_code == 400
        assert "number not on network" in str(exc_info.value)

    @pytest.mark.asyncio
    async def test_transport_error_raises_upstream_error(self):
        def refuse(request):
            raise httpx.ConnectError("refused", request=request)

        gateway = EvolutionGateway("https://evo.test", "k", "acme", transport=httpx.MockTransport(refuse))

        with pytest.raises(UpstreamError) as exc_info:
            await gateway.set_presence(PEER, Presence.PAUSED)

        assert exc_info.value.code == "HTTP_ERROR"


class TestPeerIds:
    @pytest.mark.parametrize(
        "value,expected",
        [
            (PEER, PEER),
            ("5511999999999", PEER),
            ("+55 (11) 99999-9999", "5511999999999@s.whatsapp.net"),
            ("120363025246125244@g.us", "120363025246125244@g.us"),
        ],
    )
    def test_parse_peer_id(self, value, expected):
        assert parse_peer_id(value) == expected

    @pytest.mark.parametrize("value", ["", "   ", "abc", "@s.whatsapp.net", "5511@"])
    def test_parse_peer_id_rejects(self, value):
        with pytest.raises(ValidationError):
            parse_peer_id(value)

    def test_phone_from_peer_id_drops_device(self):
        assert phone_from_peer_id("5511999999999:12@s.whatsapp.net") == "5511999999999"


class TestGatewayForTenant:
    """Tests for per-tenant gateway selection."""

    @pytest.fixture(autouse=True)
    def clean_settings(self, monkeypatch):
        for name in ("BRIDGE_GATEWAY_PROVIDER", "BRIDGE_GATEWAY_API_URL", "BRIDGE_GATEWAY_API_KEY"):
            monkeypatch.delenv(name, raising=False)
        get_settings.cache_clear()
        yield
        get_settings.cache_clear()

    def test_tenant_config_wins(self, tenant, monkeypatch):
        monkeypatch.setenv("BRIDGE_GATEWAY_API_URL", "https://default.test")
        monkeypatch.setenv("BRIDGE_GATEWAY_API_KEY", "default-key")
        own = TenantConfig(**{**tenant.to_dict(), "gateway_url": "https://evo.acme.test", "gateway_api_key": "acme-key"})

        gateway = gateway_for_tenant(own)

        assert isinstance(gateway, EvolutionGateway)
        assert gateway.api_url == "https://evo.acme.test"
        assert gateway.api_key == "acme-key"
        assert gateway.instance_name == "acme-session"

    def test_falls_back_to_settings(self, tenant, monkeypatch):
        monkeypatch.setenv("BRIDGE_GATEWAY_API_URL", "https://default.test")
        monkeypatch.setenv("BRIDGE_GATEWAY_API_KEY", "default-key")

        gateway = gateway_for_tenant(tenant)

        assert gateway.api_url == "https://default.test"
        assert gateway.api_key == "default-key"

    def test_unconfigured_uses_stub(self, tenant):
        assert isinstance(gateway_for_tenant(tenant), StubGateway)

    def test_stub_provider(self, tenant, monkeypatch):
        monkeypatch.setenv("BRIDGE_GATEWAY_PROVIDER", "stub")
        monkeypatch.setenv("BRIDGE_GATEWAY_API_URL", "https://default.test")

        assert isinstance(gateway_for_tenant(tenant), StubGateway)
