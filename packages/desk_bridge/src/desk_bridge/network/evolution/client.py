"""
Evolution API Messaging Gateway

Gateway for Evolution API (Baileys-based WhatsApp Web integration).
Uses REST endpoints to send messages and presence on behalf of one instance.

Documentation: https://doc.evolution-api.com/
"""

import logging
from typing import Any

import httpx

from desk_bridge.errors import UpstreamError
from desk_bridge.network.base import MessagingGateway, Presence, SendResult

logger = logging.getLogger(__name__)


class EvolutionGateway(MessagingGateway):
    """
    Evolution API gateway for one tenant instance.

    Each tenant has its own instance (identified by instance_name).
    """

    def __init__(
        self,
        api_url: str,
        api_key: str,
        instance_name: str,
        timeout: float = 30.0,
        transport: httpx.AsyncBaseTransport | None = None,
    ):
        """
        Initialize Evolution API gateway.

        Args:
            api_url: Base URL of Evolution API (e.g., "https://evolution-api.example.com")
            api_key: API key for authentication
            instance_name: Name of the Evolution instance
            timeout: HTTP request timeout
            transport: Optional httpx transport (tests)
        """
        self.api_url = api_url.rstrip("/")
        self.api_key = api_key
        self.instance_name = instance_name
        self.timeout = timeout
        self._transport = transport
        self._client: httpx.AsyncClient | None = None

    async def _get_client(self) -> httpx.AsyncClient:
        """Get or create HTTP client."""
        if self._client is None or self._client.is_closed:
            self._client = httpx.AsyncClient(
                timeout=self.timeout,
                headers={
                    "Content-Type": "application/json",
                    "apikey": self.api_key,
                },
                transport=self._transport,
            )
        return self._client

    async def close(self) -> None:
        """Close the HTTP client."""
        if self._client and not self._client.is_closed:
            await self._client.aclose()

    async def _make_request(self, endpoint: str, json_data: dict[str, Any]) -> dict[str, Any]:
        """Make an authenticated POST to an instance endpoint."""
        client = await self._get_client()
        url = f"{self.api_url}{endpoint}/{self.instance_name}"

        try:
            response = await client.post(url, json=json_data)
        except httpx.RequestError as e:
            logger.error(f"HTTP request failed: {e}", extra={"instance": self.instance_name})
            raise UpstreamError(f"HTTP request failed: {e}", code="HTTP_ERROR")

        try:
            response_data = response.json()
        except ValueError:
            response_data = {"body": response.text}
        if not isinstance(response_data, dict):
            response_data = {"data": response_data}

        if response.status_code >= 400:
            error = response_data.get("error") or response_data.get("message") or "Unknown error"
            raise UpstreamError(
                message=str(error),
                code=str(response.status_code),
                details=response_data,
                status_code=response.status_code,
            )

        return response_data

    @staticmethod
    def _result(response: dict[str, Any]) -> SendResult:
        message_id = (response.get("key") or {}).get("id") or response.get("id")
        return SendResult(message_id=message_id, raw_response=response)

    async def send_text(
        self,
        peer_id: str,
        text: str,
        quoted_id: str | None = None,
    ) -> SendResult:
        """Send a text message via Evolution API."""
        payload: dict[str, Any] = {
            "number": peer_id,
            "text": text,
        }

        if quoted_id:
            payload["quoted"] = {"key": {"id": quoted_id}}

        result = self._result(await self._make_request("/message/sendText", payload))
        logger.info(
            "Sent text message via Evolution API",
            extra={"to": peer_id, "message_id": result.message_id, "instance": self.instance_name},
        )
        return result

    async def _send_media(
        self,
        peer_id: str,
        mediatype: str,
        url: str,
        caption: str = "",
        mimetype: str | None = None,
        filename: str | None = None,
    ) -> SendResult:
        payload: dict[str, Any] = {
            "number": peer_id,
            "mediatype": mediatype,
            "media": url,
        }
        if caption:
            payload["caption"] = caption
        if mimetype:
            payload["mimetype"] = mimetype
        if filename:
            payload["fileName"] = filename

        result = self._result(await self._make_request("/message/sendMedia", payload))
        logger.info(
            f"Sent {mediatype} via Evolution API",
            extra={"to": peer_id, "message_id": result.message_id, "instance": self.instance_name},
        )
        return result

    async def send_image(self, peer_id: str, url: str, caption: str = "") -> SendResult:
        return await self._send_media(peer_id, "image", url, caption=caption)

    async def send_audio(self, peer_id: str, url: str) -> SendResult:
        """Send audio as a voice note."""
        payload = {"number": peer_id, "audio": url}
        result = self._result(await self._make_request("/message/sendWhatsAppAudio", payload))
        logger.info(
            "Sent audio via Evolution API",
            extra={"to": peer_id, "message_id": result.message_id, "instance": self.instance_name},
        )
        return result

    async def send_document(
        self,
        peer_id: str,
        url: str,
        caption: str = "",
        mimetype: str = "application/octet-stream",
        filename: str = "",
    ) -> SendResult:
        return await self._send_media(
            peer_id,
            "document",
            url,
            caption=caption,
            mimetype=mimetype,
            filename=filename or url.rsplit("/", 1)[-1].split("?", 1)[0],
        )

    async def send_reaction(self, peer_id: str, message_id: str, glyph: str) -> SendResult:
        payload = {
            "key": {"remoteJid": peer_id, "fromMe": False, "id": message_id},
            "reaction": glyph,
        }
        return self._result(await self._make_request("/message/sendReaction", payload))

    async def set_presence(self, peer_id: str, presence: Presence) -> None:
        payload = {"number": peer_id, "presence": presence.value, "delay": 0}
        await self._make_request("/chat/sendPresence", payload)
