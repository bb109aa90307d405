"""
Desk API Client

Async client for the support desk REST API (Chatwoot-compatible).
All calls are scoped to one account and authenticated with the
`api_access_token` header. Calls are never retried here.
"""

import logging
from typing import Any

import httpx

from desk_bridge.contracts.tenant import TenantConfig
from desk_bridge.desk.models import (
    ContactRecord,
    ConversationRecord,
    InboxRecord,
    created_id,
    payload_list,
)
from desk_bridge.errors import UpstreamError

logger = logging.getLogger(__name__)


class DeskClient:
    """
    Desk API client for one account.
    """

    def __init__(
        self,
        base_url: str,
        account_id: str,
        access_token: str,
        timeout: float = 15.0,
        transport: httpx.AsyncBaseTransport | None = None,
    ):
        """
        Args:
            base_url: Desk base URL (e.g., "https://desk.example.com")
            account_id: Desk account id
            access_token: Agent or bot access token
            timeout: HTTP request timeout
            transport: Optional httpx transport (tests)
        """
        self.base_url = base_url.rstrip("/")
        self.account_id = account_id
        self.access_token = access_token
        self.timeout = timeout
        self._transport = transport
        self._client: httpx.AsyncClient | None = None

    @classmethod
    def for_tenant(
        cls,
        tenant: TenantConfig,
        timeout: float = 15.0,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> "DeskClient":
        return cls(
            base_url=tenant.desk_url,
            account_id=tenant.account_id,
            access_token=tenant.access_token,
            timeout=timeout,
            transport=transport,
        )

    @property
    def account_url(self) -> str:
        return f"{self.base_url}/api/v1/accounts/{self.account_id}"

    async def _get_client(self) -> httpx.AsyncClient:
        """Get or create HTTP client."""
        if self._client is None or self._client.is_closed:
            self._client = httpx.AsyncClient(
                timeout=self.timeout,
                headers={"api_access_token": self.access_token},
                transport=self._transport,
            )
        return self._client

    async def close(self) -> None:
        """Close the HTTP client."""
        if self._client and not self._client.is_closed:
            await self._client.aclose()

    async def __aenter__(self) -> "DeskClient":
        return self

    async def __aexit__(self, *exc_info: Any) -> None:
        await self.close()

    async def _make_request(
        self,
        method: str,
        endpoint: str,
        json_data: dict[str, Any] | None = None,
        data: dict[str, Any] | None = None,
        files: dict[str, Any] | None = None,
    ) -> Any:
        """Make an authenticated API request and decode the JSON body."""
        client = await self._get_client()
        url = f"{self.account_url}{endpoint}"

        try:
            response = await client.request(method, url, json=json_data, data=data, files=files)
        except httpx.RequestError as e:
            logger.error(f"Desk request failed: {e}", extra={"endpoint": endpoint})
            raise UpstreamError(f"Desk request failed: {e}", code="HTTP_ERROR")

        if response.status_code >= 400:
            raise UpstreamError(
                message=f"Desk API error {response.status_code}: {response.text[:500]}",
                code=str(response.status_code),
                details={"endpoint": endpoint, "body": response.text[:2000]},
                status_code=response.status_code,
            )

        if not response.content:
            return {}
        try:
            return response.json()
        except ValueError as e:
            raise UpstreamError(f"Desk returned invalid JSON: {e}", code="PARSE_ERROR")

    async def filter_contacts_by_phone(self, phone: str) -> list[ContactRecord]:
        """Find contacts whose phone number equals "+<phone>"."""
        body = {
            "payload": [
                {
                    "attribute_key": "phone_number",
                    "filter_operator": "equal_to",
                    "values": [f"+{phone}"],
                }
            ]
        }
        response = await self._make_request("POST", "/contacts/filter", json_data=body)
        return [ContactRecord.from_api(item) for item in payload_list(response) if item.get("id")]

    async def create_contact(self, name: str, phone: str, identifier: str = "") -> int:
        body: dict[str, Any] = {"name": name, "phone_number": f"+{phone}"}
        if identifier:
            body["identifier"] = identifier
        response = await self._make_request("POST", "/contacts", json_data=body)
        return created_id(response)

    async def list_contact_conversations(self, contact_id: int) -> list[ConversationRecord]:
        response = await self._make_request("GET", f"/contacts/{contact_id}/conversations")
        return [ConversationRecord.from_api(item) for item in payload_list(response) if item.get("id")]

    async def create_conversation(self, contact_id: int, inbox_id: int) -> int:
        body = {"contact_id": contact_id, "inbox_id": inbox_id}
        response = await self._make_request("POST", "/conversations", json_data=body)
        return created_id(response)

    async def create_message(
        self,
        conversation_id: int,
        content: str,
        message_type: str = "incoming",
        source_id: str | None = None,
        private: bool = False,
    ) -> dict[str, Any]:
        """Post a text message to a conversation."""
        body: dict[str, Any] = {
            "content": content,
            "message_type": message_type,
            "private": private,
        }
        if source_id:
            body["source_id"] = source_id
        return await self._make_request(
            "POST", f"/conversations/{conversation_id}/messages", json_data=body
        )

    async def create_attachment_message(
        self,
        conversation_id: int,
        file_bytes: bytes,
        filename: str,
        mimetype: str,
        message_type: str = "incoming",
        source_id: str | None = None,
        content: str | None = None,
    ) -> dict[str, Any]:
        """Post a message with one file as multipart form data."""
        form: dict[str, Any] = {
            "message_type": message_type,
            "private": "false",
        }
        if source_id:
            form["source_id"] = source_id
        if content:
            form["content"] = content

        files = {"attachments[]": (filename, file_bytes, mimetype)}
        return await self._make_request(
            "POST", f"/conversations/{conversation_id}/messages", data=form, files=files
        )

    async def list_inboxes(self) -> list[InboxRecord]:
        response = await self._make_request("GET", "/inboxes")
        return [InboxRecord.from_api(item) for item in payload_list(response) if item.get("id")]
