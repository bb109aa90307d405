"""
Desk API records and response parsing.

Response envelopes differ between desk deployments; the helpers here accept
every shape seen in the wild and raise UpstreamError when none match.
"""

from dataclasses import dataclass
from typing import Any

from desk_bridge.errors import UpstreamError

RESOLVED_STATUS = "resolved"


@dataclass(frozen=True)
class ContactRecord:
    id: int
    phone: str = ""
    name: str = ""

    @classmethod
    def from_api(cls, data: dict[str, Any]) -> "ContactRecord":
        return cls(
            id=int(data["id"]),
            phone=(data.get("phone_number") or "").lstrip("+"),
            name=data.get("name") or "",
        )


@dataclass(frozen=True)
class ConversationRecord:
    id: int
    inbox_id: int | None = None
    status: str = ""

    def is_reusable(self, inbox_id: int) -> bool:
        """True if new inbound messages may be appended here."""
        return self.inbox_id == inbox_id and self.status != RESOLVED_STATUS

    @classmethod
    def from_api(cls, data: dict[str, Any]) -> "ConversationRecord":
        inbox_id = data.get("inbox_id")
        return cls(
            id=int(data["id"]),
            inbox_id=int(inbox_id) if inbox_id is not None else None,
            status=str(data.get("status") or ""),
        )


@dataclass(frozen=True)
class InboxRecord:
    id: int
    name: str = ""

    @classmethod
    def from_api(cls, data: dict[str, Any]) -> "InboxRecord":
        return cls(id=int(data["id"]), name=data.get("name") or "")


def payload_list(response: Any) -> list[dict[str, Any]]:
    """
    Extract the item list from a list response.

    Accepts {"payload": [...]}, {"data": {"payload": [...]}} and a bare list.
    """
    if isinstance(response, list):
        items = response
    elif isinstance(response, dict):
        items = response.get("payload")
        if items is None and isinstance(response.get("data"), dict):
            items = response["data"].get("payload")
        if items is None:
            items = []
    else:
        raise UpstreamError("Unexpected desk response", details={"response": response})

    if not isinstance(items, list):
        raise UpstreamError("Unexpected desk response", details={"response": response})
    return [item for item in items if isinstance(item, dict)]


def created_id(response: Any) -> int:
    """
    Extract the id of a created resource.

    Accepts payload.contact.id, payload.id and a top-level id.
    """
    if isinstance(response, dict):
        payload = response.get("payload")
        if isinstance(payload, dict):
            contact = payload.get("contact")
            if isinstance(contact, dict) and contact.get("id"):
                return int(contact["id"])
            if payload.get("id"):
                return int(payload["id"])
        if response.get("id"):
            return int(response["id"])

    raise UpstreamError("Desk response carries no id", details={"response": response})
