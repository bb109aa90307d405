"""
Tenant Configuration

One tenant ("instance") pairs one messaging session with one desk account.
"""

from dataclasses import asdict, dataclass, replace
from typing import Any


@dataclass(frozen=True)
class TenantConfig:
    """
    Read-only configuration for one tenant.

    inbox_id may be unset when only inbox_name is configured; the inbox
    resolver produces a copy with it filled in.
    """

    tenant_id: str
    desk_url: str
    account_id: str
    access_token: str
    inbox_id: int | None = None
    inbox_name: str | None = None

    # Messaging session (Evolution-compatible API)
    gateway_url: str = ""
    gateway_api_key: str = ""
    instance_name: str = ""

    # Bridge policy
    mirror_self_messages: bool = False
    react_with_emoji: bool = False

    @property
    def session_name(self) -> str:
        return self.instance_name or self.tenant_id

    def with_inbox(self, inbox_id: int) -> "TenantConfig":
        return replace(self, inbox_id=inbox_id)

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "TenantConfig":
        inbox_id = data.get("inbox_id")
        return cls(
            tenant_id=str(data["tenant_id"]),
            desk_url=str(data.get("desk_url", "")),
            account_id=str(data.get("account_id", "")),
            access_token=str(data.get("access_token", "")),
            inbox_id=int(inbox_id) if inbox_id not in (None, "", 0, "0") else None,
            inbox_name=data.get("inbox_name") or None,
            gateway_url=str(data.get("gateway_url", "")),
            gateway_api_key=str(data.get("gateway_api_key", "")),
            instance_name=str(data.get("instance_name", "")),
            mirror_self_messages=bool(data.get("mirror_self_messages", False)),
            react_with_emoji=bool(data.get("react_with_emoji", False)),
        )
