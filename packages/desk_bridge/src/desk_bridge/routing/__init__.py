"""
Bridge Routing

Tenant, contact and conversation resolution against the desk.
"""

from desk_bridge.routing.contacts import ContactResolver
from desk_bridge.routing.conversation import ConversationResolver, select_reusable
from desk_bridge.routing.tenant_resolver import InboxResolver, TenantResolver

__all__ = [
    "ContactResolver",
    "ConversationResolver",
    "InboxResolver",
    "TenantResolver",
    "select_reusable",
]
