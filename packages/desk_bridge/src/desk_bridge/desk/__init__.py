"""
Desk API

Client and records for the support desk REST API.
"""

from desk_bridge.desk.client import DeskClient
from desk_bridge.desk.models import ContactRecord, ConversationRecord, InboxRecord

__all__ = ["ContactRecord", "ConversationRecord", "DeskClient", "InboxRecord"]
