"""
Conversation Resolution

Finds an open desk conversation for a contact in the tenant's inbox, or
opens a new one. Resolved conversations are never reopened.
"""

import logging

from desk_bridge.desk.client import DeskClient
from desk_bridge.desk.models import ConversationRecord

logger = logging.getLogger(__name__)


def select_reusable(
    conversations: list[ConversationRecord],
    inbox_id: int,
) -> ConversationRecord | None:
    """
    Pick the conversation new messages should be appended to.

    The first qualifying conversation in desk API order wins.
    """
    for conversation in conversations:
        if conversation.is_reusable(inbox_id):
            return conversation
    return None


class ConversationResolver:
    """
    Maps a desk contact to a conversation in one inbox.
    """

    def __init__(self, desk: DeskClient, inbox_id: int):
        self.desk = desk
        self.inbox_id = inbox_id

    async def find_or_create_conversation(self, contact_id: int) -> int:
        """
        Return the id of a reusable conversation, creating one if needed.

        Args:
            contact_id: Desk contact id

        Returns:
            Desk conversation id
        """
        conversations = await self.desk.list_contact_conversations(contact_id)
        match = select_reusable(conversations, self.inbox_id)
        if match is not None:
            logger.debug(
                "Reusing desk conversation",
                extra={"contact_id": contact_id, "conversation_id": match.id},
            )
            return match.id

        conversation_id = await self.desk.create_conversation(contact_id, self.inbox_id)
        logger.info(
            "Opened desk conversation",
            extra={
                "contact_id": contact_id,
                "conversation_id": conversation_id,
                "inbox_id": self.inbox_id,
                "existing": len(conversations),
            },
        )
        return conversation_id
