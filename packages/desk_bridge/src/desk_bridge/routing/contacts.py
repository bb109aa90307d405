"""
Contact Resolution

Finds or creates the desk contact for a peer phone number.
"""

import logging

from desk_bridge.desk.client import DeskClient
from desk_bridge.errors import ValidationError

logger = logging.getLogger(__name__)


class ContactResolver:
    """
    Maps a phone number to a desk contact id.

    Contacts are created on first contact and never deleted. Transport and
    parse errors from the desk propagate as UpstreamError.
    """

    def __init__(self, desk: DeskClient):
        self.desk = desk

    async def find_or_create_contact(
        self,
        phone: str,
        display_name: str = "",
        raw_identifier: str = "",
    ) -> int:
        """
        Find a contact by phone or create one.

        Args:
            phone: Digits only, no "+"
            display_name: Name announced by the peer, may be empty
            raw_identifier: Network peer id stored as the contact identifier

        Returns:
            Desk contact id
        """
        if not phone or not phone.isdigit():
            raise ValidationError(f"Invalid phone: {phone!r}", details={"phone": phone})

        contacts = await self.desk.filter_contacts_by_phone(phone)
        if contacts:
            logger.debug("Found desk contact", extra={"phone": phone, "contact_id": contacts[0].id})
            return contacts[0].id

        contact_id = await self.desk.create_contact(
            name=display_name or phone,
            phone=phone,
            identifier=raw_identifier,
        )
        logger.info("Created desk contact", extra={"phone": phone, "contact_id": contact_id})
        return contact_id
