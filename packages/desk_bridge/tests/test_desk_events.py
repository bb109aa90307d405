"""
Tests for desk webhook parsing.
"""

import pydantic
import pytest

from desk_bridge.contracts.desk_events import (
    Attachment,
    MessageCreatedEvent,
    OtherEvent,
    PeerCandidates,
    TypingEvent,
    parse_desk_event,
)


class TestParseDeskEvent:
    def test_message_created(self):
        event = parse_desk_event(
            {
                "event": "message_created",
                "id": 900,
                "message_type": "outgoing",
                "content": "hi",
                "content_attributes": {"in_reply_to_external_id": "WAID:3EB0"},
                "conversation": {
                    "id": 42,
                    "meta": {"sender": {"identifier": " 5511@s.whatsapp.net ", "phone_number": "+5511"}},
                    "contact_inbox": {"source_id": "src"},
                },
                "account": {"id": 1},
            }
        )

        assert event == MessageCreatedEvent(
            outgoing=True,
            peer=PeerCandidates(identifier="5511@s.whatsapp.net", source_id="src", phone_number="+5511"),
            content="hi",
            in_reply_to_external_id="WAID:3EB0",
            conversation_id=42,
            message_id=900,
        )

    def test_typing(self):
        event = parse_desk_event({"event": "conversation_typing_off", "conversation": {"id": 42}})

        assert event == TypingEvent(typing=False, peer=PeerCandidates(), conversation_id=42)

    def test_unknown_event(self):
        assert parse_desk_event({"event": "contact_updated", "is_private": True}) == OtherEvent(
            event="contact_updated", private=True
        )

    def test_attachments_without_url_are_dropped(self):
        event = parse_desk_event(
            {
                "event": "message_created",
                "message_type": "outgoing",
                "attachments": [{"file_type": "image", "data_url": "https://a"}, {"file_type": "image"}],
            }
        )

        assert event.attachments == (Attachment(url="https://a", file_type="image"),)

    def test_nested_message_attachments(self):
        event = parse_desk_event(
            {
                "event": "message_created",
                "message": {
                    "message_type": "outgoing",
                    "private": True,
                    "attachments": [{"file_type": "file", "data_url": "https://b"}],
                },
            }
        )

        assert event.outgoing is True
        assert event.private is True
        assert event.attachments == (Attachment(url="https://b", file_type="file"),)

    def test_wrong_shape_raises(self):
        with pytest.raises(pydantic.ValidationError):
            parse_desk_event({"event": "message_created", "attachments": "nope"})
