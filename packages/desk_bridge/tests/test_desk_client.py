"""
Tests for the desk API client.
"""

import json

import httpx
import pytest

from desk_bridge.desk.client import DeskClient
from desk_bridge.desk.models import created_id, payload_list
from desk_bridge.errors import UpstreamError


def client_for(handler) -> DeskClient:
    return DeskClient("https://desk.test/", "1", "desk-token", transport=httpx.MockTransport(handler))


class TestDeskClient:
    """Tests for request shapes and error mapping."""

    @pytest.mark.asyncio
    async def test_filter_contacts_by_phone(self):
        seen = []

        def handler(request):
            seen.append(request)
            return httpx.Response(200, json={"payload": [{"id": 5, "phone_number": "+5511", "name": "Maria"}]})

        async with client_for(handler) as desk:
            contacts = await desk.filter_contacts_by_phone("5511")

        assert seen[0].url.path == "/api/v1/accounts/1/contacts/filter"
        assert json.loads(seen[0].content)["payload"][0] == {
            "attribute_key": "phone_number",
            "filter_operator": "equal_to",
            "values": ["+5511"],
        }
        assert contacts[0].id == 5
        assert contacts[0].phone == "5511"

    @pytest.mark.asyncio
    async def test_create_message_without_source(self):
        seen = []

        def handler(request):
            seen.append(json.loads(request.content))
            return httpx.Response(200, json={"id": 1})

        async with client_for(handler) as desk:
            await desk.create_message(42, "note", private=True)

        assert seen == [{"content": "note", "message_type": "incoming", "private": True}]

    @pytest.mark.asyncio
    async def test_error_status(self):
        async with client_for(lambda request: httpx.Response(422, text="bad")) as desk:
            with pytest.raises(UpstreamError) as exc_info:
                await desk.list_inboxes()

        assert exc_info.value.status_code == 422
        assert exc_info.value.code == "422"

    @pytest.mark.asyncio
    async def test_invalid_json(self):
        async with client_for(lambda request: httpx.Response(200, text="<html>")) as desk:
            with pytest.raises(UpstreamError) as exc_info:
                await desk.list_inboxes()

        assert exc_info.value.code == "PARSE_ERROR"


class TestResponseShapes:
    @pytest.mark.parametrize(
        "response",
        [{"payload": [{"id": 1}]}, {"data": {"payload": [{"id": 1}]}}, [{"id": 1}]],
    )
    def test_payload_list(self, response):
        assert payload_list(response) == [{"id": 1}]

    def test_payload_list_rejects_scalars(self):
        with pytest.raises(UpstreamError):
            payload_list("oops")

    @pytest.mark.parametrize(
        "response",
        [{"payload": {"contact": {"id": 9}}}, {"payload": {"id": 9}}, {"id": 9}],
    )
    def test_created_id(self, response):
        assert created_id(response) == 9

    def test_created_id_missing(self):
        with pytest.raises(UpstreamError):
            created_id({"payload": {}})
