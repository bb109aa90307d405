"""
Tests for presence synchronization.
"""

import pytest

from desk_bridge.errors import UpstreamError
from desk_bridge.network.base import Presence
from desk_bridge.network.stub import StubGateway
from desk_bridge.service.presence import PresenceSynchronizer, typing_delay_ms


async def no_sleep(seconds):
    return None


class TestTypingDelay:
    @pytest.mark.parametrize(
        "content,expected",
        [("", 500), ("x" * 10, 510), ("x" * 1500, 2000), ("x" * 9000, 2000)],
    )
    def test_clamped(self, content, expected):
        assert typing_delay_ms(content) == expected

    def test_custom_bounds(self):
        assert typing_delay_ms("x" * 50, min_ms=100, max_ms=120) == 120


class TestPresenceSynchronizer:
    """Tests for composing/paused bracketing."""

    @pytest.mark.asyncio
    async def test_composing_brackets_body(self):
        gateway = StubGateway()
        presence = PresenceSynchronizer(gateway, sleep=no_sleep)

        async with presence.composing("5511@s.whatsapp.net", "hi"):
            await gateway.send_text("5511@s.whatsapp.net", "hi")

        assert gateway.actions() == ["presence:composing", "text", "presence:paused"]

    @pytest.mark.asyncio
    async def test_paused_after_exception(self):
        gateway = StubGateway()
        presence = PresenceSynchronizer(gateway, sleep=no_sleep)

        with pytest.raises(UpstreamError):
            async with presence.composing("5511@s.whatsapp.net"):
                raise UpstreamError("send failed")

        assert gateway.actions() == ["presence:composing", "presence:paused"]

    @pytest.mark.asyncio
    async def test_set_reports_failure(self):
        presence = PresenceSynchronizer(StubGateway(fail_presence=True), sleep=no_sleep)

        assert await presence.set("5511@s.whatsapp.net", Presence.COMPOSING) is False
