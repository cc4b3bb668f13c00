"""Test chat -> bus routing."""

import json
from unittest.mock import patch

import pytest

from mqttbridge.events import RouteResult
from mqttbridge.gateway.outbound import OutboundRouter
from mqttbridge.gateway.router import MappingTable
from tests.mocks import FakeBus, channel_post, user_message


def _setup(*, fail_publish: bool = False):
    table = MappingTable.build("100:sensors:alice;200:alerts")
    bus = FakeBus(fail_publish=fail_publish)
    return OutboundRouter(table, bus), bus


class TestUserMessages:
    """Group messages from users."""

    @pytest.mark.asyncio
    async def test_publishes_envelope_on_msg_topic(self):
        # Arrange
        router, bus = _setup()
        msg = user_message(100, "hi", username="bob", first_name="Bob", last_name="")

        # Act
        result = await router.handle_user_message(msg)

        # Assert
        assert result is RouteResult.DELIVERED
        assert bus.published == [("sensors_msg", b'{"sendmsg":true,"to":"alice","message":"Bob : hi"}')]

    @pytest.mark.asyncio
    async def test_full_name_in_message(self):
        router, bus = _setup()

        await router.handle_user_message(user_message(100, "on my way", first_name="Bob", last_name="Smith"))

        body = json.loads(bus.published[0][1])
        assert body == {"sendmsg": True, "to": "alice", "message": "Bob Smith: on my way"}

    @pytest.mark.asyncio
    async def test_non_ascii_preserved(self):
        router, bus = _setup()

        await router.handle_user_message(user_message(100, "olá ✓", first_name="Zoë"))

        assert "Zoë : olá ✓".encode() in bus.published[0][1]

    @pytest.mark.asyncio
    async def test_no_destination_no_publish(self):
        # Arrange
        router, bus = _setup()

        # Act
        result = await router.handle_user_message(user_message(200, "hello"))

        # Assert
        assert result is RouteResult.DROPPED
        assert bus.published == []

    @pytest.mark.asyncio
    async def test_unmapped_chat_dropped(self):
        router, bus = _setup()

        result = await router.handle_user_message(user_message(999, "hello"))

        assert result is RouteResult.DROPPED
        assert bus.published == []

    @pytest.mark.asyncio
    async def test_direct_message_without_username(self):
        # Private chat: chat id equals sender id
        router, bus = _setup()
        msg = user_message(100, "hi", sender_id=100, username=None, chat_type="private")

        result = await router.handle_user_message(msg)

        assert result is RouteResult.DELIVERED

    @pytest.mark.asyncio
    async def test_publish_failure_is_logged(self):
        router, bus = _setup(fail_publish=True)

        result = await router.handle_user_message(user_message(100, "hi"))

        assert result is RouteResult.FAILED

    @pytest.mark.asyncio
    async def test_unexpected_fault_publishes_diagnostic(self):
        # Arrange
        router, bus = _setup()

        # Act
        with patch("mqttbridge.gateway.outbound.OutboundEnvelope.encode", side_effect=RuntimeError("boom")):
            result = await router.handle_user_message(user_message(100, "hi"))

        # Assert
        assert result is RouteResult.FAILED
        assert bus.published == [("sensors_error", "There was an error processing the message: boom")]


class TestChannelPosts:
    """Channel posts publish the post text."""

    @pytest.mark.asyncio
    async def test_channel_post_published(self):
        router, bus = _setup()

        result = await router.handle_channel_post(channel_post(100, "breaking news"))

        assert result is RouteResult.DELIVERED
        assert json.loads(bus.published[0][1]) == {"sendmsg": True, "to": "alice", "message": "breaking news"}
        assert bus.published[0][0] == "sensors_msg"

    @pytest.mark.asyncio
    async def test_channel_post_without_destination(self):
        router, bus = _setup()

        result = await router.handle_channel_post(channel_post(200, "news"))

        assert result is RouteResult.DROPPED
        assert bus.published == []

    @pytest.mark.asyncio
    async def test_channel_post_unmapped(self):
        router, bus = _setup()

        result = await router.handle_channel_post(channel_post(-5, "news"))

        assert result is RouteResult.DROPPED
        assert bus.published == []
