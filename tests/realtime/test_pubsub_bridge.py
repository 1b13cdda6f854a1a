"""Tests for the Redis pub/sub -> event hub bridge."""

import asyncio
import json
from unittest.mock import AsyncMock, MagicMock

import pytest

from trivia.realtime.bridge import PATTERN, PubSubBridge
from trivia.realtime.hub import EventHub


@pytest.fixture
def event_hub() -> EventHub:
    return EventHub()


@pytest.fixture
def received(event_hub: EventHub) -> list:
    sink = []

    async def handler(topic, payload):
        sink.append((topic, payload))

    event_hub.subscribe("activities", handler)
    event_hub.subscribe("notifications:u1", handler)
    return sink


class TestHandleMessage:
    @pytest.mark.asyncio
    async def test_routes_by_channel(self, event_hub, received):
        bridge = PubSubBridge(MagicMock(), event_hub)

        delivered = await bridge.handle_message({
            "channel": b"trivia:notifications:u1",
            "data": json.dumps({"event": "notification"}).encode(),
        })

        assert delivered == 1
        assert received == [("notifications:u1", {"event": "notification"})]

    @pytest.mark.asyncio
    async def test_string_messages(self, event_hub, received):
        bridge = PubSubBridge(MagicMock(), event_hub)
        await bridge.handle_message({"channel": "trivia:activities", "data": '{"id": "a1"}'})
        assert received == [("activities", {"id": "a1"})]

    @pytest.mark.asyncio
    @pytest.mark.parametrize("message", [
        {"channel": "other:activities", "data": "{}"},
        {"channel": "trivia:activities", "data": "not json"},
        {"channel": "trivia:activities", "data": "[1, 2]"},
        {"channel": "trivia:activities", "data": None},
    ])
    async def test_ignores_bad_messages(self, event_hub, received, message):
        bridge = PubSubBridge(MagicMock(), event_hub)
        assert await bridge.handle_message(message) == 0
        assert received == []


class TestLifecycle:
    @pytest.mark.asyncio
    async def test_start_subscribes_and_stops(self, event_hub, received):
        pubsub = MagicMock()
        pubsub.psubscribe = AsyncMock()
        pubsub.punsubscribe = AsyncMock()
        pubsub.close = AsyncMock()
        messages = [{"channel": "trivia:activities", "data": '{"id": "a1"}'}]

        async def get_message(ignore_subscribe_messages, timeout):
            if messages:
                return messages.pop(0)
            await asyncio.sleep(0.01)
            return None

        pubsub.get_message = get_message
        redis = MagicMock()
        redis.pubsub.return_value = pubsub
        bridge = PubSubBridge(redis, event_hub)

        task = asyncio.create_task(bridge.start())
        for _ in range(50):
            if received:
                break
            await asyncio.sleep(0.01)
        await bridge.stop()
        await asyncio.wait_for(task, timeout=1)

        pubsub.psubscribe.assert_awaited_once_with(PATTERN)
        pubsub.punsubscribe.assert_awaited_once()
        pubsub.close.assert_awaited_once()
        assert received == [("activities", {"id": "a1"})]
