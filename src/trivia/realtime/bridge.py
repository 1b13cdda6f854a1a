"""Bridges Redis pub/sub to the in-process event hub.

Pattern-subscribes to every ``trivia:<topic>`` channel and republishes each
message on the hub under ``<topic>``.
"""

import asyncio
import json

import redis.asyncio as aioredis
import structlog

from trivia.realtime.hub import EventHub, hub as default_hub
from trivia.realtime.publisher import CHANNEL_PREFIX

logger = structlog.get_logger()

PATTERN = f"{CHANNEL_PREFIX}*"


class PubSubBridge:
    """Subscribes to Redis pub/sub and feeds messages into the hub."""

    def __init__(self, redis_client: aioredis.Redis, event_hub: EventHub | None = None) -> None:
        self.redis = redis_client
        self.hub = event_hub or default_hub
        self._running = False

    async def start(self) -> None:
        """Listen until stop() is called or the task is cancelled."""
        self._running = True
        pubsub = self.redis.pubsub()
        await pubsub.psubscribe(PATTERN)
        logger.info("pubsub_bridge_started", pattern=PATTERN)

        try:
            while self._running:
                message = await pubsub.get_message(
                    ignore_subscribe_messages=True,
                    timeout=1.0,
                )
                if message is None:
                    continue
                await self.handle_message(message)
        except asyncio.CancelledError:
            pass
        finally:
            await pubsub.punsubscribe()
            await pubsub.close()
            logger.info("pubsub_bridge_stopped")

    async def handle_message(self, message: dict) -> int:
        """Decode one pub/sub message and publish it on the hub."""
        redis_channel = message.get("channel", "")
        if isinstance(redis_channel, bytes):
            redis_channel = redis_channel.decode()
        if not redis_channel.startswith(CHANNEL_PREFIX):
            return 0

        try:
            data = message.get("data", b"")
            if isinstance(data, bytes):
                data = data.decode()
            payload = json.loads(data)
        except (json.JSONDecodeError, UnicodeDecodeError, TypeError):
            logger.warning("pubsub_invalid_message", channel=redis_channel)
            return 0

        if not isinstance(payload, dict):
            logger.warning("pubsub_invalid_message", channel=redis_channel)
            return 0

        topic = redis_channel[len(CHANNEL_PREFIX):]
        delivered = await self.hub.publish(topic, payload)
        if delivered > 0:
            logger.debug("pubsub_delivered", topic=topic, recipients=delivered)
        return delivered

    async def stop(self) -> None:
        """Signal the bridge to stop."""
        self._running = False
