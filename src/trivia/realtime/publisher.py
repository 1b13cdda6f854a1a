"""Publish realtime events through Redis pub/sub.

Every API worker runs a PubSubBridge, so publishing on Redis reaches
websocket clients connected to any worker. Without Redis (tests, local runs)
events go straight to this process's hub.
"""

from __future__ import annotations

import json
from typing import Any

import structlog

from trivia.realtime.hub import hub

logger = structlog.get_logger()

CHANNEL_PREFIX = "trivia:"


def channel_for(topic: str) -> str:
    return f"{CHANNEL_PREFIX}{topic}"


def notifications_topic(user_id: str) -> str:
    return f"notifications:{user_id}"


async def publish_event(redis: Any | None, topic: str, payload: dict[str, Any]) -> None:
    """Best-effort publish. Failures are logged, never raised."""
    if redis is None:
        await hub.publish(topic, payload)
        return

    try:
        await redis.publish(channel_for(topic), json.dumps(payload, default=str))
    except Exception:
        logger.warning("realtime_publish_failed", topic=topic, exc_info=True)
