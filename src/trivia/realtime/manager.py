"""WebSocket connection manager.

Tracks active WebSocket connections, which users are online, and each
connection's hub subscriptions. A subscribed connection receives hub events
for its channel until it unsubscribes or disconnects.
"""

import json
import time
from collections import defaultdict
from dataclasses import dataclass, field
from typing import Any

import structlog
from fastapi import WebSocket

from trivia.config import get_settings
from trivia.realtime.hub import EventHub, Subscription, hub as default_hub
from trivia.realtime.publisher import notifications_topic

logger = structlog.get_logger()

VALID_CHANNELS = {"activities", "notifications"}


@dataclass
class ClientConnection:
    """Represents a single WebSocket client."""

    websocket: WebSocket
    user_id: str
    subscriptions: dict[str, Subscription] = field(default_factory=dict)  # channel -> hub subscription
    connected_at: float = field(default_factory=time.time)
    messages_sent: int = 0


class ConnectionManager:
    """Manages all active WebSocket connections.

    Safe for asyncio via the single-threaded event loop.
    """

    def __init__(self, event_hub: EventHub | None = None, max_connections_per_user: int = 5) -> None:
        self.hub = event_hub or default_hub
        self.max_connections_per_user = max_connections_per_user
        self._connections: dict[str, ClientConnection] = {}  # conn_id -> client
        self._user_connections: dict[str, set[str]] = defaultdict(set)  # user_id -> {conn_ids}

    @property
    def connection_count(self) -> int:
        return len(self._connections)

    def is_online(self, user_id: str) -> bool:
        return bool(self._user_connections.get(user_id))

    def online_user_ids(self) -> set[str]:
        return {uid for uid, conns in self._user_connections.items() if conns}

    async def connect(self, websocket: WebSocket, conn_id: str, user_id: str) -> bool:
        """Accept a new WebSocket connection. Returns False if the user is at the connection limit."""
        if len(self._user_connections.get(user_id, ())) >= self.max_connections_per_user:
            logger.warning("ws_connection_limit", user_id=user_id)
            return False

        await websocket.accept()
        self._connections[conn_id] = ClientConnection(websocket=websocket, user_id=user_id)
        self._user_connections[user_id].add(conn_id)
        logger.info("ws_connected", conn_id=conn_id, user_id=user_id)
        return True

    async def disconnect(self, conn_id: str) -> None:
        """Remove a WebSocket connection and its subscriptions."""
        client = self._connections.pop(conn_id, None)
        if client is None:
            return

        for subscription in client.subscriptions.values():
            subscription.unsubscribe()
        client.subscriptions.clear()

        self._user_connections[client.user_id].discard(conn_id)
        if not self._user_connections[client.user_id]:
            del self._user_connections[client.user_id]

        logger.info("ws_disconnected", conn_id=conn_id, user_id=client.user_id)

    def topic_for(self, channel: str, user_id: str) -> str:
        """Map a client channel to a hub topic; notifications are per user."""
        if channel == "notifications":
            return notifications_topic(user_id)
        return channel

    async def subscribe(self, conn_id: str, channel: str) -> bool:
        """Subscribe a connection to a channel. Returns False if invalid."""
        client = self._connections.get(conn_id)
        if client is None or channel not in VALID_CHANNELS:
            return False
        if channel in client.subscriptions:
            return True

        async def deliver(topic: str, payload: dict[str, Any]) -> None:
            await self.send(conn_id, channel, payload)

        client.subscriptions[channel] = self.hub.subscribe(self.topic_for(channel, client.user_id), deliver)
        logger.debug("ws_subscribed", conn_id=conn_id, channel=channel)
        return True

    async def unsubscribe(self, conn_id: str, channel: str) -> bool:
        """Unsubscribe a connection from a channel."""
        client = self._connections.get(conn_id)
        if client is None:
            return False

        subscription = client.subscriptions.pop(channel, None)
        if subscription is not None:
            subscription.unsubscribe()
        return True

    async def send(self, conn_id: str, channel: str, message: dict[str, Any]) -> bool:
        """Send one message to one connection; a failed send drops the connection."""
        client = self._connections.get(conn_id)
        if client is None:
            return False
        try:
            await client.websocket.send_text(json.dumps({"channel": channel, "data": message}, default=str))
        except Exception:
            logger.debug("ws_send_failed", conn_id=conn_id, exc_info=True)
            await self.disconnect(conn_id)
            return False
        client.messages_sent += 1
        return True

    def get_stats(self) -> dict:
        """Get connection statistics."""
        channels: dict[str, int] = defaultdict(int)
        for client in self._connections.values():
            for channel in client.subscriptions:
                channels[channel] += 1
        return {
            "total_connections": len(self._connections),
            "unique_users": len(self._user_connections),
            "channels": dict(channels),
        }


# Global singleton
manager = ConnectionManager(max_connections_per_user=get_settings().ws_max_connections_per_user)
