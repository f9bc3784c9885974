"""
WebSocket connection manager for the statgrid webapp.

Pushes grid changes to connected views: every finished store operation and
every selection change is broadcast on the ``grid`` channel, so a second view
(variable view vs. data view, or another window) re-renders from the stores.

- WebSocket connection management
- Channel-based message broadcasting
- Operation completion/failure notifications
- Selection synchronisation
"""

import asyncio
import json
from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Any, Dict, Optional, Set

from fastapi import WebSocket

from api.shared.logger import get_logger

logger = get_logger(__name__)

GRID_CHANNEL = "grid"


class MessageType(str, Enum):
    """Types of WebSocket messages."""

    # Grid messages
    OPERATION_COMPLETED = "operation_completed"
    OPERATION_FAILED = "operation_failed"
    SELECTION_CHANGED = "selection_changed"

    # Client requests
    SUBSCRIBE = "subscribe"
    UNSUBSCRIBE = "unsubscribe"

    # System messages
    PING = "ping"
    PONG = "pong"
    ERROR = "error"
    CONNECTED = "connected"
    SUBSCRIBED = "subscribed"
    UNSUBSCRIBED = "unsubscribed"


@dataclass
class WebSocketMessage:
    """Represents a WebSocket message."""

    type: MessageType
    channel: str
    data: Dict[str, Any] = field(default_factory=dict)
    timestamp: Optional[str] = None

    def __post_init__(self):
        if self.timestamp is None:
            self.timestamp = datetime.now().isoformat()

    def to_json(self) -> str:
        """Convert message to JSON string."""
        return json.dumps({
            "type": self.type.value,
            "channel": self.channel,
            "data": self.data,
            "timestamp": self.timestamp,
        })

    @classmethod
    def from_json(cls, json_str: str) -> "WebSocketMessage":
        """Create message from JSON string."""
        data = json.loads(json_str)
        return cls(
            type=MessageType(data.get("type", "error")),
            channel=data.get("channel", ""),
            data=data.get("data", {}),
            timestamp=data.get("timestamp"),
        )


class WebSocketManager:
    """
    Manages WebSocket connections for grid updates.

    Supports channel-based subscriptions for targeted message delivery.
    """

    def __init__(self):
        # All active connections
        self._connections: Set[WebSocket] = set()

        # Channel subscriptions: channel -> set of WebSockets
        self._channels: Dict[str, Set[WebSocket]] = {}

        # Connection metadata: WebSocket -> subscription info
        self._connection_info: Dict[WebSocket, Dict[str, Any]] = {}

        self._lock = asyncio.Lock()

    async def connect(self, websocket: WebSocket, client_id: Optional[str] = None) -> None:
        """
        Accept a new WebSocket connection.

        Args:
            websocket: The WebSocket connection
            client_id: Optional client identifier
        """
        await websocket.accept()

        async with self._lock:
            self._connections.add(websocket)
            self._connection_info[websocket] = {
                "client_id": client_id,
                "connected_at": datetime.now().isoformat(),
                "subscriptions": set(),
            }

        await self.send_to_connection(
            websocket,
            WebSocketMessage(
                type=MessageType.CONNECTED,
                channel="system",
                data={
                    "client_id": client_id,
                    "message": "Connected to statgrid WebSocket server",
                },
            ),
        )

    async def disconnect(self, websocket: WebSocket) -> None:
        """
        Handle WebSocket disconnection.

        Args:
            websocket: The WebSocket connection to disconnect
        """
        async with self._lock:
            subscriptions = self._connection_info.get(websocket, {}).get("subscriptions", set())
            for channel in subscriptions:
                if channel in self._channels:
                    self._channels[channel].discard(websocket)
                    if not self._channels[channel]:
                        del self._channels[channel]

            self._connections.discard(websocket)
            self._connection_info.pop(websocket, None)

    async def subscribe(self, websocket: WebSocket, channel: str) -> None:
        """
        Subscribe a connection to a channel.

        Args:
            websocket: The WebSocket connection
            channel: Channel name to subscribe to
        """
        async with self._lock:
            self._channels.setdefault(channel, set()).add(websocket)
            if websocket in self._connection_info:
                self._connection_info[websocket]["subscriptions"].add(channel)

        await self.send_to_connection(
            websocket,
            WebSocketMessage(
                type=MessageType.SUBSCRIBED,
                channel=channel,
                data={"channel": channel},
            ),
        )

    async def unsubscribe(self, websocket: WebSocket, channel: str) -> None:
        """
        Unsubscribe a connection from a channel.

        Args:
            websocket: The WebSocket connection
            channel: Channel name to unsubscribe from
        """
        async with self._lock:
            if channel in self._channels:
                self._channels[channel].discard(websocket)
                if not self._channels[channel]:
                    del self._channels[channel]

            if websocket in self._connection_info:
                self._connection_info[websocket]["subscriptions"].discard(channel)

        await self.send_to_connection(
            websocket,
            WebSocketMessage(
                type=MessageType.UNSUBSCRIBED,
                channel=channel,
                data={"channel": channel},
            ),
        )

    async def send_to_connection(
        self,
        websocket: WebSocket,
        message: WebSocketMessage,
    ) -> bool:
        """
        Send a message to a specific connection.

        Returns:
            True if sent successfully, False otherwise
        """
        try:
            await websocket.send_text(message.to_json())
            return True
        except Exception as e:
            logger.warning("Error sending WebSocket message: %s", e)
            await self.disconnect(websocket)
            return False

    async def broadcast_to_channel(
        self,
        channel: str,
        message: WebSocketMessage,
    ) -> int:
        """
        Broadcast a message to all subscribers of a channel.

        Returns:
            Number of connections that received the message
        """
        if not self._channels.get(channel):
            return 0

        async with self._lock:
            subscribers = list(self._channels.get(channel, set()))

        sent_count = 0
        disconnected = []

        for websocket in subscribers:
            try:
                await websocket.send_text(message.to_json())
                sent_count += 1
            except Exception:
                disconnected.append(websocket)

        for ws in disconnected:
            await self.disconnect(ws)

        return sent_count

    def get_channel_subscribers(self, channel: str) -> int:
        """Get the number of subscribers for a channel."""
        return len(self._channels.get(channel, set()))

    def get_connection_count(self) -> int:
        """Get the total number of active connections."""
        return len(self._connections)

    async def handle_message(
        self,
        websocket: WebSocket,
        message_text: str,
    ) -> Optional[WebSocketMessage]:
        """
        Handle an incoming WebSocket message.

        Args:
            websocket: Source WebSocket connection
            message_text: Raw message text

        Returns:
            Response message or None
        """
        try:
            message = WebSocketMessage.from_json(message_text)
        except (json.JSONDecodeError, ValueError) as e:
            return WebSocketMessage(
                type=MessageType.ERROR,
                channel="system",
                data={"error": f"Invalid message format: {e}"},
            )

        if message.type == MessageType.PING:
            return WebSocketMessage(
                type=MessageType.PONG,
                channel="system",
                data={"timestamp": datetime.now().isoformat()},
            )

        channel = message.data.get("channel") or message.channel
        if message.type == MessageType.SUBSCRIBE and channel:
            await self.subscribe(websocket, channel)
        elif message.type == MessageType.UNSUBSCRIBE and channel:
            await self.unsubscribe(websocket, channel)

        return None


# Global WebSocket manager instance
ws_manager = WebSocketManager()


# ============= Helper Functions for Grid Updates =============


async def notify_operation_completed(operation_id: str, operation: Dict[str, Any]) -> None:
    """
    Notify grid subscribers that an operation was applied to the stores.

    Args:
        operation_id: Operation identifier
        operation: Serialized operation
    """
    message = WebSocketMessage(
        type=MessageType.OPERATION_COMPLETED,
        channel=GRID_CHANNEL,
        data={
            "operation_id": operation_id,
            "operation": operation,
        },
    )
    await ws_manager.broadcast_to_channel(GRID_CHANNEL, message)


async def notify_operation_failed(operation_id: str, error: str) -> None:
    """
    Notify grid subscribers that an operation could not be applied.

    Args:
        operation_id: Operation identifier
        error: Error message
    """
    message = WebSocketMessage(
        type=MessageType.OPERATION_FAILED,
        channel=GRID_CHANNEL,
        data={
            "operation_id": operation_id,
            "error": error,
        },
    )
    await ws_manager.broadcast_to_channel(GRID_CHANNEL, message)


async def notify_selection_changed(view: str, selection: Optional[Dict[str, int]]) -> None:
    """
    Notify grid subscribers that the selection of a view changed.

    Args:
        view: ``data`` or ``variables``
        selection: Normalised selection range, or None when deselected
    """
    message = WebSocketMessage(
        type=MessageType.SELECTION_CHANGED,
        channel=GRID_CHANNEL,
        data={
            "view": view,
            "selection": selection,
        },
    )
    await ws_manager.broadcast_to_channel(GRID_CHANNEL, message)
