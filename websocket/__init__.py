"""
WebSocket module for the statgrid webapp.

Provides real-time grid updates (applied or failed store operations and
selection changes) to connected views.
"""

from .manager import (
    GRID_CHANNEL,
    MessageType,
    WebSocketManager,
    WebSocketMessage,
    notify_operation_completed,
    notify_operation_failed,
    notify_selection_changed,
    ws_manager,
)

__all__ = [
    "GRID_CHANNEL",
    "MessageType",
    "WebSocketManager",
    "WebSocketMessage",
    "notify_operation_completed",
    "notify_operation_failed",
    "notify_selection_changed",
    "ws_manager",
]
