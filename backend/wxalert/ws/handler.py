"""WebSocket endpoint for live poll state.

Pushes a ``poll_state`` message to every connected browser whenever the
controller publishes, and a ``strong_alert`` message when a poll raises a
high severity alert.
"""

import json
import logging
from typing import Any

from fastapi import WebSocket, WebSocketDisconnect

from ..api.state import configured_location
from ..schemas.state import poll_state_to_schema, strong_alert_to_schema
from ..services.poller import PollController, PollState, StrongAlertEvent

logger = logging.getLogger(__name__)


class ConnectionManager:
    """Manages browser WebSocket connections and fans out controller events."""

    def __init__(self) -> None:
        self.active_connections: list[WebSocket] = []
        self._controller: PollController | None = None

    def attach(self, controller: PollController | None) -> None:
        """Subscribe to a controller's state and strong-alert callbacks."""
        self._controller = controller
        if controller is not None:
            controller.set_broadcast_callback(self.broadcast_state)
            controller.set_strong_alert_callback(self.broadcast_strong_alert)

    async def connect(self, websocket: WebSocket) -> None:
        await websocket.accept()
        self.active_connections.append(websocket)
        logger.info("WebSocket client connected. Total: %d", len(self.active_connections))

    def disconnect(self, websocket: WebSocket) -> None:
        if websocket in self.active_connections:
            self.active_connections.remove(websocket)
        logger.info("WebSocket client disconnected. Total: %d", len(self.active_connections))

    def snapshot_message(self) -> dict[str, Any] | None:
        if self._controller is None:
            return None
        return self._state_message(self._controller.state)

    async def broadcast_state(self, state: PollState) -> None:
        await self._broadcast(self._state_message(state))

    async def broadcast_strong_alert(self, event: StrongAlertEvent) -> None:
        await self._broadcast({
            "type": "strong_alert",
            "data": strong_alert_to_schema(event).model_dump(),
        })

    @staticmethod
    def _state_message(state: PollState) -> dict[str, Any]:
        return {
            "type": "poll_state",
            "data": poll_state_to_schema(state, configured_location()).model_dump(),
        }

    async def _broadcast(self, message: dict[str, Any]) -> None:
        disconnected: list[WebSocket] = []
        for conn in self.active_connections:
            try:
                await conn.send_json(message)
            except Exception:
                disconnected.append(conn)
        for conn in disconnected:
            if conn in self.active_connections:
                self.active_connections.remove(conn)


# Global connection manager
ws_manager = ConnectionManager()


async def websocket_endpoint(websocket: WebSocket) -> None:
    """Handle WebSocket connections for live state streaming."""
    await ws_manager.connect(websocket)
    try:
        snapshot = ws_manager.snapshot_message()
        if snapshot is not None:
            await websocket.send_json(snapshot)

        while True:
            data = await websocket.receive_text()
            try:
                msg = json.loads(data)
                if isinstance(msg, dict) and msg.get("type") == "ping":
                    await websocket.send_json({"type": "pong"})
            except json.JSONDecodeError:
                logger.debug("Ignoring non-JSON WebSocket message")
    except (WebSocketDisconnect, ConnectionResetError, OSError):
        ws_manager.disconnect(websocket)
    except Exception:
        logger.debug("WebSocket closed unexpectedly", exc_info=True)
        ws_manager.disconnect(websocket)
