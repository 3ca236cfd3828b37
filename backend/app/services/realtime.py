"""
Real-time change notifications.

Mutating services receive a ``ChangeNotifier`` and call ``notify`` after each
successful write. ``ConnectionHub`` delivers those events to WebSocket
clients. Delivery is fire-and-forget: each send is scheduled on the event
loop owning the connection, and a failed send only drops that connection.
"""
import asyncio
import logging
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional, Protocol

from fastapi import WebSocket
from fastapi.encoders import jsonable_encoder

from ..models.base import utc_now_iso
from ..models.user import UserRole

logger = logging.getLogger(__name__)

# Roles allowed to push free-form notifications to everyone
BROADCAST_ROLES = (UserRole.ADMIN, UserRole.DOCTOR)


class ChangeNotifier(Protocol):
    def notify(self, event: str, payload: Any) -> None:
        ...


class NullNotifier:
    """Notifier that drops every event."""

    def notify(self, event: str, payload: Any) -> None:
        return None


@dataclass
class Connection:
    websocket: WebSocket
    user_id: str
    role: str
    loop: asyncio.AbstractEventLoop
    connected_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))


class ConnectionHub:
    """Tracks connected WebSocket clients and broadcasts change events."""

    def __init__(self):
        self._connections: List[Connection] = []

    # ------------------------------------------------------------------
    # Connection lifecycle
    # ------------------------------------------------------------------

    async def connect(self, websocket: WebSocket, user_id: str, role: str) -> Connection:
        await websocket.accept()
        connection = Connection(
            websocket=websocket,
            user_id=user_id,
            role=role,
            loop=asyncio.get_running_loop(),
        )
        self._connections.append(connection)
        logger.info("User %s connected with role %s", user_id, role)
        return connection

    def disconnect(self, connection: Connection) -> None:
        if connection in self._connections:
            self._connections.remove(connection)
            logger.info("User %s disconnected", connection.user_id)

    def connected_users(self, role: Optional[str] = None) -> List[Dict[str, Any]]:
        return [
            {"userId": c.user_id, "role": c.role, "connectedAt": c.connected_at.isoformat()}
            for c in self._connections
            if role is None or c.role == role
        ]

    # ------------------------------------------------------------------
    # Delivery
    # ------------------------------------------------------------------

    def notify(self, event: str, payload: Any) -> None:
        """Broadcast an event to every connected client."""
        self._schedule(list(self._connections), event, payload)

    async def handle_client_message(self, connection: Connection, message: Dict[str, Any]) -> None:
        """Relay ``notification:send`` from privileged roles as ``notification:received``."""
        if message.get("event") != "notification:send":
            return
        if connection.role not in BROADCAST_ROLES:
            logger.warning("Ignoring notification from user %s with role %s", connection.user_id, connection.role)
            return
        data = message.get("data") if isinstance(message.get("data"), dict) else {}
        self.notify(
            "notification:received",
            {**data, "from": connection.user_id, "timestamp": utc_now_iso()},
        )

    def _schedule(self, connections: List[Connection], event: str, payload: Any) -> None:
        message = {"event": event, "data": jsonable_encoder(payload)}
        for connection in connections:
            if connection.loop.is_closed():
                self.disconnect(connection)
                continue
            asyncio.run_coroutine_threadsafe(self._send(connection, message), connection.loop)

    async def _send(self, connection: Connection, message: Dict[str, Any]) -> None:
        try:
            await connection.websocket.send_json(message)
        except Exception as exc:
            logger.warning(
                "Dropping connection for user %s after failed send of %s: %s",
                connection.user_id, message["event"], exc,
            )
            self.disconnect(connection)


hub = ConnectionHub()
