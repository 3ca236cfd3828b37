"""Change-feed WebSocket endpoint and the admin view of its connections."""
from typing import Optional

from fastapi import APIRouter, Depends, WebSocket, WebSocketDisconnect, status

from ..models.user import User, UserRole
from ..services.realtime import hub
from ..services.user_service import UserService
from .deps import authenticate_token, get_user_service, require_role

router = APIRouter(tags=["realtime"])


@router.websocket("/ws")
async def change_events(
    websocket: WebSocket,
    token: Optional[str] = None,
    users: UserService = Depends(get_user_service),
):
    """Authenticate with ``?token=<jwt>``; events arrive as ``{"event", "data"}``."""
    user = authenticate_token(token, users)
    if user is None:
        await websocket.close(code=status.WS_1008_POLICY_VIOLATION)
        return

    connection = await hub.connect(websocket, user.id, user.role)
    try:
        while True:
            message = await websocket.receive_json()
            if isinstance(message, dict):
                await hub.handle_client_message(connection, message)
    except WebSocketDisconnect:
        pass
    finally:
        hub.disconnect(connection)


@router.get("/api/realtime/connections")
def list_connections(
    role: Optional[str] = None,
    _admin: User = Depends(require_role(UserRole.ADMIN)),
):
    """Admin-only: users currently connected to the change feed, optionally one role."""
    return {"connections": hub.connected_users(role)}
