import logging

from fastapi import APIRouter, Depends, WebSocket, WebSocketDisconnect, status

from cardvault.core.security import decode_access_token
from cardvault.deps import get_broadcaster, get_storage
from cardvault.services.broadcast import ConnectionManager
from cardvault.storage.interface import Storage

logger = logging.getLogger(__name__)

router = APIRouter(tags=["Notifications"])

# =========================================================
# WEBSOCKET ENDPOINT
# =========================================================
@router.websocket("/ws")
async def websocket_endpoint(
    websocket: WebSocket,
    storage: Storage = Depends(get_storage),
    broadcaster: ConnectionManager = Depends(get_broadcaster),
):
    """
    Push channel for notifications.

    The client authenticates with ``?token=<access token>`` at handshake;
    the connection is tied to that user until it closes. Anything the
    client sends is ignored.
    """
    token = websocket.query_params.get("token")
    if not token:
        await websocket.close(code=status.WS_1008_POLICY_VIOLATION)
        return

    payload = decode_access_token(token)
    user_id = payload.get("sub") if payload else None
    if not user_id:
        await websocket.close(code=status.WS_1008_POLICY_VIOLATION)
        return

    user = await storage.get_user(user_id)
    if not user:
        await websocket.close(code=status.WS_1008_POLICY_VIOLATION)
        return

    await broadcaster.connect(websocket, user.id)
    try:
        while True:
            await websocket.receive_text()
    except WebSocketDisconnect:
        pass
    finally:
        broadcaster.disconnect(websocket, user.id)
