import logging
from typing import Dict, Set

from fastapi import WebSocket

from cardvault.schemas.notification import NotificationRead

logger = logging.getLogger(__name__)

# =========================================================
# CONNECTION MANAGER
# =========================================================
class ConnectionManager:
    """
    Live websocket connections grouped by the user they authenticated as.

    Only touched from the event loop, so plain dict/set are enough.
    """

    def __init__(self):
        self.connections: Dict[str, Set[WebSocket]] = {}  # user_id -> sockets

    async def connect(self, websocket: WebSocket, user_id: str):
        await websocket.accept()
        self.connections.setdefault(user_id, set()).add(websocket)
        logger.info("Websocket connected for user %s (%d open)", user_id, len(self.connections[user_id]))

    def disconnect(self, websocket: WebSocket, user_id: str):
        sockets = self.connections.get(user_id)
        if not sockets:
            return
        sockets.discard(websocket)
        if not sockets:
            del self.connections[user_id]
        logger.info("Websocket disconnected for user %s", user_id)

    def connection_count(self, user_id: str) -> int:
        return len(self.connections.get(user_id, ()))

    async def send_to_user(self, user_id: str, message: dict) -> int:
        delivered = 0
        for ws in list(self.connections.get(user_id, ())):
            try:
                await ws.send_json(message)
                delivered += 1
            except Exception as e:
                # socket went away between receive loops
                logger.info("Dropping dead websocket for user %s: %s", user_id, e)
                self.disconnect(ws, user_id)
        return delivered

    async def broadcast(self, notification: NotificationRead, user_id: str) -> int:
        """Push a notification to every open connection of its owner."""
        delivered = await self.send_to_user(user_id, {
            "type": "notification",
            "data": notification.to_push_payload(),
        })
        if not delivered:
            logger.debug("No live connection for user %s, notification %s stays in the inbox",
                         user_id, notification.id)
        return delivered


# ✅ SINGLETON (shared across app)
manager = ConnectionManager()
