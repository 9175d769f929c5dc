from datetime import datetime
from typing import Any, Optional

from pydantic import Field

from cardvault.models.notification import NotificationType
from cardvault.schemas.base import ApiModel, ReadModel

class NotificationCreate(ApiModel):
    card_id: Optional[str] = None
    title: str = Field(..., min_length=1)
    message: str = Field(..., min_length=1)
    type: NotificationType
    metadata: Optional[dict[str, Any]] = None

class NotificationRead(ReadModel):
    id: str
    card_id: Optional[str] = None
    user_id: Optional[str] = None
    title: str
    message: str
    type: str
    is_read: bool
    created_at: datetime
    metadata: Optional[dict[str, Any]] = None

    def to_push_payload(self) -> dict:
        """Shape pushed over the websocket channel."""
        return {
            "id": self.id,
            "type": self.type,
            "title": self.title,
            "message": self.message,
            "cardId": self.card_id,
            "read": self.is_read,
            "createdAt": self.created_at.isoformat(),
        }
