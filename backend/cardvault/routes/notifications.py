from fastapi import APIRouter, Depends

from cardvault.core.exceptions import ResourceNotFoundError
from cardvault.deps import get_broadcaster, get_current_user, get_storage
from cardvault.schemas.notification import NotificationCreate, NotificationRead
from cardvault.schemas.user import UserRead
from cardvault.services.broadcast import ConnectionManager
from cardvault.storage.interface import Storage

router = APIRouter(prefix="/api/notifications", tags=["Notifications"])

@router.get("", response_model=list[NotificationRead])
async def list_notifications(
    current_user: UserRead = Depends(get_current_user),
    storage: Storage = Depends(get_storage),
):
    return await storage.list_notifications(current_user.id)

@router.post("", response_model=NotificationRead, status_code=201)
async def create_notification(
    notification: NotificationCreate,
    current_user: UserRead = Depends(get_current_user),
    storage: Storage = Depends(get_storage),
    broadcaster: ConnectionManager = Depends(get_broadcaster),
):
    created = await storage.create_notification(current_user.id, notification)
    await broadcaster.broadcast(created, current_user.id)
    return created

@router.patch("/{notification_id}/read", response_model=NotificationRead)
async def mark_as_read(
    notification_id: str,
    current_user: UserRead = Depends(get_current_user),
    storage: Storage = Depends(get_storage),
):
    notification = await storage.mark_notification_as_read(notification_id, current_user.id)
    if not notification:
        raise ResourceNotFoundError("Notification", notification_id)
    return notification
