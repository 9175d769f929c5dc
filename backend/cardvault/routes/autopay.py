from fastapi import APIRouter, Depends

from cardvault.core.exceptions import ResourceNotFoundError
from cardvault.deps import get_current_user, get_storage
from cardvault.schemas.autopay import AutopayRead, AutopayUpsert
from cardvault.schemas.user import UserRead
from cardvault.storage.interface import Storage

router = APIRouter(prefix="/api", tags=["Autopay"])

@router.get("/autopay", response_model=list[AutopayRead])
async def list_autopay(
    current_user: UserRead = Depends(get_current_user),
    storage: Storage = Depends(get_storage),
):
    return await storage.list_autopay_settings(current_user.id)

@router.put("/cards/{card_id}/autopay", response_model=AutopayRead)
async def save_autopay(
    card_id: str,
    settings: AutopayUpsert,
    current_user: UserRead = Depends(get_current_user),
    storage: Storage = Depends(get_storage),
):
    return await storage.save_autopay_settings(card_id, current_user.id, settings)

@router.delete("/autopay/{autopay_id}")
async def delete_autopay(
    autopay_id: str,
    current_user: UserRead = Depends(get_current_user),
    storage: Storage = Depends(get_storage),
):
    if not await storage.delete_autopay_settings(autopay_id, current_user.id):
        raise ResourceNotFoundError("Autopay settings", autopay_id)
    return {"success": True}
