from fastapi import APIRouter, Depends

from cardvault.core.exceptions import ResourceNotFoundError
from cardvault.deps import get_current_user, get_storage
from cardvault.schemas.card import CardCreate, CardRead, CardUpdate
from cardvault.schemas.user import UserRead
from cardvault.storage.interface import Storage

router = APIRouter(prefix="/api/cards", tags=["Cards"])

@router.get("", response_model=list[CardRead])
async def list_cards(
    current_user: UserRead = Depends(get_current_user),
    storage: Storage = Depends(get_storage),
):
    return await storage.list_cards(current_user.id)

@router.post("", response_model=CardRead, status_code=201)
async def create_card(
    card: CardCreate,
    current_user: UserRead = Depends(get_current_user),
    storage: Storage = Depends(get_storage),
):
    return await storage.create_card(current_user.id, card)

@router.get("/{card_id}", response_model=CardRead)
async def get_card(
    card_id: str,
    current_user: UserRead = Depends(get_current_user),
    storage: Storage = Depends(get_storage),
):
    card = await storage.get_card(card_id, current_user.id)
    if not card:
        raise ResourceNotFoundError("Card", card_id)
    return card

@router.patch("/{card_id}", response_model=CardRead)
async def update_card(
    card_id: str,
    changes: CardUpdate,
    current_user: UserRead = Depends(get_current_user),
    storage: Storage = Depends(get_storage),
):
    card = await storage.update_card(card_id, current_user.id, changes)
    if not card:
        raise ResourceNotFoundError("Card", card_id)
    return card

@router.delete("/{card_id}")
async def delete_card(
    card_id: str,
    current_user: UserRead = Depends(get_current_user),
    storage: Storage = Depends(get_storage),
):
    if not await storage.delete_card(card_id, current_user.id):
        raise ResourceNotFoundError("Card", card_id)
    return {"success": True}

@router.post("/{card_id}/resync-balance", response_model=CardRead)
async def resync_balance(
    card_id: str,
    current_user: UserRead = Depends(get_current_user),
    storage: Storage = Depends(get_storage),
):
    """Recompute the cached balance from the card's transactions."""
    card = await storage.resync_card_balance(card_id, current_user.id)
    if not card:
        raise ResourceNotFoundError("Card", card_id)
    return card
