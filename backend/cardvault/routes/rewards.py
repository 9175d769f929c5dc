from typing import Optional

from fastapi import APIRouter, Depends, Query

from cardvault.core.exceptions import ResourceNotFoundError
from cardvault.deps import get_current_user, get_storage
from cardvault.schemas.reward import RewardCreate, RewardRead, RewardUpdate
from cardvault.schemas.user import UserRead
from cardvault.storage.interface import Storage

router = APIRouter(prefix="/api/rewards", tags=["Rewards"])

@router.get("", response_model=list[RewardRead])
async def list_rewards(
    card_id: Optional[str] = Query(None, alias="cardId"),
    current_user: UserRead = Depends(get_current_user),
    storage: Storage = Depends(get_storage),
):
    if card_id:
        return await storage.list_rewards_by_card(card_id, current_user.id)
    return await storage.list_rewards(current_user.id)

@router.post("", response_model=RewardRead, status_code=201)
async def create_reward(
    reward: RewardCreate,
    current_user: UserRead = Depends(get_current_user),
    storage: Storage = Depends(get_storage),
):
    return await storage.create_reward(current_user.id, reward)

@router.patch("/{reward_id}", response_model=RewardRead)
async def update_reward(
    reward_id: str,
    changes: RewardUpdate,
    current_user: UserRead = Depends(get_current_user),
    storage: Storage = Depends(get_storage),
):
    reward = await storage.update_reward(reward_id, current_user.id, changes)
    if not reward:
        raise ResourceNotFoundError("Reward", reward_id)
    return reward

@router.delete("/{reward_id}")
async def delete_reward(
    reward_id: str,
    current_user: UserRead = Depends(get_current_user),
    storage: Storage = Depends(get_storage),
):
    if not await storage.delete_reward(reward_id, current_user.id):
        raise ResourceNotFoundError("Reward", reward_id)
    return {"success": True}
