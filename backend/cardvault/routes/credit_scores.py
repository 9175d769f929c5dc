from fastapi import APIRouter, Depends

from cardvault.deps import get_current_user, get_storage
from cardvault.schemas.credit_score import CreditScoreCreate, CreditScoreRead
from cardvault.schemas.user import UserRead
from cardvault.storage.interface import Storage

router = APIRouter(prefix="/api/credit-scores", tags=["Credit Scores"])

@router.get("", response_model=list[CreditScoreRead])
async def list_credit_scores(
    current_user: UserRead = Depends(get_current_user),
    storage: Storage = Depends(get_storage),
):
    return await storage.list_credit_scores(current_user.id)

@router.post("", response_model=CreditScoreRead, status_code=201)
async def create_credit_score(
    score: CreditScoreCreate,
    current_user: UserRead = Depends(get_current_user),
    storage: Storage = Depends(get_storage),
):
    return await storage.create_credit_score(current_user.id, score)
