from typing import Optional

from fastapi import APIRouter, Depends, Query

from cardvault.core.exceptions import ResourceNotFoundError
from cardvault.deps import get_current_user, get_pipeline, get_storage
from cardvault.schemas.transaction import TransactionCreate, TransactionRead, TransactionUpdate
from cardvault.schemas.user import UserRead
from cardvault.services.ingestion import IngestionPipeline
from cardvault.storage.interface import Storage

router = APIRouter(prefix="/api/transactions", tags=["Transactions"])

@router.get("", response_model=list[TransactionRead])
async def list_transactions(
    card_id: Optional[str] = Query(None, alias="cardId"),
    current_user: UserRead = Depends(get_current_user),
    storage: Storage = Depends(get_storage),
):
    if card_id:
        return await storage.list_transactions_by_card(card_id, current_user.id)
    return await storage.list_transactions(current_user.id)

@router.post("", response_model=TransactionRead, status_code=201)
async def create_transaction(
    transaction: TransactionCreate,
    current_user: UserRead = Depends(get_current_user),
    pipeline: IngestionPipeline = Depends(get_pipeline),
):
    """
    Record a manual transaction.

    Notifications, reward progress and the card balance are updated
    before the response goes out, but a failure in any of them does not
    fail the request; the transaction stays recorded.
    """
    outcome = await pipeline.ingest_manual(current_user.id, transaction)
    return outcome.transaction

@router.patch("/{transaction_id}", response_model=TransactionRead)
async def update_transaction(
    transaction_id: str,
    changes: TransactionUpdate,
    current_user: UserRead = Depends(get_current_user),
    storage: Storage = Depends(get_storage),
):
    transaction = await storage.update_transaction(transaction_id, current_user.id, changes)
    if not transaction:
        raise ResourceNotFoundError("Transaction", transaction_id)
    return transaction

@router.delete("/{transaction_id}")
async def delete_transaction(
    transaction_id: str,
    current_user: UserRead = Depends(get_current_user),
    storage: Storage = Depends(get_storage),
):
    if not await storage.delete_transaction(transaction_id, current_user.id):
        raise ResourceNotFoundError("Transaction", transaction_id)
    return {"success": True}
