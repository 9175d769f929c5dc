from fastapi import APIRouter, Depends

from cardvault.deps import get_broadcaster, get_current_user, get_storage
from cardvault.schemas.bill import BillCreate, BillPaymentRequest, BillRead, PaymentRead
from cardvault.schemas.user import UserRead
from cardvault.services.billing import pay_bill
from cardvault.services.broadcast import ConnectionManager
from cardvault.storage.interface import Storage

router = APIRouter(prefix="/api", tags=["Bills"])

@router.get("/bills", response_model=list[BillRead])
async def list_bills(
    current_user: UserRead = Depends(get_current_user),
    storage: Storage = Depends(get_storage),
):
    return await storage.list_bills(current_user.id)

@router.post("/bills", response_model=BillRead, status_code=201)
async def create_bill(
    bill: BillCreate,
    current_user: UserRead = Depends(get_current_user),
    storage: Storage = Depends(get_storage),
):
    return await storage.create_bill(current_user.id, bill)

@router.post("/bills/{bill_id}/pay", response_model=PaymentRead, status_code=201)
async def pay(
    bill_id: str,
    request: BillPaymentRequest,
    current_user: UserRead = Depends(get_current_user),
    storage: Storage = Depends(get_storage),
    broadcaster: ConnectionManager = Depends(get_broadcaster),
):
    payment, _ = await pay_bill(storage, broadcaster, current_user.id, bill_id, request)
    return payment

@router.get("/payments", response_model=list[PaymentRead])
async def list_payments(
    current_user: UserRead = Depends(get_current_user),
    storage: Storage = Depends(get_storage),
):
    return await storage.list_payments(current_user.id)
