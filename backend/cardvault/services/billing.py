import logging

from cardvault.core.exceptions import ResourceNotFoundError
from cardvault.models.bill import BillStatus
from cardvault.models.notification import NotificationType
from cardvault.schemas.bill import BillPaymentRequest, BillRead, PaymentCreate, PaymentRead
from cardvault.schemas.notification import NotificationCreate
from cardvault.services.broadcast import ConnectionManager
from cardvault.services.ingestion import format_amount
from cardvault.storage.interface import Storage

logger = logging.getLogger(__name__)

async def pay_bill(
    storage: Storage,
    broadcaster: ConnectionManager,
    user_id: str,
    bill_id: str,
    request: BillPaymentRequest,
) -> tuple[PaymentRead, BillRead]:
    """
    Record a payment against a bill and mark the bill paid.

    Payments are bookkeeping only: nothing is charged, and the card's
    cached balance (a sum of transactions) is left alone.
    """
    bill = await storage.get_bill(bill_id, user_id)
    if not bill:
        raise ResourceNotFoundError("Bill", bill_id)

    if bill.status == BillStatus.PAID:
        raise ValueError("Bill is already paid")

    amount = request.amount if request.amount is not None else bill.amount
    if amount < bill.minimum_due:
        raise ValueError("Payment must cover at least the minimum due")

    # claim the bill first so two concurrent payments can't both land
    updated = await storage.update_bill_status(
        bill.id, user_id, BillStatus.PAID.value, expected_status=BillStatus.PENDING.value,
    )
    if updated is None:
        if await storage.get_bill(bill.id, user_id) is None:
            raise ResourceNotFoundError("Bill", bill_id)
        raise ValueError("Bill is already paid")

    try:
        payment = await storage.create_payment(user_id, PaymentCreate(
            bill_id=bill.id,
            amount=amount,
            payment_method=request.payment_method,
            transaction_id=request.transaction_id,
        ))
    except Exception:
        await storage.update_bill_status(bill.id, user_id, BillStatus.PENDING.value)
        raise

    try:
        notification = await storage.create_notification(user_id, NotificationCreate(
            card_id=bill.card_id,
            title="Payment Successful",
            message=f"Payment of {format_amount(amount)} received for your {bill.bill_month} bill",
            type=NotificationType.PAYMENT,
            metadata={"billId": bill.id, "paymentId": payment.id},
        ))
        await broadcaster.broadcast(notification, user_id)
    except Exception:
        logger.exception("Payment notification failed for payment %s", payment.id)

    return payment, updated
