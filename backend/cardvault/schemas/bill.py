from datetime import datetime
from typing import Optional

from pydantic import Field, model_validator

from cardvault.models.bill import BillStatus
from cardvault.schemas.base import ApiModel, Money, ReadModel

class BillCreate(ApiModel):
    card_id: str
    amount: Money = Field(..., ge=0)
    due_date: datetime
    bill_month: str = Field(..., pattern=r"^\d{4}-(0[1-9]|1[0-2])$")
    minimum_due: Money = Field(..., ge=0)

    @model_validator(mode="after")
    def check_minimum_due(self):
        if self.minimum_due > self.amount:
            raise ValueError("minimum due cannot exceed the bill amount")
        return self

class BillRead(ReadModel):
    id: str
    card_id: str
    amount: Money
    due_date: datetime
    bill_month: str
    minimum_due: Money
    status: BillStatus
    created_at: datetime

class BillPaymentRequest(ApiModel):
    amount: Optional[Money] = Field(None, gt=0)  # defaults to the full bill
    payment_method: str = Field(..., min_length=1, max_length=50)
    transaction_id: Optional[str] = None

class PaymentCreate(ApiModel):
    bill_id: str
    amount: Money = Field(..., gt=0)
    payment_method: str = Field(..., min_length=1, max_length=50)
    status: str = "completed"
    transaction_id: Optional[str] = None

class PaymentRead(ReadModel):
    id: str
    bill_id: str
    card_id: str
    amount: Money
    payment_date: datetime
    payment_method: str
    status: str
    transaction_id: Optional[str] = None
