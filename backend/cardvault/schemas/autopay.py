from datetime import datetime
from typing import Optional

from pydantic import Field, model_validator

from cardvault.models.autopay import AutopayType
from cardvault.schemas.base import ApiModel, Money, ReadModel

class AutopayUpsert(ApiModel):
    enabled: bool = False
    payment_type: AutopayType = AutopayType.MINIMUM
    days_before: int = Field(3, ge=0, le=30)
    fixed_amount: Optional[Money] = Field(None, gt=0)
    payment_method: str = Field(..., min_length=1, max_length=50)

    @model_validator(mode="after")
    def check_fixed_amount(self):
        if self.payment_type == AutopayType.FIXED and self.fixed_amount is None:
            raise ValueError("fixed autopay requires a fixed amount")
        return self

class AutopayRead(ReadModel):
    id: str
    card_id: str
    enabled: bool
    payment_type: AutopayType
    days_before: int
    fixed_amount: Optional[Money] = None
    payment_method: str
    created_at: datetime
    updated_at: datetime
