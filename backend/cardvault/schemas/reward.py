from datetime import datetime
from typing import Optional

from pydantic import Field

from cardvault.schemas.base import ApiModel, Money, ReadModel

class RewardCreate(ApiModel):
    card_id: str
    reward_type: str = Field(..., min_length=1)
    reward_value: str = Field(..., min_length=1)
    condition: str = Field(..., min_length=1)
    threshold: Money = Field(..., gt=0)
    is_active: bool = True
    expiry_date: Optional[datetime] = None

class RewardUpdate(ApiModel):
    reward_type: Optional[str] = Field(None, min_length=1)
    reward_value: Optional[str] = Field(None, min_length=1)
    condition: Optional[str] = Field(None, min_length=1)
    threshold: Optional[Money] = Field(None, gt=0)
    is_active: Optional[bool] = None
    expiry_date: Optional[datetime] = None

class RewardRead(ReadModel):
    id: str
    card_id: str
    reward_type: str
    reward_value: str
    condition: str
    threshold: Money
    current_progress: Money
    is_active: bool
    expiry_date: Optional[datetime] = None
    created_at: datetime
