from datetime import datetime
from typing import Optional

from pydantic import Field

from cardvault.schemas.base import ApiModel, Money, ReadModel

class CardCreate(ApiModel):
    card_name: str = Field(..., min_length=1)
    bank_name: str = Field(..., min_length=1)
    last_four_digits: str = Field(..., pattern=r"^\d{4}$")
    card_network: str = Field(..., min_length=1, max_length=20)
    credit_limit: Money = Field(..., ge=0)
    due_date: Optional[int] = Field(None, ge=1, le=31)
    billing_cycle: Optional[int] = Field(None, ge=1, le=31)
    card_color: Optional[str] = Field("#8B5CF6", pattern=r"^#[0-9A-Fa-f]{6}$")

class CardUpdate(ApiModel):
    card_name: Optional[str] = Field(None, min_length=1)
    bank_name: Optional[str] = Field(None, min_length=1)
    last_four_digits: Optional[str] = Field(None, pattern=r"^\d{4}$")
    card_network: Optional[str] = Field(None, min_length=1, max_length=20)
    credit_limit: Optional[Money] = Field(None, ge=0)
    due_date: Optional[int] = Field(None, ge=1, le=31)
    billing_cycle: Optional[int] = Field(None, ge=1, le=31)
    card_color: Optional[str] = Field(None, pattern=r"^#[0-9A-Fa-f]{6}$")

class CardRead(ReadModel):
    id: str
    user_id: str
    card_name: str
    bank_name: str
    last_four_digits: str
    card_network: str
    credit_limit: Money
    current_balance: Money
    due_date: Optional[int] = None
    billing_cycle: Optional[int] = None
    card_color: Optional[str] = None
    created_at: datetime
