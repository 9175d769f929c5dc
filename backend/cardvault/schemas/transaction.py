import enum
from datetime import datetime
from typing import Optional

from pydantic import Field

from cardvault.models.transaction import TransactionSource
from cardvault.schemas.base import ApiModel, Money, ReadModel

class Category(str, enum.Enum):
    SHOPPING = "Shopping"
    FOOD = "Food"
    TRAVEL = "Travel"
    FUEL = "Fuel"
    GROCERIES = "Groceries"
    UTILITIES = "Utilities"
    ENTERTAINMENT = "Entertainment"
    HEALTHCARE = "Healthcare"
    OTHER = "Other"

class TransactionCreate(ApiModel):
    card_id: str
    merchant_name: str = Field(..., min_length=1)
    amount: Money = Field(..., gt=0)
    category: Category
    description: Optional[str] = None
    transaction_date: Optional[datetime] = None
    source: TransactionSource = TransactionSource.MANUAL

class TransactionUpdate(ApiModel):
    merchant_name: Optional[str] = Field(None, min_length=1)
    amount: Optional[Money] = Field(None, gt=0)
    category: Optional[Category] = None
    description: Optional[str] = None

class TransactionRead(ReadModel):
    id: str
    card_id: str
    merchant_name: str
    amount: Money
    category: str
    transaction_date: datetime
    description: Optional[str] = None
    source: str
