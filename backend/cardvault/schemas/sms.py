from datetime import datetime
from typing import Any, Optional

from pydantic import Field

from cardvault.schemas.base import ApiModel, ReadModel
from cardvault.schemas.transaction import TransactionRead

class SmsCreate(ApiModel):
    phone_number: str = Field(..., min_length=1)
    message: str = Field(..., min_length=1)

class SmsRead(ReadModel):
    id: str
    user_id: str
    phone_number: str
    message: str
    received_at: datetime
    processed: bool
    extracted_data: Optional[dict[str, Any]] = None

class SmsParseResponse(ApiModel):
    success: bool
    transaction: TransactionRead
