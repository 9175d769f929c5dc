from datetime import datetime
from typing import Optional

from pydantic import Field

from cardvault.schemas.base import ApiModel, ReadModel

class CreditScoreCreate(ApiModel):
    score: int = Field(..., ge=300, le=900)
    provider: str = Field(..., min_length=1)
    factors: Optional[str] = None
    suggestions: Optional[str] = None

class CreditScoreRead(ReadModel):
    id: str
    user_id: str
    score: int
    provider: str
    recorded_at: datetime
    factors: Optional[str] = None
    suggestions: Optional[str] = None
