from pydantic import BaseModel, EmailStr
from datetime import datetime
from typing import Optional

from cardvault.schemas.base import ApiModel, ReadModel

class UserUpsert(ApiModel):
    external_id: str
    email: Optional[EmailStr] = None
    first_name: Optional[str] = None
    last_name: Optional[str] = None
    profile_image_url: Optional[str] = None

class UserRead(ReadModel):
    id: str
    external_id: str
    email: Optional[EmailStr] = None
    first_name: Optional[str] = None
    last_name: Optional[str] = None
    profile_image_url: Optional[str] = None
    created_at: datetime
    updated_at: datetime

class LoginRequest(BaseModel):
    init_data: str

class TokenResponse(BaseModel):
    access_token: str
    token_type: str = "bearer"
