from pydantic import BaseModel, EmailStr, ConfigDict
from typing import Optional

from app.models.authorization import AuthorizationStatus


class UserSyncRequest(BaseModel):
    fullName: Optional[str] = None


class UserResponse(BaseModel):
    id: int
    email: EmailStr
    full_name: Optional[str] = None
    authorization_status: AuthorizationStatus

    model_config = ConfigDict(from_attributes=True)
