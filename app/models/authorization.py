# file: models/authorization.py

from enum import Enum
from pydantic import BaseModel


class AuthorizationStatus(str, Enum):
    NOT_DETERMINED = "not_determined"
    DENIED = "denied"
    AUTHORIZED = "authorized"


class AuthorizationRequest(BaseModel):
    # The user's answer to the one-time permission prompt
    granted: bool


class AuthorizationSettingsUpdate(BaseModel):
    enabled: bool


class AuthorizationResponse(BaseModel):
    status: AuthorizationStatus
