# file: models/notification.py

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator
from typing import List, Literal, Optional
from datetime import datetime

from app.models.authorization import AuthorizationStatus
from app.services.calendar_trigger import trigger_date


class CalendarTrigger(BaseModel):
    year: int = Field(ge=1, le=9999)
    month: int = Field(ge=1, le=12)
    day: int = Field(ge=1, le=31)
    hour: int = Field(ge=0, le=23)
    minute: int = Field(ge=0, le=59)
    repeats: bool = False

    @model_validator(mode="after")
    def validate_calendar_date(self):
        try:
            trigger_date(self.year, self.month, self.day, self.hour, self.minute)
        except ValueError as e:
            raise ValueError(f"Invalid trigger date: {e}")
        return self


class NotificationBase(BaseModel):
    title: str
    body: str = ""


class NotificationCreate(NotificationBase, CalendarTrigger):

    @field_validator('title')
    def validate_title(cls, v):
        if not v.strip():
            raise ValueError('Title cannot be empty')
        return v.strip()


class NotificationResponse(NotificationBase):
    identifier: str
    year: int
    month: int
    day: int
    hour: int
    minute: int
    repeats: bool
    position: int
    next_trigger_date: Optional[datetime] = None
    display_time: str

    model_config = ConfigDict(from_attributes=True)


class NotificationDelete(BaseModel):
    identifiers: List[str]


class NotificationReorder(BaseModel):
    from_offsets: List[int] = Field(min_length=1)
    to_offset: int = Field(ge=0)


class InfoOverlay(BaseModel):
    kind: Literal["empty", "permission_denied"]
    message: str
    button_title: str
    system_image_name: str
    action: Literal["create", "open_settings"]
    action_url: Optional[str] = None


class NotificationOverview(BaseModel):
    authorization_status: AuthorizationStatus
    overlay: Optional[InfoOverlay] = None
    notifications: List[NotificationResponse] = []
