from pydantic import BaseModel, Field, field_validator, model_validator
from typing import Optional, List
from datetime import datetime
import re

from irp.models.event import EventType, EventStatus
from irp.schemas.expert import ExpertBrief
from irp.schemas.user import UserBrief

TIME_PATTERN = re.compile(r"^([01]?[0-9]|2[0-3]):[0-5][0-9]$")


def _check_time(value: Optional[str]) -> Optional[str]:
    if value is not None and not TIME_PATTERN.match(value):
        raise ValueError("Time must be in HH:MM format")
    return value


class EventCreate(BaseModel):
    title: str = Field(..., min_length=1, max_length=200)
    description: str = Field(..., min_length=1, max_length=2000)
    type: EventType = EventType.TALK
    expert_id: str
    # Defaults to the caller when omitted
    coordinator_id: Optional[str] = None
    scheduled_date: datetime
    start_time: str
    end_time: str
    venue: str = Field(..., min_length=1, max_length=200)
    capacity: int = Field(..., ge=1, le=10000)
    requirements: List[str] = Field(default_factory=list)
    materials: List[str] = Field(default_factory=list)

    @field_validator("start_time", "end_time")
    @classmethod
    def validate_time(cls, v):
        return _check_time(v)


# Columns that may be omitted from an update but never cleared
NON_NULLABLE_EVENT_FIELDS = (
    "title", "description", "type", "expert_id", "scheduled_date",
    "start_time", "end_time", "venue", "capacity",
)


class EventUpdate(BaseModel):
    title: Optional[str] = Field(None, min_length=1, max_length=200)
    description: Optional[str] = Field(None, min_length=1, max_length=2000)
    type: Optional[EventType] = None
    expert_id: Optional[str] = None
    scheduled_date: Optional[datetime] = None
    start_time: Optional[str] = None
    end_time: Optional[str] = None
    venue: Optional[str] = Field(None, min_length=1, max_length=200)
    capacity: Optional[int] = Field(None, ge=1, le=10000)
    requirements: Optional[List[str]] = None
    materials: Optional[List[str]] = None
    reminder_date: Optional[datetime] = None

    @field_validator("start_time", "end_time")
    @classmethod
    def validate_time(cls, v):
        return _check_time(v)

    @field_validator(*NON_NULLABLE_EVENT_FIELDS)
    @classmethod
    def reject_null(cls, v):
        if v is None:
            raise ValueError("Field cannot be null")
        return v

    @model_validator(mode="after")
    def validate_not_empty(self):
        if not self.model_fields_set:
            raise ValueError("No fields to update")
        return self


class EventStatusUpdate(BaseModel):
    status: EventStatus


class EventResponse(BaseModel):
    id: str
    title: str
    description: str
    type: EventType
    expert_id: str
    coordinator_id: str
    expert: Optional[ExpertBrief] = None
    coordinator: Optional[UserBrief] = None
    creator: Optional[UserBrief] = None
    scheduled_date: datetime
    start_time: str
    end_time: str
    duration: str
    venue: str
    capacity: int
    registered_count: int
    is_available: bool
    status: EventStatus
    requirements: List[str]
    materials: List[str]
    reminder_sent: bool
    reminder_date: Optional[datetime] = None
    is_active: bool
    created_at: datetime
    updated_at: Optional[datetime] = None

    class Config:
        from_attributes = True


class EventBrief(BaseModel):
    id: str
    title: str
    type: EventType
    scheduled_date: datetime

    class Config:
        from_attributes = True


class EventsResponse(BaseModel):
    items: List[EventResponse]
    total: int
    page: int
    page_size: int
    total_pages: int
    has_next: bool
    has_previous: bool


class RegistrationResponse(BaseModel):
    message: str
    registered_count: int
    capacity: int
