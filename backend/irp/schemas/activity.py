from pydantic import BaseModel
from typing import Optional, List, Any, Dict
from datetime import datetime

from irp.models.activity_log import ActivityAction, ActivityResource
from irp.schemas.user import UserBrief


class ActivityResponse(BaseModel):
    id: str
    user_id: str
    user: Optional[UserBrief] = None
    action: ActivityAction
    resource: ActivityResource
    resource_id: Optional[str] = None
    description: str
    details: Dict[str, Any] = {}
    ip_address: Optional[str] = None
    user_agent: Optional[str] = None
    timestamp: datetime

    class Config:
        from_attributes = True


class ActivitiesResponse(BaseModel):
    items: List[ActivityResponse]
    total: int
    page: int
    page_size: int
    total_pages: int
    has_next: bool
    has_previous: bool


class ActivityActionCount(BaseModel):
    resource: ActivityResource
    count: int


class ActivityStat(BaseModel):
    """Counts for one action, broken down by resource"""
    action: ActivityAction
    total_count: int
    resources: List[ActivityActionCount]


class CleanupResponse(BaseModel):
    message: str
    deleted_count: int
