from pydantic import BaseModel, EmailStr, Field
from typing import Optional, List, Any
from datetime import datetime

from irp.models.user import UserRole


class UserBrief(BaseModel):
    """Minimal account fields embedded in other resources"""
    id: str
    full_name: str
    email: str

    class Config:
        from_attributes = True


class UserResponse(BaseModel):
    id: str
    email: str
    full_name: str
    role: UserRole
    is_active: bool
    avatar_url: Optional[str] = None
    phone: Optional[str] = None
    department: Optional[str] = None
    created_at: datetime
    last_login: Optional[datetime] = None

    class Config:
        from_attributes = True


class UserCreate(BaseModel):
    """Admin-created account"""
    email: EmailStr
    full_name: str = Field(..., min_length=1, max_length=255)
    role: UserRole = UserRole.COORDINATOR
    phone: Optional[str] = Field(None, max_length=20)
    department: Optional[str] = Field(None, max_length=255)


class ProfileUpdate(BaseModel):
    full_name: Optional[str] = Field(None, min_length=1, max_length=255)
    department: Optional[str] = Field(None, max_length=255)
    phone: Optional[str] = Field(None, max_length=20)


class RoleUpdate(BaseModel):
    role: UserRole


class UsersResponse(BaseModel):
    items: List[UserResponse]
    total: int
    page: int
    page_size: int
    total_pages: int
    has_next: bool
    has_previous: bool


class DashboardSummary(BaseModel):
    total_experts: int
    total_events: int
    upcoming_events: int
    total_feedbacks: int


class DashboardResponse(BaseModel):
    summary: DashboardSummary
    upcoming_events: List[Any]
    top_rated_experts: List[Any]
    recent_activities: List[Any]
    monthly_events: List[dict]
    feedback_stats: dict
