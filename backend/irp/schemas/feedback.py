from pydantic import BaseModel, Field, model_validator
from typing import Optional, List
from datetime import datetime

from irp.schemas.event import EventBrief
from irp.schemas.expert import ExpertBrief
from irp.schemas.user import UserBrief


class Aspects(BaseModel):
    content: Optional[int] = Field(None, ge=1, le=5)
    delivery: Optional[int] = Field(None, ge=1, le=5)
    interaction: Optional[int] = Field(None, ge=1, le=5)
    relevance: Optional[int] = Field(None, ge=1, le=5)


class FeedbackCreate(BaseModel):
    event_id: str
    expert_id: str
    rating: int = Field(..., ge=1, le=5)
    comments: Optional[str] = Field(None, max_length=1000)
    aspects: Optional[Aspects] = None
    suggestions: Optional[str] = Field(None, max_length=500)
    would_recommend: bool = True
    is_anonymous: bool = False


class FeedbackUpdate(BaseModel):
    rating: Optional[int] = Field(None, ge=1, le=5)
    comments: Optional[str] = Field(None, max_length=1000)
    aspects: Optional[Aspects] = None
    suggestions: Optional[str] = Field(None, max_length=500)
    would_recommend: Optional[bool] = None
    is_anonymous: Optional[bool] = None

    @model_validator(mode="after")
    def validate_not_empty(self):
        if not self.model_fields_set:
            raise ValueError("No fields to update")
        return self


class FeedbackResponse(BaseModel):
    id: str
    event_id: str
    expert_id: str
    attendee_id: str
    event: Optional[EventBrief] = None
    expert: Optional[ExpertBrief] = None
    attendee: Optional[UserBrief] = None
    rating: int
    comments: Optional[str] = None
    aspects: Optional[dict] = None
    suggestions: Optional[str] = None
    would_recommend: bool
    is_anonymous: bool
    satisfaction_score: float
    is_active: bool
    created_at: datetime
    updated_at: Optional[datetime] = None

    class Config:
        from_attributes = True


class FeedbackListResponse(BaseModel):
    items: List[FeedbackResponse]
    total: int
    page: int
    page_size: int
    total_pages: int
    has_next: bool
    has_previous: bool


class FeedbackStats(BaseModel):
    total_feedbacks: int = 0
    average_rating: Optional[float] = None
    high_ratings: int = 0
    low_ratings: int = 0
    recommendations: int = 0


class ExpertRatingSummary(BaseModel):
    average_rating: Optional[float] = None
    total_feedbacks: int = 0
    average_content: Optional[float] = None
    average_delivery: Optional[float] = None
    average_interaction: Optional[float] = None
    average_relevance: Optional[float] = None


class ExpertFeedbackResponse(BaseModel):
    feedback: List[FeedbackResponse]
    average_rating: ExpertRatingSummary
