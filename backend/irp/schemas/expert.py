from pydantic import BaseModel, EmailStr, Field, field_validator
from typing import Optional, List
from datetime import datetime

from irp.models.expert import ExpertAvailability
from irp.schemas.user import UserBrief


class Address(BaseModel):
    street: Optional[str] = None
    city: Optional[str] = None
    state: Optional[str] = None
    country: Optional[str] = None
    zip_code: Optional[str] = None


class SocialLinks(BaseModel):
    linkedin: Optional[str] = None
    twitter: Optional[str] = None
    website: Optional[str] = None


def _clean_expertise(value: Optional[List[str]]) -> Optional[List[str]]:
    if value is None:
        return value
    cleaned = [item.strip() for item in value if item and item.strip()]
    if not cleaned:
        raise ValueError("At least one area of expertise is required")
    return cleaned


class ExpertCreate(BaseModel):
    name: str = Field(..., min_length=1, max_length=100)
    email: EmailStr
    phone: str = Field(..., min_length=1, max_length=20)
    company: str = Field(..., min_length=1, max_length=200)
    position: str = Field(..., min_length=1, max_length=100)
    expertise: List[str]
    bio: Optional[str] = Field(None, max_length=1000)
    profile_image: str = ""
    address: Address = Field(default_factory=Address)
    social_links: SocialLinks = Field(default_factory=SocialLinks)
    availability: ExpertAvailability = ExpertAvailability.AVAILABLE

    @field_validator("expertise")
    @classmethod
    def validate_expertise(cls, v):
        return _clean_expertise(v)


NON_NULLABLE_EXPERT_FIELDS = (
    "name", "email", "phone", "company", "position",
    "expertise", "profile_image", "availability",
)


class ExpertUpdate(BaseModel):
    name: Optional[str] = Field(None, min_length=1, max_length=100)
    email: Optional[EmailStr] = None
    phone: Optional[str] = Field(None, min_length=1, max_length=20)
    company: Optional[str] = Field(None, min_length=1, max_length=200)
    position: Optional[str] = Field(None, min_length=1, max_length=100)
    expertise: Optional[List[str]] = None
    bio: Optional[str] = Field(None, max_length=1000)
    profile_image: Optional[str] = None
    address: Optional[Address] = None
    social_links: Optional[SocialLinks] = None
    availability: Optional[ExpertAvailability] = None

    @field_validator("expertise")
    @classmethod
    def validate_expertise(cls, v):
        return _clean_expertise(v)

    @field_validator(*NON_NULLABLE_EXPERT_FIELDS)
    @classmethod
    def reject_null(cls, v):
        if v is None:
            raise ValueError("Field cannot be null")
        return v


class ExpertBrief(BaseModel):
    id: str
    name: str
    company: str
    position: str
    profile_image: str = ""

    class Config:
        from_attributes = True


class ExpertResponse(BaseModel):
    id: str
    name: str
    email: str
    phone: str
    company: str
    position: str
    expertise: List[str]
    bio: Optional[str] = None
    profile_image: str = ""
    address: dict
    full_address: str
    social_links: dict
    availability: ExpertAvailability
    rating_average: float
    rating_count: int
    is_active: bool
    added_by_user: Optional[UserBrief] = None
    created_at: datetime
    updated_at: Optional[datetime] = None

    class Config:
        from_attributes = True


class ExpertsResponse(BaseModel):
    items: List[ExpertResponse]
    total: int
    page: int
    page_size: int
    total_pages: int
    has_next: bool
    has_previous: bool
