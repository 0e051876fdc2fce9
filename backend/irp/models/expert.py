from sqlalchemy import Column, String, Boolean, DateTime, Float, Integer, Text, ForeignKey, JSON, Enum as SQLEnum
from sqlalchemy.orm import relationship
from datetime import datetime
import enum

from irp.core.database import Base
from irp.core.types import GUID, generate_uuid


class ExpertAvailability(str, enum.Enum):
    AVAILABLE = "available"
    BUSY = "busy"
    UNAVAILABLE = "unavailable"


ADDRESS_FIELDS = ("street", "city", "state", "country", "zip_code")


class Expert(Base):
    """External industry expert who speaks at events"""
    __tablename__ = "experts"

    id = Column(GUID, primary_key=True, default=generate_uuid)
    name = Column(String(100), nullable=False, index=True)
    email = Column(String(255), nullable=False, index=True)
    phone = Column(String(20), nullable=False)
    company = Column(String(200), nullable=False, index=True)
    position = Column(String(100), nullable=False)
    expertise = Column(JSON, nullable=False, default=list)
    bio = Column(Text, nullable=True)
    profile_image = Column(Text, nullable=False, default="")

    # street/city/state/country/zip_code
    address = Column(JSON, nullable=False, default=dict)
    # linkedin/twitter/website
    social_links = Column(JSON, nullable=False, default=dict)

    availability = Column(SQLEnum(ExpertAvailability), default=ExpertAvailability.AVAILABLE, nullable=False)

    rating_average = Column(Float, default=0.0, nullable=False, index=True)
    rating_count = Column(Integer, default=0, nullable=False)

    is_active = Column(Boolean, default=True, nullable=False, index=True)
    added_by = Column(GUID, ForeignKey("users.id"), nullable=False)

    created_at = Column(DateTime, default=datetime.utcnow, nullable=False)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    added_by_user = relationship("User", foreign_keys=[added_by], lazy="joined")

    @property
    def full_address(self) -> str:
        address = self.address or {}
        if not any(address.get(key) for key in ("street", "city", "state", "country")):
            return ""
        return ", ".join(address[key] for key in ADDRESS_FIELDS if address.get(key))

    def update_rating(self, new_rating: int) -> None:
        """Fold one more rating into the running average"""
        current_total = (self.rating_average or 0.0) * (self.rating_count or 0)
        self.rating_count = (self.rating_count or 0) + 1
        self.rating_average = (current_total + new_rating) / self.rating_count

    def reset_rating(self, ratings) -> None:
        """Recompute the average from the full list of active ratings"""
        ratings = list(ratings)
        self.rating_count = len(ratings)
        self.rating_average = sum(ratings) / len(ratings) if ratings else 0.0

    def __repr__(self):
        return f"<Expert {self.name} ({self.company})>"
