from sqlalchemy import Column, String, Boolean, DateTime, Integer, Text, ForeignKey, JSON, Index
from sqlalchemy.orm import relationship
from datetime import datetime

from irp.core.database import Base
from irp.core.types import GUID, generate_uuid


ASPECT_NAMES = ("content", "delivery", "interaction", "relevance")


class Feedback(Base):
    """An attendee's rating of an event and its expert"""
    __tablename__ = "feedback"

    id = Column(GUID, primary_key=True, default=generate_uuid)
    event_id = Column(GUID, ForeignKey("events.id"), nullable=False, index=True)
    expert_id = Column(GUID, ForeignKey("experts.id"), nullable=False, index=True)
    # Owner for ownership checks
    attendee_id = Column(GUID, ForeignKey("users.id"), nullable=False, index=True)

    rating = Column(Integer, nullable=False, index=True)
    comments = Column(Text, nullable=True)
    aspects = Column(JSON, nullable=True)
    suggestions = Column(String(500), nullable=True)
    would_recommend = Column(Boolean, default=True, nullable=False)
    is_anonymous = Column(Boolean, default=False, nullable=False)

    is_active = Column(Boolean, default=True, nullable=False, index=True)

    created_at = Column(DateTime, default=datetime.utcnow, nullable=False)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    event = relationship("Event", foreign_keys=[event_id], lazy="joined")
    expert = relationship("Expert", foreign_keys=[expert_id], lazy="joined")
    attendee = relationship("User", foreign_keys=[attendee_id], lazy="joined")

    __table_args__ = (
        Index("ix_feedback_event_attendee", "event_id", "attendee_id"),
    )

    @property
    def satisfaction_score(self) -> float:
        values = [v for v in (self.aspects or {}).values() if v is not None]
        if not values:
            return self.rating
        return round(sum(values) / len(values), 1)

    def __repr__(self):
        return f"<Feedback {self.rating} for {self.event_id}>"
