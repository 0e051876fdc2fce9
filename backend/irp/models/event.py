from sqlalchemy import Column, String, Boolean, DateTime, Integer, Text, ForeignKey, JSON, Enum as SQLEnum
from sqlalchemy.orm import relationship
from datetime import datetime
import enum

from irp.core.database import Base
from irp.core.exceptions import EventCapacityError, RegistrationError
from irp.core.types import GUID, generate_uuid


class EventType(str, enum.Enum):
    WORKSHOP = "workshop"
    SEMINAR = "seminar"
    TALK = "talk"
    CONFERENCE = "conference"
    MEETING = "meeting"


class EventStatus(str, enum.Enum):
    SCHEDULED = "scheduled"
    ONGOING = "ongoing"
    COMPLETED = "completed"
    CANCELLED = "cancelled"
    POSTPONED = "postponed"


def _minutes(hhmm: str) -> int:
    hours, minutes = hhmm.split(":")
    return int(hours) * 60 + int(minutes)


class Event(Base):
    """A talk or workshop pairing an expert with a coordinator"""
    __tablename__ = "events"

    id = Column(GUID, primary_key=True, default=generate_uuid)
    title = Column(String(200), nullable=False)
    description = Column(Text, nullable=False)
    type = Column(SQLEnum(EventType), default=EventType.TALK, nullable=False, index=True)

    expert_id = Column(GUID, ForeignKey("experts.id"), nullable=False, index=True)
    # Owner for ownership checks
    coordinator_id = Column(GUID, ForeignKey("users.id"), nullable=False, index=True)

    scheduled_date = Column(DateTime, nullable=False, index=True)
    start_time = Column(String(5), nullable=False)
    end_time = Column(String(5), nullable=False)
    venue = Column(String(200), nullable=False)

    capacity = Column(Integer, nullable=False)
    registered_count = Column(Integer, default=0, nullable=False)

    status = Column(SQLEnum(EventStatus), default=EventStatus.SCHEDULED, nullable=False, index=True)
    requirements = Column(JSON, nullable=False, default=list)
    materials = Column(JSON, nullable=False, default=list)

    reminder_sent = Column(Boolean, default=False, nullable=False)
    reminder_date = Column(DateTime, nullable=True)

    is_active = Column(Boolean, default=True, nullable=False, index=True)
    created_by = Column(GUID, ForeignKey("users.id"), nullable=False)

    created_at = Column(DateTime, default=datetime.utcnow, nullable=False)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    expert = relationship("Expert", foreign_keys=[expert_id], lazy="joined")
    coordinator = relationship("User", foreign_keys=[coordinator_id], lazy="joined")
    creator = relationship("User", foreign_keys=[created_by], lazy="joined")

    @property
    def duration(self) -> str:
        total = _minutes(self.end_time) - _minutes(self.start_time)
        if total < 0:
            return "Invalid time range"

        hours, minutes = divmod(total, 60)
        if hours and minutes:
            return f"{hours}h {minutes}m"
        if hours:
            return f"{hours}h"
        return f"{minutes}m"

    @property
    def is_available(self) -> bool:
        return self.registered_count < self.capacity

    def register(self) -> None:
        if not self.is_available:
            raise EventCapacityError(self.capacity)
        self.registered_count += 1

    def cancel_registration(self) -> None:
        if self.registered_count <= 0:
            raise RegistrationError("No registrations to cancel")
        self.registered_count -= 1

    def __repr__(self):
        return f"<Event {self.title} on {self.scheduled_date}>"
