from irp.models.user import User, UserRole, ROLE_BYPASSES_OWNERSHIP
from irp.models.activity_log import ActivityLog, ActivityAction, ActivityResource
from irp.models.expert import Expert, ExpertAvailability
from irp.models.event import Event, EventType, EventStatus
from irp.models.feedback import Feedback, ASPECT_NAMES

__all__ = [
    "User",
    "UserRole",
    "ROLE_BYPASSES_OWNERSHIP",
    "ActivityLog",
    "ActivityAction",
    "ActivityResource",
    "Expert",
    "ExpertAvailability",
    "Event",
    "EventType",
    "EventStatus",
    "Feedback",
    "ASPECT_NAMES",
]
