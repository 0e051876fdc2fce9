from sqlalchemy import Column, String, DateTime, Text, Boolean, ForeignKey, JSON, Index, Enum as SQLEnum
from sqlalchemy.orm import relationship
from datetime import datetime
import enum

from irp.core.database import Base
from irp.core.types import GUID, generate_uuid


class ActivityAction(str, enum.Enum):
    """Verbs an activity record can describe"""
    CREATE = "create"
    READ = "read"
    UPDATE = "update"
    DELETE = "delete"
    LOGIN = "login"
    LOGOUT = "logout"
    REGISTER = "register"
    EXPORT = "export"
    IMPORT = "import"
    UPLOAD = "upload"
    DOWNLOAD = "download"


class ActivityResource(str, enum.Enum):
    """Resource types an activity record can point at"""
    USER = "user"
    EXPERT = "expert"
    EVENT = "event"
    FEEDBACK = "feedback"
    SYSTEM = "system"


class ActivityLog(Base):
    """Immutable audit entry for one user action"""
    __tablename__ = "activity_logs"

    id = Column(GUID, primary_key=True, default=generate_uuid)
    user_id = Column(GUID, ForeignKey("users.id"), nullable=False, index=True)

    action = Column(SQLEnum(ActivityAction), nullable=False, index=True)
    resource = Column(SQLEnum(ActivityResource), nullable=False, index=True)
    resource_id = Column(GUID, nullable=True)

    description = Column(String(500), nullable=False)
    details = Column(JSON, nullable=False, default=dict)

    # Request metadata
    ip_address = Column(String(45), nullable=True)
    user_agent = Column(Text, nullable=True)

    timestamp = Column(DateTime, default=datetime.utcnow, nullable=False, index=True)
    # Excluded from reporting when false; never updated otherwise
    is_active = Column(Boolean, default=True, nullable=False, index=True)

    user = relationship("User", foreign_keys=[user_id], lazy="joined")

    __table_args__ = (
        Index("ix_activity_logs_user_timestamp", "user_id", "timestamp"),
        Index("ix_activity_logs_resource_resource_id", "resource", "resource_id"),
    )

    def __repr__(self):
        return f"<ActivityLog {self.action} {self.resource} by {self.user_id}>"
