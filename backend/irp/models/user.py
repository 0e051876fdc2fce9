from sqlalchemy import Column, String, Boolean, DateTime, Enum as SQLEnum, Text
from datetime import datetime
import enum

from irp.core.database import Base
from irp.core.types import GUID, generate_uuid


class UserRole(str, enum.Enum):
    """Closed set of account roles"""
    ADMIN = "admin"
    COORDINATOR = "coordinator"


# Roles that bypass ownership checks. Every UserRole must appear here.
ROLE_BYPASSES_OWNERSHIP = {
    UserRole.ADMIN: True,
    UserRole.COORDINATOR: False,
}

if set(ROLE_BYPASSES_OWNERSHIP) != set(UserRole):
    raise RuntimeError("ROLE_BYPASSES_OWNERSHIP must cover every UserRole")


class User(Base):
    """A person with access to the system"""
    __tablename__ = "users"

    id = Column(GUID, primary_key=True, default=generate_uuid)
    email = Column(String(255), unique=True, index=True, nullable=False)
    full_name = Column(String(255), nullable=False)

    role = Column(SQLEnum(UserRole), default=UserRole.COORDINATOR, nullable=False)
    is_active = Column(Boolean, default=True, nullable=False)

    # Set only when the account is linked through Google sign-in
    google_id = Column(String(255), unique=True, nullable=True)
    avatar_url = Column(Text, nullable=True)

    # Profile fields
    phone = Column(String(20), nullable=True)
    department = Column(String(255), nullable=True)

    # Timestamps
    created_at = Column(DateTime, default=datetime.utcnow, nullable=False)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)
    last_login = Column(DateTime, nullable=True)

    @property
    def bypasses_ownership(self) -> bool:
        return ROLE_BYPASSES_OWNERSHIP[UserRole(self.role)]

    def touch_last_login(self) -> None:
        self.last_login = datetime.utcnow()

    def __repr__(self):
        return f"<User {self.email}>"
