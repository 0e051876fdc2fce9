"""Custom SQLAlchemy types shared by every table"""
from sqlalchemy import TypeDecorator, String
import uuid


def generate_uuid():
    """Generate a UUID string"""
    return str(uuid.uuid4())


def is_valid_uuid(value) -> bool:
    """True when value parses as a UUID"""
    try:
        uuid.UUID(str(value))
    except (TypeError, ValueError):
        return False
    return True


class GUID(TypeDecorator):
    """Portable GUID type that stores UUIDs as VARCHAR(36) on every backend"""
    impl = String(36)
    cache_ok = True

    def load_dialect_impl(self, dialect):
        return dialect.type_descriptor(String(36))

    def process_bind_param(self, value, dialect):
        if value is not None:
            return str(value)
        return value

    def process_result_value(self, value, dialect):
        if value is not None:
            return str(value)
        return value
