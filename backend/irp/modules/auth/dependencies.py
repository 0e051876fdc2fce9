from fastapi import Depends
from typing import Optional

from irp.models.user import User, UserRole
from irp.modules.auth.guards import (
    AccessContext,
    GuardPipeline,
    OWNER_OR_ADMIN,
    authenticated_guard,
    role_guard,
)
from irp.modules.auth.identity import get_current_user


def require_roles(*roles: UserRole):
    """
    Build a dependency that lets only ``roles`` through.

    Usage:
        current_admin: User = Depends(require_roles(UserRole.ADMIN))
    """
    pipeline = GuardPipeline([authenticated_guard, role_guard(*roles)])

    async def dependency(current_user: User = Depends(get_current_user)) -> User:
        pipeline.run(AccessContext(account=current_user))
        return current_user

    return dependency


# Admin-only routes depend on this
get_current_admin = require_roles(UserRole.ADMIN)


def authorize_owner(user: User, resource_type: str, owner_id: Optional[str]) -> None:
    """Raise NotResourceOwnerError unless ``user`` owns the resource or is an admin"""
    OWNER_OR_ADMIN.run(AccessContext(
        account=user,
        owner_id=str(owner_id) if owner_id is not None else None,
        resource_type=resource_type,
    ))
