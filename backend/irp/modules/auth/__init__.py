# Authentication and authorization module

from irp.modules.auth.identity import get_current_user, verify_credential
from irp.modules.auth.dependencies import (
    get_current_admin,
    require_roles,
    authorize_owner,
)
from irp.modules.auth.guards import (
    AccessContext,
    GuardPipeline,
    role_guard,
    ownership_guard,
)

__all__ = [
    "get_current_user",
    "verify_credential",
    "get_current_admin",
    "require_roles",
    "authorize_owner",
    "AccessContext",
    "GuardPipeline",
    "role_guard",
    "ownership_guard",
]
