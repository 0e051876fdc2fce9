"""
Authorization guards.

A guard is a plain function ``(AccessContext) -> Optional[IRPError]``. It
returns None to let the request through, or the error that should be
raised. Guards never touch the database; handlers resolve the owner id and
pass it in through the context.

``GuardPipeline.run`` evaluates guards in order and raises the first
error, so authentication failures always win over role failures, and
role failures over ownership failures.
"""
from dataclasses import dataclass
from typing import Callable, Iterable, Optional, Sequence

from irp.core.exceptions import (
    IRPError,
    UnauthenticatedError,
    InsufficientRoleError,
    NotResourceOwnerError,
)
from irp.models.user import User, UserRole


@dataclass(frozen=True)
class AccessContext:
    """Everything a guard may look at"""
    account: Optional[User]
    owner_id: Optional[str] = None
    resource_type: Optional[str] = None


Guard = Callable[[AccessContext], Optional[IRPError]]


def authenticated_guard(ctx: AccessContext) -> Optional[IRPError]:
    if ctx.account is None:
        return UnauthenticatedError()
    return None


def role_guard(*roles: UserRole) -> Guard:
    """Allow only accounts whose role is in ``roles``"""
    allowed = frozenset(UserRole(role) for role in roles)
    if not allowed:
        raise ValueError("role_guard needs at least one role")

    def guard(ctx: AccessContext) -> Optional[IRPError]:
        if ctx.account is None:
            return UnauthenticatedError()
        role = UserRole(ctx.account.role)
        if role not in allowed:
            return InsufficientRoleError(role.value)
        return None

    return guard


def ownership_guard(ctx: AccessContext) -> Optional[IRPError]:
    """
    Non-bypassing roles may only act on resources they own.

    A missing owner id passes: there is nothing to compare against.
    """
    if ctx.account is None:
        return UnauthenticatedError()
    if ctx.account.bypasses_ownership:
        return None
    if ctx.owner_id is None:
        return None
    if str(ctx.account.id) != str(ctx.owner_id):
        return NotResourceOwnerError(ctx.resource_type)
    return None


class GuardPipeline:
    """Ordered guards with a single dispatcher"""

    def __init__(self, guards: Iterable[Guard]):
        self.guards: Sequence[Guard] = tuple(guards)

    def check(self, ctx: AccessContext) -> Optional[IRPError]:
        for guard in self.guards:
            error = guard(ctx)
            if error is not None:
                return error
        return None

    def run(self, ctx: AccessContext) -> None:
        error = self.check(ctx)
        if error is not None:
            raise error


OWNER_OR_ADMIN = GuardPipeline([authenticated_guard, role_guard(*UserRole), ownership_guard])
