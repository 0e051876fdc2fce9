"""
External identity linking.

Turns a verified Google profile into an account. This is the only place
sign-in creates accounts. Branches, checked in order:

1. an account already carries this google_id: sign it in
2. an account has this email and no google_id: attach the google_id
3. nothing matches: create a new account with the default signup role

An email that already belongs to an account linked to a different
google_id is rejected rather than merged. A deactivated account is
rejected before anything about it is changed.
"""
from dataclasses import dataclass
from typing import Optional, Dict, Any

from sqlalchemy import select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from irp.core.config import settings
from irp.core.exceptions import ExternalIdentityError, UnauthorizedAccountError
from irp.core.logging_config import logger
from irp.models.user import User, UserRole


@dataclass(frozen=True)
class ExternalIdentity:
    """A profile asserted by the identity provider"""
    external_id: str
    email: Optional[str]
    display_name: str = ""
    avatar_url: Optional[str] = None

    @classmethod
    def from_google(cls, profile: Dict[str, Any]) -> "ExternalIdentity":
        return cls(
            external_id=profile.get("google_id") or "",
            email=(profile.get("email") or "").strip().lower() or None,
            display_name=profile.get("full_name") or "",
            avatar_url=profile.get("avatar_url") or None,
        )


def _reject_inactive(user: Optional[User]) -> None:
    if user is not None and not user.is_active:
        logger.log_auth_event("google_link", success=False, user_email=user.email,
                              reason="Account is deactivated")
        raise UnauthorizedAccountError()


async def link_external_identity(db: AsyncSession, identity: ExternalIdentity) -> User:
    """
    Find or create the account for ``identity`` and mark it signed in.

    Raises:
        ExternalIdentityError: the profile has no email or id, or the
            account could not be saved
        UnauthorizedAccountError: the matching account is deactivated;
            nothing is changed
    """
    if not identity.email:
        raise ExternalIdentityError("No email returned from Google")
    if not identity.external_id:
        raise ExternalIdentityError("No account id returned from Google")

    try:
        result = await db.execute(select(User).where(User.google_id == identity.external_id))
        user = result.scalar_one_or_none()
        _reject_inactive(user)

        if user is None:
            result = await db.execute(select(User).where(User.email == identity.email))
            user = result.scalar_one_or_none()

            if user is not None and user.google_id is not None:
                logger.log_auth_event("google_link", success=False, user_email=identity.email,
                                      reason="email linked to another Google account")
                raise ExternalIdentityError("Email is linked to another Google account")

            _reject_inactive(user)

            if user is not None:
                user.google_id = identity.external_id
                if not user.avatar_url:
                    user.avatar_url = identity.avatar_url
                logger.info(f"[Linker] Linked Google account to existing user {user.email}")
            else:
                user = User(
                    email=identity.email,
                    full_name=identity.display_name or identity.email.split("@")[0],
                    google_id=identity.external_id,
                    avatar_url=identity.avatar_url,
                    role=UserRole(settings.DEFAULT_SIGNUP_ROLE),
                    is_active=True,
                )
                db.add(user)
                logger.info(f"[Linker] Created user {identity.email} from Google sign-in")

        user.touch_last_login()
        await db.commit()
        await db.refresh(user)
    except SQLAlchemyError as e:
        await db.rollback()
        logger.log_error_with_context(e, "external identity linking", user_email=identity.email)
        raise ExternalIdentityError("Could not save account") from e

    return user
