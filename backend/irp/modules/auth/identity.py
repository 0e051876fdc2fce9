"""
Identity verification: bearer token -> active account.

The verifier has no side effects. It does not refresh ``last_login``;
that only happens on sign-in.
"""
from fastapi import Depends, Request
from fastapi.security import HTTPBearer, HTTPAuthorizationCredentials
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession
from typing import Optional

from irp.core.database import get_db
from irp.core.exceptions import (
    IRPError,
    MissingCredentialError,
    InvalidCredentialError,
    UnauthorizedAccountError,
    VerifierFaultError,
)
from irp.core.logging_config import logger, set_user_id
from irp.core.security import decode_token
from irp.core.types import is_valid_uuid
from irp.models.user import User

# auto_error=False so a missing header becomes our 401, not FastAPI's 403
security = HTTPBearer(auto_error=False)


async def verify_credential(token: Optional[str], db: AsyncSession) -> User:
    """
    Resolve a bearer token to its active account.

    Raises:
        MissingCredentialError: no token
        InvalidCredentialError: bad signature, structure or subject
        ExpiredCredentialError: token past its window
        UnauthorizedAccountError: account missing or deactivated
        VerifierFaultError: account lookup failed unexpectedly
    """
    if not token:
        raise MissingCredentialError()

    payload = decode_token(token)

    user_id = payload.get("sub")
    if not user_id or not is_valid_uuid(user_id):
        raise InvalidCredentialError()

    try:
        result = await db.execute(select(User).where(User.id == user_id))
        user = result.scalar_one_or_none()
    except Exception as e:
        logger.log_error_with_context(e, "identity verification")
        raise VerifierFaultError() from e

    if user is None or not user.is_active:
        raise UnauthorizedAccountError()

    return user


async def get_current_user(
    request: Request,
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(security),
    db: AsyncSession = Depends(get_db)
) -> User:
    """Get the authenticated account for this request"""
    token = credentials.credentials if credentials else None
    try:
        user = await verify_credential(token, db)
    except IRPError as e:
        logger.log_auth_event("verify", success=False, reason=e.code, path=request.url.path)
        raise

    request.state.user_id = str(user.id)
    set_user_id(str(user.id))
    return user
